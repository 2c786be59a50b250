from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Mapping, Optional, Sequence, Tuple

from configuration_state import NO_MONOGRAM, ConfigurationState, LiningType, SizeType
from option_catalog import CategoryRole, OptionCatalog


class StepKind(str, Enum):
    SELECTION = "selection"
    MEASUREMENT = "measurement"
    MONOGRAM = "monogram"
    LINING = "lining"
    QUANTITY = "quantity"
    REVIEW = "review"


@dataclass(frozen=True)
class StepDefinition:
    key: str
    title: str
    kind: StepKind = StepKind.SELECTION
    required_categories: Tuple[str, ...] = ()
    required_measurement_keys: Tuple[str, ...] = ()


REQUIRED_MEASUREMENT_KEYS: Mapping[str, Tuple[str, ...]] = {
    "shirt": ("neck", "chest", "stomach", "hip", "length", "shoulder", "sleeve"),
    "jacket": ("chest", "waist", "shoulder", "sleeve", "length"),
    "pants": ("waist", "hip", "inseam", "outseam", "thigh"),
}


def _measurement_complete(state: ConfigurationState, step: StepDefinition) -> bool:
    m = state.measurement
    if m.size_type == SizeType.STANDARD:
        return bool(m.standard_size) and bool(m.fit_type)
    for key in step.required_measurement_keys:
        value = m.custom_measurements.get(key)
        if value is None or value <= 0:
            return False
    return True


def _monogram_complete(state: ConfigurationState) -> bool:
    mono = state.monogram
    if not mono.enabled or mono.position == NO_MONOGRAM:
        return True
    return bool(mono.text)


def is_step_complete(state: ConfigurationState, step: StepDefinition) -> bool:
    for category_id in step.required_categories:
        if category_id not in state.selections:
            return False

    if step.kind == StepKind.MEASUREMENT:
        return _measurement_complete(state, step)
    if step.kind == StepKind.MONOGRAM:
        return _monogram_complete(state)
    if step.kind == StepKind.LINING:
        return state.lining.type != LiningType.CUSTOM or state.lining.color_id is not None
    if step.kind == StepKind.QUANTITY:
        return state.quantity >= 1
    return True


def can_advance(current_step_index: int, state: ConfigurationState, steps: Sequence[StepDefinition]) -> bool:
    if current_step_index < 0 or current_step_index >= len(steps):
        return False
    return is_step_complete(state, steps[current_step_index])


def first_incomplete_step(state: ConfigurationState, steps: Sequence[StepDefinition]) -> Optional[int]:
    for idx, step in enumerate(steps):
        if not is_step_complete(state, step):
            return idx
    return None


def completed_step_count(state: ConfigurationState, steps: Sequence[StepDefinition]) -> int:
    return sum(1 for step in steps if is_step_complete(state, step))


def default_steps(catalog: OptionCatalog) -> Tuple[StepDefinition, ...]:
    """
    Fixed wizard order for a garment:
    fabric -> style -> buttons -> lining (jackets) -> monogram -> measurements -> quantity -> review.

    Required categories are limited to the ones this catalog actually has.
    """
    fabric_roles = (CategoryRole.FABRIC_COLOR, CategoryRole.FABRIC_TYPE)
    button_roles = (
        CategoryRole.BUTTON_CONFIGURATION,
        CategoryRole.BUTTON_STYLE,
        CategoryRole.BUTTON_MATERIAL,
        CategoryRole.BUTTON_COLOR,
    )

    fabric: List[str] = []
    style: List[str] = []
    buttons: List[str] = []
    for category in catalog.categories.values():
        if category.role in fabric_roles:
            fabric.append(category.id)
        elif category.role in button_roles:
            buttons.append(category.id)
        elif category.role in (CategoryRole.STYLE_FAMILY, CategoryRole.OTHER):
            style.append(category.id)
        # Colour overrides default to "same as fabric" and lining colours belong to the
        # lining step; neither is required for advancing.

    steps: List[StepDefinition] = []
    if fabric:
        steps.append(StepDefinition("fabric", "Fabric", required_categories=tuple(fabric)))
    if style:
        steps.append(StepDefinition("style", "Style", required_categories=tuple(style)))
    if buttons:
        steps.append(StepDefinition("buttons", "Buttons", required_categories=tuple(buttons)))
    if catalog.category_for_role(CategoryRole.LINING_COLOR) is not None:
        steps.append(StepDefinition("lining", "Lining", kind=StepKind.LINING))
    if catalog.monogram_positions:
        steps.append(StepDefinition("monogram", "Monogram", kind=StepKind.MONOGRAM))
    steps.append(
        StepDefinition(
            "measurements",
            "Measurements",
            kind=StepKind.MEASUREMENT,
            required_measurement_keys=REQUIRED_MEASUREMENT_KEYS.get(catalog.garment_type, ()),
        )
    )
    steps.append(StepDefinition("quantity", "Quantity", kind=StepKind.QUANTITY))
    steps.append(StepDefinition("review", "Review", kind=StepKind.REVIEW))
    return tuple(steps)
