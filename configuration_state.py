from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from decimal import Decimal, InvalidOperation
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from option_catalog import (
    CategoryRole,
    OptionCatalog,
    UnknownCategory,
    UnknownValue,
    VisualAttributes,
)

logger = logging.getLogger(__name__)

NO_MONOGRAM = "no-monogram"
# Embroidered on the lining, so it needs one.
LINING_MONOGRAM_POSITION = "lining"
DEFAULT_THREAD_COLOR_ID = "navy"
DEFAULT_MONOGRAM_FONT_ID = "classic-serif"


class ConfigurationError(ValueError):
    pass


class InvalidMeasurementInput(ConfigurationError):
    pass


class InvalidMonogramInput(ConfigurationError):
    pass


class SizeType(str, Enum):
    STANDARD = "standard"
    CUSTOM = "custom"


class MeasurementMethod(str, Enum):
    VIDEO = "video"
    SKETCH = "sketch"
    MANUAL = "manual"


class MonogramType(str, Enum):
    INITIALS = "initials"
    FULL_NAME = "full-name"
    GENERIC = "generic"


class LiningType(str, Enum):
    STANDARD = "standard"
    CUSTOM = "custom"
    NONE = "none"


MONOGRAM_MAX_LENGTH: Mapping[MonogramType, int] = MappingProxyType(
    {
        MonogramType.INITIALS: 3,
        MonogramType.FULL_NAME: 15,
        MonogramType.GENERIC: 4,
    }
)

# Punctuation allowed in full-name monograms besides letters.
_FULL_NAME_EXTRA_CHARS = frozenset(" .'-")


@dataclass(frozen=True)
class Selection:
    category_id: str
    value_id: str
    value_name: str
    resolved_price_delta: Decimal
    resolved_visual: Optional[VisualAttributes] = None


@dataclass(frozen=True)
class MeasurementState:
    size_type: SizeType = SizeType.STANDARD
    standard_size: Optional[str] = None
    fit_type: Optional[str] = None
    custom_measurements: Mapping[str, Decimal] = field(default_factory=lambda: MappingProxyType({}))
    measurement_method: MeasurementMethod = MeasurementMethod.MANUAL


@dataclass(frozen=True)
class MonogramState:
    enabled: bool = False
    text: str = ""
    monogram_type: MonogramType = MonogramType.INITIALS
    position: str = NO_MONOGRAM
    font_id: str = DEFAULT_MONOGRAM_FONT_ID
    thread_color: str = DEFAULT_THREAD_COLOR_ID

    @property
    def is_active(self) -> bool:
        """
        Position gates the monogram: text alone never makes it visible or billable.
        """
        return self.enabled and self.position != NO_MONOGRAM and bool(self.text)


@dataclass(frozen=True)
class LiningState:
    type: LiningType = LiningType.STANDARD
    color_id: Optional[str] = None


@dataclass(frozen=True)
class ButtonState:
    style_id: Optional[str] = None
    color_id: Optional[str] = None
    material_id: Optional[str] = None
    configuration_id: Optional[str] = None


@dataclass(frozen=True)
class ConfigurationState:
    product_id: str
    selections: Mapping[str, Selection] = field(default_factory=lambda: MappingProxyType({}))
    measurement: MeasurementState = field(default_factory=MeasurementState)
    monogram: MonogramState = field(default_factory=MonogramState)
    lining: LiningState = field(default_factory=LiningState)
    buttons: ButtonState = field(default_factory=ButtonState)
    quantity: int = 1

    def selected_value_id(self, category_id: str) -> Optional[str]:
        sel = self.selections.get(category_id)
        return sel.value_id if sel is not None else None


_BUTTON_FIELD_BY_ROLE: Mapping[CategoryRole, str] = MappingProxyType(
    {
        CategoryRole.BUTTON_STYLE: "style_id",
        CategoryRole.BUTTON_COLOR: "color_id",
        CategoryRole.BUTTON_MATERIAL: "material_id",
        CategoryRole.BUTTON_CONFIGURATION: "configuration_id",
    }
)
_ROLE_BY_BUTTON_FIELD: Mapping[str, CategoryRole] = MappingProxyType(
    {v: k for k, v in _BUTTON_FIELD_BY_ROLE.items()}
)


def new_configuration(product_id: str) -> ConfigurationState:
    return ConfigurationState(product_id=product_id)


def reset(state: ConfigurationState) -> ConfigurationState:
    return new_configuration(state.product_id)


def select(
    state: ConfigurationState,
    catalog: OptionCatalog,
    category_id: str,
    value_id: str,
) -> ConfigurationState:
    """
    Replace the category's selection with a fresh snapshot of the catalog value.

    Price delta and visual are captured here and never re-read later, so pricing stays
    stable if the catalog changes mid-session.
    """
    category = catalog.get_category(category_id)
    value = category.find_value(value_id)
    if value is None:
        raise UnknownValue(category_id, value_id)
    if category.role == CategoryRole.LINING_COLOR and state.lining.type == LiningType.NONE:
        raise ConfigurationError("A lining colour cannot be chosen when the lining type is 'none'")

    selections = dict(state.selections)
    selections[category_id] = Selection(
        category_id=category_id,
        value_id=value.id,
        value_name=value.name,
        resolved_price_delta=value.price_delta,
        resolved_visual=value.visual,
    )
    changes: Dict[str, Any] = {"selections": MappingProxyType(selections)}

    button_field = _BUTTON_FIELD_BY_ROLE.get(category.role)
    if button_field is not None:
        changes["buttons"] = replace(state.buttons, **{button_field: value.id})
    if category.role == CategoryRole.LINING_COLOR:
        changes["lining"] = replace(state.lining, color_id=value.id)

    return replace(state, **changes)


def clear_selection(
    state: ConfigurationState,
    category_id: str,
    *,
    catalog: Optional[OptionCatalog] = None,
) -> ConfigurationState:
    if category_id not in state.selections:
        return state
    selections = dict(state.selections)
    del selections[category_id]
    changes: Dict[str, Any] = {"selections": MappingProxyType(selections)}

    if catalog is not None and category_id in catalog.categories:
        role = catalog.categories[category_id].role
        button_field = _BUTTON_FIELD_BY_ROLE.get(role)
        if button_field is not None:
            changes["buttons"] = replace(state.buttons, **{button_field: None})
        if role == CategoryRole.LINING_COLOR:
            changes["lining"] = replace(state.lining, color_id=None)

    return replace(state, **changes)


def _coerce_measurement(key: str, raw: object, *, strict: bool) -> Decimal:
    problem: Optional[str] = None
    value = Decimal("0")
    if isinstance(raw, bool) or not isinstance(raw, (str, int, float, Decimal)):
        problem = f"unsupported type {type(raw).__name__}"
    else:
        try:
            value = Decimal(str(raw).strip()) if not isinstance(raw, Decimal) else raw
        except InvalidOperation:
            problem = "not a number"
        else:
            if not value.is_finite():
                problem = "not a finite number"
            elif value < 0:
                problem = "negative"

    if problem is None:
        return value
    if strict:
        raise InvalidMeasurementInput(f"Measurement {key!r} is invalid ({problem}): {raw!r}")
    logger.warning("Coercing measurement %r to 0 (%s): %r", key, problem, raw)
    return Decimal("0")


def update_measurement(
    state: ConfigurationState,
    patch: Mapping[str, Any],
    *,
    strict: bool = False,
) -> ConfigurationState:
    """
    Merge a partial measurement update.

    `custom_measurements` merges key-wise; a `None` value removes the key. Unparseable,
    negative, or non-finite numbers become 0 (logged) unless `strict` is set, in which case
    they raise `InvalidMeasurementInput`.
    """
    m = state.measurement
    changes: Dict[str, Any] = {}
    for key, raw in patch.items():
        if key == "size_type":
            changes[key] = _enum_value(SizeType, raw, key, InvalidMeasurementInput)
        elif key == "measurement_method":
            changes[key] = _enum_value(MeasurementMethod, raw, key, InvalidMeasurementInput)
        elif key in ("standard_size", "fit_type"):
            changes[key] = _optional_text(raw)
        elif key == "custom_measurements":
            if not isinstance(raw, Mapping):
                raise InvalidMeasurementInput("custom_measurements must be a mapping")
            merged = dict(m.custom_measurements)
            for mk, mv in raw.items():
                mk = str(mk).strip()
                if not mk:
                    continue
                if mv is None:
                    merged.pop(mk, None)
                else:
                    merged[mk] = _coerce_measurement(mk, mv, strict=strict)
            changes[key] = MappingProxyType(merged)
        else:
            raise InvalidMeasurementInput(f"Unknown measurement field: {key!r}")
    return replace(state, measurement=replace(m, **changes))


def _validate_monogram(mono: MonogramState, catalog: Optional[OptionCatalog]) -> None:
    if not mono.position:
        raise InvalidMonogramInput("Monogram position must not be empty")
    if catalog is not None and mono.position != NO_MONOGRAM and mono.position not in catalog.monogram_positions:
        raise InvalidMonogramInput(f"Unknown monogram position: {mono.position!r}")

    limit = MONOGRAM_MAX_LENGTH[mono.monogram_type]
    if len(mono.text) > limit:
        raise InvalidMonogramInput(
            f"{mono.monogram_type.value} monogram allows at most {limit} characters (got {len(mono.text)})"
        )
    extra = _FULL_NAME_EXTRA_CHARS if mono.monogram_type == MonogramType.FULL_NAME else frozenset()
    bad = sorted({ch for ch in mono.text if not (ch.isalpha() or ch in extra)})
    if bad:
        raise InvalidMonogramInput(f"Monogram text has unsupported characters: {''.join(bad)!r}")


def update_monogram(
    state: ConfigurationState,
    patch: Mapping[str, Any],
    *,
    catalog: Optional[OptionCatalog] = None,
) -> ConfigurationState:
    changes: Dict[str, Any] = {}
    for key, raw in patch.items():
        if key == "enabled":
            changes[key] = bool(raw)
        elif key == "text":
            changes[key] = str(raw or "").strip().upper()
        elif key == "monogram_type":
            changes[key] = _enum_value(MonogramType, raw, key, InvalidMonogramInput)
        elif key in ("position", "font_id", "thread_color"):
            changes[key] = str(raw or "").strip()
        else:
            raise InvalidMonogramInput(f"Unknown monogram field: {key!r}")

    mono = replace(state.monogram, **changes)
    _validate_monogram(mono, catalog)
    if mono.position == LINING_MONOGRAM_POSITION and state.lining.type == LiningType.NONE:
        raise InvalidMonogramInput("A lining monogram needs a lining (the lining type is 'none')")
    return replace(state, monogram=mono)


def update_lining(
    state: ConfigurationState,
    catalog: OptionCatalog,
    patch: Mapping[str, Any],
) -> ConfigurationState:
    unknown = set(patch) - {"type", "color_id"}
    if unknown:
        raise ConfigurationError(f"Unknown lining field(s): {', '.join(sorted(unknown))}")

    lining_type = state.lining.type
    if "type" in patch:
        lining_type = _enum_value(LiningType, patch["type"], "type", ConfigurationError)
    out = replace(state, lining=replace(state.lining, type=lining_type))

    lining_category = catalog.category_for_role(CategoryRole.LINING_COLOR)
    color_id = patch.get("color_id")
    if color_id is not None:
        if lining_type == LiningType.NONE:
            raise ConfigurationError("A lining colour cannot be chosen when the lining type is 'none'")
        if lining_category is None:
            out = replace(out, lining=replace(out.lining, color_id=str(color_id)))
        else:
            out = select(out, catalog, lining_category.id, str(color_id))

    if lining_type == LiningType.NONE:
        if lining_category is not None:
            out = clear_selection(out, lining_category.id, catalog=catalog)
        out = replace(out, lining=replace(out.lining, color_id=None))
        if out.monogram.position == LINING_MONOGRAM_POSITION:
            logger.info("Dropping the lining monogram position: the lining was removed")
            out = replace(out, monogram=replace(out.monogram, position=NO_MONOGRAM))
    return out


def update_buttons(
    state: ConfigurationState,
    catalog: OptionCatalog,
    patch: Mapping[str, Any],
) -> ConfigurationState:
    """
    Apply button changes as selections on the catalog's button categories.
    """
    out = state
    for key, raw in patch.items():
        role = _ROLE_BY_BUTTON_FIELD.get(key)
        if role is None:
            raise ConfigurationError(f"Unknown button field: {key!r}")
        category = catalog.category_for_role(role)
        if category is None:
            raise UnknownCategory(role.value)
        if raw is None:
            out = clear_selection(out, category.id, catalog=catalog)
        else:
            out = select(out, catalog, category.id, str(raw))
    return out


def set_quantity(state: ConfigurationState, quantity: int) -> ConfigurationState:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise ConfigurationError(f"quantity must be an integer >= 1 (got {quantity!r})")
    return replace(state, quantity=quantity)


def state_to_payload(state: ConfigurationState) -> Dict[str, Any]:
    """
    JSON-serialisable snapshot (decimals as strings) used for save/resume and order submission.
    """
    m = state.measurement
    mono = state.monogram
    return {
        "product_id": state.product_id,
        "quantity": state.quantity,
        "selections": {
            cid: {
                "value_id": sel.value_id,
                "value_name": sel.value_name,
                "price_delta": str(sel.resolved_price_delta),
            }
            for cid, sel in state.selections.items()
        },
        "measurement": {
            "size_type": m.size_type.value,
            "standard_size": m.standard_size,
            "fit_type": m.fit_type,
            "custom_measurements": {k: str(v) for k, v in m.custom_measurements.items()},
            "measurement_method": m.measurement_method.value,
        },
        "monogram": {
            "enabled": mono.enabled,
            "text": mono.text,
            "monogram_type": mono.monogram_type.value,
            "position": mono.position,
            "font_id": mono.font_id,
            "thread_color": mono.thread_color,
        },
        "lining": {"type": state.lining.type.value, "color_id": state.lining.color_id},
        "buttons": {
            "style_id": state.buttons.style_id,
            "color_id": state.buttons.color_id,
            "material_id": state.buttons.material_id,
            "configuration_id": state.buttons.configuration_id,
        },
    }


def state_from_payload(payload: Mapping[str, Any], catalog: OptionCatalog) -> ConfigurationState:
    """
    Rebuild a state by replaying a snapshot through the normal update operations.

    Stale category/value ids raise instead of being silently accepted; price deltas are
    re-captured from the current catalog.
    """
    if not isinstance(payload, Mapping):
        raise ConfigurationError("configuration payload must be an object")
    product_id = payload.get("product_id")
    if product_id != catalog.product_id:
        raise ConfigurationError(
            f"Snapshot is for product {product_id!r}, catalog is {catalog.product_id!r}"
        )

    state = new_configuration(catalog.product_id)
    selections = payload.get("selections") or {}
    if not isinstance(selections, Mapping):
        raise ConfigurationError("selections must be an object")
    for category_id, row in selections.items():
        value_id = row.get("value_id") if isinstance(row, Mapping) else row
        if not isinstance(value_id, str):
            raise ConfigurationError(f"Selection for {category_id!r} has no value_id")
        state = select(state, catalog, str(category_id), value_id)

    measurement = payload.get("measurement")
    if isinstance(measurement, Mapping):
        state = update_measurement(state, measurement, strict=True)

    monogram = payload.get("monogram")
    if isinstance(monogram, Mapping):
        state = update_monogram(state, monogram, catalog=catalog)

    lining = payload.get("lining")
    if isinstance(lining, Mapping) and "type" in lining:
        state = update_lining(state, catalog, {"type": lining["type"]})

    return set_quantity(state, payload.get("quantity", 1))


def _enum_value(enum_cls: Any, raw: object, name: str, error_cls: type) -> Any:
    try:
        return enum_cls(raw)
    except ValueError as e:
        allowed = ", ".join(m.value for m in enum_cls)
        raise error_cls(f"{name} must be one of: {allowed} (got {raw!r})") from e


def _optional_text(raw: object) -> Optional[str]:
    if raw is None:
        return None
    s = str(raw).strip()
    return s or None
