from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple

from configuration_state import ConfigurationState, LiningType
from option_catalog import (
    COLOR_SLOTS,
    DEFAULT_BUTTON_COUNT,
    DEFAULT_BUTTON_LAYOUT,
    PART_FAMILY_ROLES,
    ButtonPosition,
    CategoryDefinition,
    CategoryRole,
    MaterialParams,
    OptionCatalog,
    OptionValue,
    PartId,
    button_positions,
    is_hex_color,
    part_slug,
)

logger = logging.getLogger(__name__)

FABRIC_PRIMARY = "fabric_primary"
LINING_PART: PartId = "lining"

DEFAULT_FABRIC_COLOR = "#FFFFFF"
DEFAULT_FABRIC_MATERIAL = MaterialParams(roughness=0.7, metalness=0.1, opacity=1.0)
DEFAULT_BUTTON_COLOR = "#2C2C2C"
DEFAULT_BUTTON_MATERIAL = MaterialParams(roughness=0.3, metalness=0.2, opacity=1.0)
DEFAULT_THREAD_COLOR = "#1565C0"


@dataclass(frozen=True)
class MaterialDirective:
    color: str
    roughness: float
    metalness: float
    opacity: float = 1.0


@dataclass(frozen=True)
class MonogramDirective:
    part_id: PartId
    position: str
    text: str
    font_id: str
    thread_color: str


@dataclass(frozen=True)
class RenderDirectives:
    part_visibility: Mapping[PartId, bool]
    part_material: Mapping[str, MaterialDirective]
    button_material: MaterialDirective
    button_style: Optional[str] = None
    button_positions: Tuple[ButtonPosition, ...] = ()
    monogram: Optional[MonogramDirective] = None
    # Part family -> id of the value it shows, or None when the family shows nothing.
    family_values: Mapping[str, Optional[str]] = field(default_factory=dict)

    def visible_parts(self) -> Tuple[PartId, ...]:
        return tuple(pid for pid, shown in self.part_visibility.items() if shown)

    def family_shown(self, family: str) -> bool:
        return self.family_values.get(family) is not None


def monogram_part_id(position: str) -> PartId:
    return f"monogram_{part_slug(position)}"


def _selected_or_default(
    state: ConfigurationState,
    catalog: OptionCatalog,
    category: CategoryDefinition,
) -> Optional[OptionValue]:
    value_id = state.selected_value_id(category.id)
    if value_id is not None:
        value = category.find_value(value_id)
        if value is not None:
            return value
        logger.debug("Selection %s=%s is not in the catalog; using the default", category.id, value_id)
    return catalog.default_value(category)


def _fabric_primary(state: ConfigurationState, catalog: OptionCatalog) -> MaterialDirective:
    color = DEFAULT_FABRIC_COLOR
    material = DEFAULT_FABRIC_MATERIAL

    fabric = catalog.primary_fabric_category
    sel = state.selections.get(fabric.id) if fabric is not None else None
    if sel is not None and sel.resolved_visual is not None and sel.resolved_visual.color:
        color = sel.resolved_visual.color

    fabric_type = catalog.category_for_role(CategoryRole.FABRIC_TYPE)
    sel = state.selections.get(fabric_type.id) if fabric_type is not None else None
    if sel is not None and sel.resolved_visual is not None and sel.resolved_visual.material is not None:
        material = sel.resolved_visual.material

    return MaterialDirective(
        color=color,
        roughness=material.roughness,
        metalness=material.metalness,
        opacity=material.opacity,
    )


def _slot_materials(
    state: ConfigurationState,
    catalog: OptionCatalog,
    primary: MaterialDirective,
) -> Dict[str, MaterialDirective]:
    materials: Dict[str, MaterialDirective] = {FABRIC_PRIMARY: primary}
    for slot in COLOR_SLOTS:
        materials[slot] = primary

    for category in catalog.categories_with_role(CategoryRole.COLOR_OVERRIDE):
        sel = state.selections.get(category.id)
        if sel is None:
            continue
        # Only a declared default inherits; a first-listed colour is a real choice.
        if category.default_value_id is not None and sel.value_id == category.default_value_id:
            continue
        if sel.resolved_visual is None or not sel.resolved_visual.color:
            continue
        materials[category.target] = replace(primary, color=sel.resolved_visual.color)

    lining_category = catalog.category_for_role(CategoryRole.LINING_COLOR)
    if state.lining.type == LiningType.NONE:
        materials[LINING_PART] = primary
    elif state.lining.type == LiningType.CUSTOM and lining_category is not None:
        sel = state.selections.get(lining_category.id)
        if sel is not None and sel.resolved_visual is not None and sel.resolved_visual.color:
            materials[LINING_PART] = replace(primary, color=sel.resolved_visual.color)
    return materials


def _button_material(state: ConfigurationState, catalog: OptionCatalog) -> MaterialDirective:
    color = DEFAULT_BUTTON_COLOR
    material = DEFAULT_BUTTON_MATERIAL

    color_category = catalog.category_for_role(CategoryRole.BUTTON_COLOR)
    sel = state.selections.get(color_category.id) if color_category is not None else None
    if sel is not None and sel.resolved_visual is not None and sel.resolved_visual.color:
        color = sel.resolved_visual.color

    material_category = catalog.category_for_role(CategoryRole.BUTTON_MATERIAL)
    sel = state.selections.get(material_category.id) if material_category is not None else None
    if sel is not None and sel.resolved_visual is not None and sel.resolved_visual.material is not None:
        material = sel.resolved_visual.material

    return MaterialDirective(
        color=color,
        roughness=material.roughness,
        metalness=material.metalness,
        opacity=material.opacity,
    )


def _family_values(state: ConfigurationState, catalog: OptionCatalog) -> Dict[str, Optional[str]]:
    families: Dict[str, Optional[str]] = {}
    for category in catalog.categories.values():
        if category.role not in PART_FAMILY_ROLES or not category.family:
            continue
        chosen = _selected_or_default(state, catalog, category)
        families[category.family] = chosen.id if chosen is not None and not chosen.is_none else None
    return families


def _effect_part_defaults(catalog: OptionCatalog) -> Dict[PartId, bool]:
    """
    Resting visibility of parts only reachable through render effects.

    Parts some value shows start hidden; parts that are only ever hidden start shown.
    """
    defaults: Dict[PartId, bool] = {}
    for category in catalog.categories.values():
        for value in category.values:
            if value.render_effects is None:
                continue
            for pid in value.render_effects.show:
                defaults[pid] = False
            for pid in value.render_effects.hide:
                defaults.setdefault(pid, True)
    return defaults


def _part_visibility(state: ConfigurationState, catalog: OptionCatalog) -> Dict[PartId, bool]:
    visibility: Dict[PartId, bool] = {}
    table = catalog.part_table()
    for category in catalog.categories.values():
        if category.role not in PART_FAMILY_ROLES:
            continue
        chosen = _selected_or_default(state, catalog, category)
        for value in category.values:
            shown = chosen is not None and value.id == chosen.id
            for pid in table[(category.id, value.id)]:
                visibility[pid] = shown

    for pid, shown in _effect_part_defaults(catalog).items():
        visibility.setdefault(pid, shown)

    # Render effects of the selected values, in catalog order.
    for category in catalog.categories.values():
        value_id = state.selected_value_id(category.id)
        if value_id is None:
            continue
        value = category.find_value(value_id)
        if value is None or value.render_effects is None:
            continue
        for pid in value.render_effects.show:
            visibility[pid] = True
        for pid in value.render_effects.hide:
            visibility[pid] = False

    if catalog.category_for_role(CategoryRole.LINING_COLOR) is not None:
        visibility[LINING_PART] = state.lining.type != LiningType.NONE
    return visibility


def _thread_hex(thread_color: str, catalog: OptionCatalog) -> str:
    resolved = catalog.thread_colors.get(thread_color)
    if resolved is not None:
        return resolved
    if is_hex_color(thread_color):
        return thread_color
    return DEFAULT_THREAD_COLOR


def _monogram(
    state: ConfigurationState,
    catalog: OptionCatalog,
    visibility: Dict[PartId, bool],
) -> Optional[MonogramDirective]:
    for position in catalog.monogram_positions:
        visibility[monogram_part_id(position)] = False

    mono = state.monogram
    if not mono.is_active:
        return None
    pid = monogram_part_id(mono.position)
    visibility[pid] = True
    return MonogramDirective(
        part_id=pid,
        position=mono.position,
        text=mono.text,
        font_id=mono.font_id,
        thread_color=_thread_hex(mono.thread_color, catalog),
    )


def _button_layout(state: ConfigurationState, catalog: OptionCatalog) -> Tuple[ButtonPosition, ...]:
    category = catalog.category_for_role(CategoryRole.BUTTON_CONFIGURATION)
    if category is None:
        return ()
    value = _selected_or_default(state, catalog, category)
    if value is None or value.is_none:
        return ()
    if value.button_layout is None:
        return button_positions(DEFAULT_BUTTON_COUNT, DEFAULT_BUTTON_LAYOUT)
    return button_positions(value.button_layout.count, value.button_layout.layout_id)


def project(state: ConfigurationState, catalog: OptionCatalog) -> RenderDirectives:
    """
    Map a configuration to part visibility and materials for the renderer.

    Precedence is fixed: the primary fabric colour comes only from the fabric colour
    category; colour slots inherit it unless an override other than its declared default
    carries a colour; buttons live in their own material namespace and never touch the
    fabric. Family parts follow the selected (or default) value, effect-only parts start at
    their resting state, then selected render effects apply, then the monogram part. Every
    state of a catalog yields the same `part_visibility` keys.
    """
    primary = _fabric_primary(state, catalog)
    visibility = _part_visibility(state, catalog)
    monogram = _monogram(state, catalog, visibility)
    return RenderDirectives(
        part_visibility=MappingProxyType(visibility),
        part_material=MappingProxyType(_slot_materials(state, catalog, primary)),
        button_material=_button_material(state, catalog),
        button_style=state.buttons.style_id,
        button_positions=_button_layout(state, catalog),
        monogram=monogram,
        family_values=MappingProxyType(_family_values(state, catalog)),
    )
