from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)

PartId = str

_HEX_COLOR_RE = re.compile(r"^#[0-9A-Fa-f]{6}$")

DEFAULT_BUTTON_LAYOUT = "single-breasted"
DEFAULT_BUTTON_COUNT = 2


class CatalogError(ValueError):
    pass


class UnknownCategory(CatalogError):
    def __init__(self, category_id: str) -> None:
        super().__init__(f"Unknown category: {category_id!r}")
        self.category_id = category_id


class UnknownValue(CatalogError):
    def __init__(self, category_id: str, value_id: str) -> None:
        super().__init__(f"Unknown value {value_id!r} for category {category_id!r}")
        self.category_id = category_id
        self.value_id = value_id


class CatalogUnavailable(CatalogError):
    pass


class CategoryKind(str, Enum):
    COLOR = "color"
    TEXTURE = "texture"
    COMPONENT = "component"
    CUSTOM = "custom"


class CategoryRole(str, Enum):
    FABRIC_COLOR = "fabric_color"
    FABRIC_TYPE = "fabric_type"
    STYLE_FAMILY = "style_family"
    COLOR_OVERRIDE = "color_override"
    BUTTON_STYLE = "button_style"
    BUTTON_COLOR = "button_color"
    BUTTON_MATERIAL = "button_material"
    BUTTON_CONFIGURATION = "button_configuration"
    LINING_COLOR = "lining_color"
    OTHER = "other"


BUTTON_ROLES: Tuple[CategoryRole, ...] = (
    CategoryRole.BUTTON_STYLE,
    CategoryRole.BUTTON_COLOR,
    CategoryRole.BUTTON_MATERIAL,
    CategoryRole.BUTTON_CONFIGURATION,
)

# Roles whose values map onto mutually exclusive named parts.
PART_FAMILY_ROLES: Tuple[CategoryRole, ...] = (
    CategoryRole.STYLE_FAMILY,
    CategoryRole.BUTTON_CONFIGURATION,
)

COLOR_SLOTS: Tuple[str, ...] = ("collar", "cuff", "pocket", "sleeve", "trim", "accent", "lining")


@dataclass(frozen=True)
class MaterialParams:
    roughness: float = 0.7
    metalness: float = 0.1
    opacity: float = 1.0


@dataclass(frozen=True)
class VisualAttributes:
    color: Optional[str] = None
    material: Optional[MaterialParams] = None


@dataclass(frozen=True)
class RenderEffects:
    show: Tuple[PartId, ...] = ()
    hide: Tuple[PartId, ...] = ()


@dataclass(frozen=True)
class ButtonLayoutRef:
    count: int
    layout_id: str


@dataclass(frozen=True)
class ButtonPosition:
    # Offsets on the garment front: x from the centre line, y up from the waist button.
    x: float
    y: float


def _column(x: float, *ys: float) -> Tuple[ButtonPosition, ...]:
    return tuple(ButtonPosition(x=x, y=y) for y in ys)


# key: (layout id, button count) -> positions, top to bottom, left column first
_BUTTON_LAYOUTS: Mapping[Tuple[str, int], Tuple[ButtonPosition, ...]] = {
    ("single-breasted", 1): _column(0.0, 0.2),
    ("single-breasted", 2): _column(0.0, 0.4, 0.0),
    ("single-breasted", 3): _column(0.0, 0.6, 0.3, 0.0),
    ("double-breasted", 4): _column(-0.1, 0.6, 0.2) + _column(0.1, 0.6, 0.2),
    ("double-breasted", 6): _column(-0.1, 0.6, 0.2, -0.2) + _column(0.1, 0.6, 0.2, -0.2),
}


def button_positions(button_count: int, layout_id: str) -> Tuple[ButtonPosition, ...]:
    positions = _BUTTON_LAYOUTS.get((layout_id, button_count))
    if positions is None:
        logger.debug(
            "No button layout for %r x%s; using %s x%s",
            layout_id,
            button_count,
            DEFAULT_BUTTON_LAYOUT,
            DEFAULT_BUTTON_COUNT,
        )
        positions = _BUTTON_LAYOUTS[(DEFAULT_BUTTON_LAYOUT, DEFAULT_BUTTON_COUNT)]
    return positions


@dataclass(frozen=True)
class OptionValue:
    id: str
    name: str
    price_delta: Decimal = Decimal("0")
    visual: Optional[VisualAttributes] = None
    render_effects: Optional[RenderEffects] = None
    is_none: bool = False
    part_id: Optional[PartId] = None
    button_layout: Optional[ButtonLayoutRef] = None


@dataclass(frozen=True)
class CategoryDefinition:
    id: str
    display_name: str
    kind: CategoryKind
    values: Tuple[OptionValue, ...]
    role: CategoryRole = CategoryRole.OTHER
    # Part-family prefix for STYLE_FAMILY / BUTTON_CONFIGURATION categories, e.g. "collar".
    family: Optional[str] = None
    # Colour slot for COLOR_OVERRIDE categories, one of COLOR_SLOTS.
    target: Optional[str] = None
    default_value_id: Optional[str] = None

    def find_value(self, value_id: str) -> Optional[OptionValue]:
        for v in self.values:
            if v.id == value_id:
                return v
        return None


@dataclass(frozen=True)
class OptionCatalog:
    product_id: str
    garment_type: str
    display_name: str
    # Ordered: iteration order is the display and projection order.
    categories: Mapping[str, CategoryDefinition] = field(default_factory=dict)
    monogram_positions: Tuple[str, ...] = ()
    thread_colors: Mapping[str, str] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.categories

    def get_category(self, category_id: str) -> CategoryDefinition:
        category = self.categories.get(category_id)
        if category is None:
            raise UnknownCategory(category_id)
        return category

    def get_value(self, category_id: str, value_id: str) -> OptionValue:
        value = self.get_category(category_id).find_value(value_id)
        if value is None:
            raise UnknownValue(category_id, value_id)
        return value

    def categories_with_role(self, role: CategoryRole) -> Tuple[CategoryDefinition, ...]:
        return tuple(c for c in self.categories.values() if c.role == role)

    def category_for_role(self, role: CategoryRole) -> Optional[CategoryDefinition]:
        matches = self.categories_with_role(role)
        return matches[0] if matches else None

    @property
    def primary_fabric_category(self) -> Optional[CategoryDefinition]:
        return self.category_for_role(CategoryRole.FABRIC_COLOR)

    def default_value(self, category: CategoryDefinition) -> Optional[OptionValue]:
        """
        The value an empty configuration renders with.

        Uses `default_value_id` when declared, otherwise the first non-none value.
        """
        if category.default_value_id is not None:
            return category.find_value(category.default_value_id)
        for v in category.values:
            if not v.is_none:
                return v
        return None

    def part_ids_for(self, category_id: str, value_id: str) -> Tuple[PartId, ...]:
        category = self.get_category(category_id)
        value = category.find_value(value_id)
        if value is None:
            raise UnknownValue(category_id, value_id)
        return _part_ids(category, value)

    def part_table(self) -> Dict[Tuple[str, str], Tuple[PartId, ...]]:
        """
        Explicit (category id, value id) -> part ids table for every part-family category.
        """
        table: Dict[Tuple[str, str], Tuple[PartId, ...]] = {}
        for category in self.categories.values():
            if category.role not in PART_FAMILY_ROLES:
                continue
            for value in category.values:
                table[(category.id, value.id)] = _part_ids(category, value)
        return table


def part_slug(value_id: str) -> str:
    return value_id.strip().lower().replace("-", "_").replace(" ", "_")


def _part_ids(category: CategoryDefinition, value: OptionValue) -> Tuple[PartId, ...]:
    if category.role not in PART_FAMILY_ROLES or value.is_none:
        return ()
    if category.role == CategoryRole.BUTTON_CONFIGURATION:
        prefix = value.part_id or f"{category.family}_{part_slug(value.id)}"
        # One part per drawn position, so unknown layouts get the fallback's count.
        layout = value.button_layout
        if layout is None:
            count = DEFAULT_BUTTON_COUNT
        else:
            count = len(button_positions(layout.count, layout.layout_id))
        return tuple(f"{prefix}_{i}" for i in range(count))
    return (value.part_id or f"{category.family}_{part_slug(value.id)}",)


def make_catalog(
    *,
    product_id: str,
    garment_type: str,
    display_name: str,
    categories: Iterable[CategoryDefinition],
    monogram_positions: Iterable[str] = (),
    thread_colors: Optional[Mapping[str, str]] = None,
) -> OptionCatalog:
    """
    Build and validate a catalog. Category order is preserved.
    """
    ordered: Dict[str, CategoryDefinition] = {}
    for c in categories:
        if c.id in ordered:
            raise CatalogError(f"Duplicate category id: {c.id!r}")
        ordered[c.id] = c
    catalog = OptionCatalog(
        product_id=product_id,
        garment_type=garment_type,
        display_name=display_name,
        categories=MappingProxyType(ordered),
        monogram_positions=tuple(p for p in monogram_positions if p and p != "no-monogram"),
        thread_colors=MappingProxyType(dict(thread_colors or {})),
    )
    validate_catalog(catalog)
    return catalog


def empty_catalog(product_id: str, *, garment_type: str = "unknown") -> OptionCatalog:
    """
    The read-only "customization unavailable" catalog used when loading fails.
    """
    return OptionCatalog(
        product_id=product_id,
        garment_type=garment_type,
        display_name="Customization unavailable",
        categories=MappingProxyType({}),
    )


def validate_catalog(catalog: OptionCatalog) -> None:
    problems: List[str] = []
    seen_part_ids: Dict[PartId, str] = {}

    if len(catalog.categories_with_role(CategoryRole.FABRIC_COLOR)) > 1:
        problems.append("more than one primary fabric (fabric_color) category")

    for category in catalog.categories.values():
        where = f"category {category.id!r}"
        if not category.values:
            problems.append(f"{where} has no values")
        ids = [v.id for v in category.values]
        dupes = sorted({i for i in ids if ids.count(i) > 1})
        if dupes:
            problems.append(f"{where} has duplicate value ids: {', '.join(dupes)}")
        if category.default_value_id is not None and category.default_value_id not in ids:
            problems.append(f"{where} default {category.default_value_id!r} is not one of its values")
        if category.role in PART_FAMILY_ROLES and not category.family:
            problems.append(f"{where} needs a part family")
        if category.role == CategoryRole.COLOR_OVERRIDE and category.target not in COLOR_SLOTS:
            problems.append(f"{where} has invalid colour slot {category.target!r}")

        for v in category.values:
            if v.is_none and v.price_delta != 0:
                problems.append(f"{where} none value {v.id!r} must have a zero price delta")
            if v.visual is not None:
                if v.visual.color is not None and not _HEX_COLOR_RE.match(v.visual.color):
                    problems.append(f"{where} value {v.id!r} has invalid colour {v.visual.color!r}")
                if v.visual.material is not None and not _material_in_range(v.visual.material):
                    problems.append(f"{where} value {v.id!r} has material params outside [0, 1]")
            if v.button_layout is not None and v.button_layout.count < 1:
                problems.append(f"{where} value {v.id!r} has a button count below 1")
            for pid in _part_ids(category, v):
                owner = seen_part_ids.get(pid)
                if owner is not None and owner != category.id:
                    problems.append(f"part {pid!r} is claimed by both {owner!r} and {category.id!r}")
                seen_part_ids[pid] = category.id

    for tc_id, hex_color in catalog.thread_colors.items():
        if not _HEX_COLOR_RE.match(hex_color):
            problems.append(f"thread colour {tc_id!r} has invalid colour {hex_color!r}")

    if problems:
        raise CatalogError(f"Invalid catalog {catalog.product_id!r}: " + "; ".join(problems))


def _material_in_range(m: MaterialParams) -> bool:
    return all(0.0 <= float(x) <= 1.0 for x in (m.roughness, m.metalness, m.opacity))


def is_hex_color(value: object) -> bool:
    return isinstance(value, str) and bool(_HEX_COLOR_RE.match(value))
