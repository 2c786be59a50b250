from __future__ import annotations

from decimal import Decimal
from typing import Callable, Dict, Mapping, Optional, Tuple

from configuration_state import MonogramType
from option_catalog import (
    ButtonLayoutRef,
    CatalogUnavailable,
    CategoryDefinition,
    CategoryKind,
    CategoryRole,
    MaterialParams,
    OptionCatalog,
    OptionValue,
    RenderEffects,
    VisualAttributes,
    make_catalog,
)
from pricing_engine import GarmentPriceRules


def _v(
    value_id: str,
    name: str,
    price: str = "0",
    *,
    color: Optional[str] = None,
    material: Optional[MaterialParams] = None,
    show: Tuple[str, ...] = (),
    hide: Tuple[str, ...] = (),
    is_none: bool = False,
    layout: Optional[ButtonLayoutRef] = None,
) -> OptionValue:
    visual = VisualAttributes(color=color, material=material) if (color or material) else None
    effects = RenderEffects(show=show, hide=hide) if (show or hide) else None
    return OptionValue(
        id=value_id,
        name=name,
        price_delta=Decimal(price),
        visual=visual,
        render_effects=effects,
        is_none=is_none,
        button_layout=layout,
    )


def _fabric_types(*rows: Tuple[str, str, str, float]) -> CategoryDefinition:
    return CategoryDefinition(
        id="fabric-type",
        display_name="Fabric Type",
        kind=CategoryKind.TEXTURE,
        role=CategoryRole.FABRIC_TYPE,
        values=tuple(
            _v(vid, name, price, material=MaterialParams(roughness=roughness, metalness=0.1))
            for vid, name, price, roughness in rows
        ),
    )


def _style(
    category_id: str,
    display_name: str,
    family: str,
    *values: OptionValue,
    default: Optional[str] = None,
) -> CategoryDefinition:
    return CategoryDefinition(
        id=category_id,
        display_name=display_name,
        kind=CategoryKind.COMPONENT,
        role=CategoryRole.STYLE_FAMILY,
        family=family,
        values=tuple(values),
        default_value_id=default,
    )


def _contrast(category_id: str, display_name: str, target: str) -> CategoryDefinition:
    return CategoryDefinition(
        id=category_id,
        display_name=display_name,
        kind=CategoryKind.COLOR,
        role=CategoryRole.COLOR_OVERRIDE,
        target=target,
        default_value_id="same-as-fabric",
        values=(
            _v("same-as-fabric", "Same as fabric"),
            _v("white", "White", "12", color="#FFFFFF"),
            _v("light-blue", "Light Blue", "12", color="#87CEEB"),
            _v("navy", "Navy", "12", color="#000080"),
            _v("pink", "Pink", "12", color="#FFB6C1"),
            _v("gray", "Gray", "12", color="#808080"),
            _v("black", "Black", "12", color="#000000"),
        ),
    )


# Embroidery thread colours offered for every garment with monogram positions.
THREAD_COLORS: Mapping[str, str] = {
    "navy": "#1565C0",
    "black": "#000000",
    "white": "#FFFFFF",
    "gold": "#FFD700",
    "silver": "#C0C0C0",
    "burgundy": "#8E24AA",
    "forest": "#2E7D32",
    "royal-blue": "#4169E1",
    "copper": "#B87333",
    "charcoal": "#424242",
}

LINING_COLORS: Tuple[Tuple[str, str, str], ...] = (
    ("navy", "Navy Blue", "#1e3a8a"),
    ("black", "Black", "#000000"),
    ("white", "White", "#ffffff"),
    ("charcoal", "Charcoal Gray", "#374151"),
    ("burgundy", "Burgundy", "#991b1b"),
    ("forest", "Forest Green", "#166534"),
    ("royal", "Royal Blue", "#2563eb"),
    ("crimson", "Crimson", "#dc2626"),
    ("purple", "Deep Purple", "#7c3aed"),
    ("brown", "Chocolate Brown", "#92400e"),
    ("teal", "Teal", "#0f766e"),
    ("gold", "Golden Yellow", "#ca8a04"),
    ("olive", "Olive Green", "#65a30d"),
    ("maroon", "Maroon", "#7f1d1d"),
    ("slate", "Slate Blue", "#475569"),
    ("emerald", "Emerald", "#059669"),
    ("orange", "Burnt Orange", "#ea580c"),
    ("indigo", "Indigo", "#4338ca"),
    ("rose", "Rose Pink", "#e11d48"),
    ("amber", "Amber", "#d97706"),
)


def load_sample_shirt() -> OptionCatalog:
    """
    Dress shirt with fabric, collar and cuff styles, contrast trims and button colours.
    """
    categories = (
        CategoryDefinition(
            id="fabric-color",
            display_name="Fabric Color",
            kind=CategoryKind.COLOR,
            role=CategoryRole.FABRIC_COLOR,
            values=(
                _v("white", "White", color="#FFFFFF"),
                _v("light-blue", "Light Blue", color="#E3F2FD"),
                _v("navy", "Navy", "5", color="#1565C0"),
                _v("charcoal", "Charcoal", "5", color="#424242"),
                _v("burgundy", "Burgundy", "10", color="#8E24AA"),
                _v("forest", "Forest Green", "10", color="#2E7D32"),
                _v("cream", "Cream", color="#FFF8E1"),
                _v("pink", "Pink", "5", color="#F8BBD9"),
            ),
        ),
        _fabric_types(
            ("cotton", "Cotton", "0", 0.7),
            ("linen", "Linen", "15", 0.9),
            ("silk", "Silk", "50", 0.2),
            ("wool", "Wool", "25", 0.8),
            ("cashmere", "Cashmere", "100", 0.3),
        ),
        _style(
            "collar-style",
            "Collar Style",
            "collar",
            _v("spread", "Spread Collar"),
            _v("point", "Point Collar"),
            _v("button-down", "Button Down", "5", show=("collar_buttons",)),
            _v("cutaway", "Cutaway", "10"),
        ),
        _style(
            "cuff-style",
            "Cuff Style",
            "cuff",
            _v("barrel", "Barrel Cuff"),
            _v("french", "French Cuff", "15", show=("cufflinks",)),
            _v("convertible", "Convertible", "10"),
        ),
        _contrast("collar-contrast", "Collar Contrast", "collar"),
        _contrast("cuff-contrast", "Cuff Contrast", "cuff"),
        CategoryDefinition(
            id="button-color",
            display_name="Button Color",
            kind=CategoryKind.COLOR,
            role=CategoryRole.BUTTON_COLOR,
            values=(
                _v("standard", "Standard Matching"),
                _v("gold", "Gold", "8", color="#FFD700"),
                _v("silver", "Silver", "8", color="#C0C0C0"),
                _v("copper", "Copper", "8", color="#B87333"),
                _v("bronze", "Bronze", "8", color="#CD7F32"),
                _v("pewter", "Pewter", "8", color="#96A8A1"),
            ),
        ),
    )
    return make_catalog(
        product_id="shirt-001",
        garment_type="shirt",
        display_name="Custom Dress Shirt",
        categories=categories,
        monogram_positions=("chest", "cuff"),
        thread_colors=THREAD_COLORS,
    )


def load_sample_pants() -> OptionCatalog:
    categories = (
        CategoryDefinition(
            id="fabric-color",
            display_name="Fabric Color",
            kind=CategoryKind.COLOR,
            role=CategoryRole.FABRIC_COLOR,
            values=(
                _v("navy", "Navy", color="#1565C0"),
                _v("charcoal", "Charcoal", color="#424242"),
                _v("black", "Black", "5", color="#000000"),
                _v("khaki", "Khaki", color="#8D6E63"),
                _v("olive", "Olive", "5", color="#689F38"),
                _v("burgundy", "Burgundy", "10", color="#8E24AA"),
                _v("stone", "Stone", color="#A1887F"),
                _v("cream", "Cream", "5", color="#FFF8E1"),
            ),
        ),
        _fabric_types(
            ("wool", "Wool", "0", 0.8),
            ("cotton", "Cotton", "-10", 0.7),
            ("linen", "Linen", "15", 0.9),
            ("cashmere", "Cashmere", "100", 0.3),
            ("stretch-wool", "Stretch Wool", "25", 0.8),
            ("corduroy", "Corduroy", "20", 0.9),
        ),
        CategoryDefinition(
            id="fit-style",
            display_name="Fit Style",
            kind=CategoryKind.COMPONENT,
            values=(
                _v("classic", "Classic Fit"),
                _v("slim", "Slim Fit"),
                _v("tailored", "Tailored Fit", "5"),
                _v("relaxed", "Relaxed Fit"),
                _v("athletic", "Athletic Fit", "10"),
            ),
        ),
        _style(
            "waistband-style",
            "Waistband Style",
            "waistband",
            _v("standard", "Standard"),
            _v("extended", "Extended Tab", "10"),
            _v("side-adjusters", "Side Adjusters", "15"),
            _v("suspender-buttons", "Suspender Buttons", "12"),
        ),
        _style(
            "pocket-style",
            "Pocket Style",
            "pocket",
            _v("standard", "Standard Pockets"),
            _v("slanted", "Slanted Pockets", "5"),
            _v("coin-pocket", "With Coin Pocket", "8"),
            _v("ticket-pocket", "With Ticket Pocket", "10"),
        ),
        _style(
            "pleat-style",
            "Pleat Style",
            "pleat",
            _v("flat-front", "Flat Front", is_none=True),
            _v("single-pleat", "Single Pleat", "5"),
            _v("double-pleat", "Double Pleat", "10"),
            default="flat-front",
        ),
        _style(
            "hem-style",
            "Hem Style",
            "hem",
            _v("no-cuff", "No Cuff"),
            _v("cuffed", "Cuffed", "5"),
            _v("turn-up", "Turn Up", "8"),
            _v("unfinished", "Unfinished (Tailor Hem)"),
        ),
        # "No belt loops" is the family's none value, so it carries no price change.
        _style(
            "belt-loops",
            "Belt Loops",
            "belt_loops",
            _v("standard", "Standard Belt Loops"),
            _v("extended", "Extended Belt Loops", "5"),
            _v("no-loops", "No Belt Loops", is_none=True),
        ),
    )
    return make_catalog(
        product_id="pants-001",
        garment_type="pants",
        display_name="Tailored Trousers",
        categories=categories,
    )


def load_sample_jacket() -> OptionCatalog:
    """
    Suit jacket: the full set of style families, button categories and a lining colour palette.
    """
    categories = (
        CategoryDefinition(
            id="fabric-color",
            display_name="Fabric Color",
            kind=CategoryKind.COLOR,
            role=CategoryRole.FABRIC_COLOR,
            values=(
                _v("navy", "Navy", color="#1565C0"),
                _v("charcoal", "Charcoal", color="#424242"),
                _v("black", "Black", "10", color="#000000"),
                _v("brown", "Brown", "5", color="#5D4037"),
                _v("burgundy", "Burgundy", "15", color="#8E24AA"),
                _v("forest", "Forest Green", "15", color="#2E7D32"),
                _v("midnight", "Midnight Blue", "10", color="#0D47A1"),
            ),
        ),
        _fabric_types(
            ("wool", "Wool", "0", 0.7),
            ("cashmere", "Cashmere", "200", 0.3),
            ("tweed", "Tweed", "50", 0.9),
            ("velvet", "Velvet", "75", 0.9),
            ("linen", "Linen", "30", 0.9),
            ("wool-silk", "Wool-Silk Blend", "100", 0.6),
        ),
        CategoryDefinition(
            id="jacket-style",
            display_name="Jacket Style",
            kind=CategoryKind.COMPONENT,
            values=(
                _v("single-breasted", "Single Breasted"),
                _v("double-breasted", "Double Breasted", "50"),
                _v("three-piece", "Three Piece (with Vest)", "150", show=("vest",)),
            ),
        ),
        _style(
            "lapel-style",
            "Lapel Style",
            "lapel",
            _v("notched", "Notched Lapel"),
            _v("peak", "Peak Lapel", "25"),
            _v("shawl", "Shawl Lapel", "30"),
            _v("wide-peak", "Wide Peak Lapel", "35"),
        ),
        CategoryDefinition(
            id="button-configuration",
            display_name="Button Configuration",
            kind=CategoryKind.COMPONENT,
            role=CategoryRole.BUTTON_CONFIGURATION,
            family="buttons",
            values=(
                _v("two-button", "Two Button", layout=ButtonLayoutRef(2, "single-breasted")),
                _v("three-button", "Three Button", "5", layout=ButtonLayoutRef(3, "single-breasted")),
                _v("one-button", "One Button", "10", layout=ButtonLayoutRef(1, "single-breasted")),
                _v(
                    "four-button",
                    "Four Button (Double Breasted)",
                    "15",
                    layout=ButtonLayoutRef(6, "double-breasted"),
                ),
            ),
        ),
        _style(
            "vent-style",
            "Vent Style",
            "vent",
            _v("no-vent", "No Vent", is_none=True),
            _v("center-vent", "Center Vent", "5"),
            _v("side-vents", "Side Vents", "10"),
            default="no-vent",
        ),
        _style(
            "pocket-style",
            "Pocket Style",
            "pocket",
            _v("flap-pockets", "Flap Pockets"),
            _v("jetted-pockets", "Jetted Pockets", "10"),
            _v("patch-pockets", "Patch Pockets", "15"),
            _v("ticket-pocket", "With Ticket Pocket", "12", show=("pocket_ticket",)),
        ),
        CategoryDefinition(
            id="canvas-type",
            display_name="Canvas Construction",
            kind=CategoryKind.COMPONENT,
            values=(
                _v("half-canvas", "Half Canvas"),
                _v("full-canvas", "Full Canvas", "100"),
                _v("fused", "Fused", "-25"),
            ),
        ),
        CategoryDefinition(
            id="button-material",
            display_name="Button Material",
            kind=CategoryKind.COMPONENT,
            role=CategoryRole.BUTTON_MATERIAL,
            values=(
                _v("horn", "Horn", material=MaterialParams(roughness=0.4, metalness=0.1)),
                _v(
                    "mother-of-pearl",
                    "Mother of Pearl",
                    "25",
                    material=MaterialParams(roughness=0.1, metalness=0.8, opacity=0.9),
                ),
                _v("corozo", "Corozo Nut", "15", material=MaterialParams(roughness=0.6, metalness=0.2)),
                _v("metal", "Metal", "20", material=MaterialParams(roughness=0.2, metalness=0.9)),
            ),
        ),
        CategoryDefinition(
            id="button-style",
            display_name="Button Style",
            kind=CategoryKind.COMPONENT,
            role=CategoryRole.BUTTON_STYLE,
            values=(
                _v("classic-round", "Classic Round"),
                _v("beveled-edge", "Beveled Edge", "5"),
                _v("flat-modern", "Flat Modern", "8"),
                _v("domed", "Domed", "10"),
                _v("vintage-shank", "Vintage Shank", "15"),
                _v("square-modern", "Square Modern", "12"),
            ),
        ),
        CategoryDefinition(
            id="button-color",
            display_name="Button Color",
            kind=CategoryKind.COLOR,
            role=CategoryRole.BUTTON_COLOR,
            values=(
                _v("natural", "Natural", color="#F5E6D3"),
                _v("dark-brown", "Dark Brown", "5", color="#4A2C2A"),
                _v("black", "Black", "5", color="#1A1A1A"),
                _v("navy", "Navy", "5", color="#1565C0"),
                _v("gold", "Gold", "15", color="#FFD700"),
                _v("silver", "Silver", "12", color="#C0C0C0"),
                _v("bronze", "Bronze", "12", color="#CD7F32"),
                _v("pearl-white", "Pearl White", "10", color="#F8F8FF"),
            ),
        ),
        CategoryDefinition(
            id="lining-color",
            display_name="Lining Color",
            kind=CategoryKind.COLOR,
            role=CategoryRole.LINING_COLOR,
            values=tuple(_v(cid, name, color=hex_color) for cid, name, hex_color in LINING_COLORS),
        ),
    )
    return make_catalog(
        product_id="jacket-001",
        garment_type="jacket",
        display_name="Bespoke Suit Jacket",
        categories=categories,
        monogram_positions=("chest", "inside-pocket", "cuff", "lining"),
        thread_colors=THREAD_COLORS,
    )


_SAMPLE_LOADERS: Dict[str, Callable[[], OptionCatalog]] = {
    "shirt-001": load_sample_shirt,
    "pants-001": load_sample_pants,
    "jacket-001": load_sample_jacket,
}

SAMPLE_PRODUCT_IDS: Tuple[str, ...] = tuple(_SAMPLE_LOADERS)

_SAMPLE_PRICE_RULES: Dict[str, GarmentPriceRules] = {
    "shirt-001": GarmentPriceRules(
        base_price=Decimal("89.00"),
        monogram_fee_by_type={
            MonogramType.INITIALS: Decimal("6.50"),
            MonogramType.FULL_NAME: Decimal("10.00"),
        },
    ),
    "pants-001": GarmentPriceRules(base_price=Decimal("129.00")),
    "jacket-001": GarmentPriceRules(
        base_price=Decimal("399.00"),
        monogram_fee_by_position={
            "chest": Decimal("25.00"),
            "inside-pocket": Decimal("20.00"),
            "cuff": Decimal("30.00"),
            "lining": Decimal("35.00"),
        },
    ),
}


def load_sample_catalog(product_id: str) -> OptionCatalog:
    loader = _SAMPLE_LOADERS.get(product_id)
    if loader is None:
        raise CatalogUnavailable(f"No sample catalog for product {product_id!r}")
    return loader()


def sample_price_rules(product_id: str) -> GarmentPriceRules:
    rules = _SAMPLE_PRICE_RULES.get(product_id)
    if rules is None:
        raise CatalogUnavailable(f"No sample price rules for product {product_id!r}")
    return rules
