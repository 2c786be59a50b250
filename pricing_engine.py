from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Mapping, Tuple, Union

from configuration_state import (
    ConfigurationState,
    LiningType,
    MonogramType,
    SizeType,
)
from option_catalog import OptionCatalog

Amount = Union[Decimal, int, str]

_CENTS = Decimal("0.01")


class PriceComputationInvariant(RuntimeError):
    pass


@dataclass(frozen=True)
class GarmentPriceRules:
    base_price: Decimal
    custom_measurement_surcharge: Decimal = Decimal("25.00")
    custom_lining_surcharge: Decimal = Decimal("25.00")
    no_lining_discount: Decimal = Decimal("15.00")
    monogram_fee_by_type: Mapping[MonogramType, Decimal] = field(default_factory=dict)
    # key: monogram position id -> fee
    monogram_fee_by_position: Mapping[str, Decimal] = field(default_factory=dict)
    currency: str = "USD"


@dataclass(frozen=True)
class LineItem:
    code: str
    description: str
    amount: Decimal


@dataclass(frozen=True)
class PriceQuote:
    line_items: Tuple[LineItem, ...]
    unit_price: Decimal
    quantity: int
    total: Decimal
    currency: str = "USD"
    notes: Tuple[str, ...] = ()

    @property
    def display_total(self) -> Decimal:
        return display_price(self.total)


def _to_decimal(value: Amount) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


def monogram_fee(state: ConfigurationState, rules: GarmentPriceRules) -> Decimal:
    """
    Type tier plus position fee; zero unless the monogram is enabled, positioned, and has text.
    """
    mono = state.monogram
    if not mono.is_active:
        return Decimal("0")
    by_type = _to_decimal(rules.monogram_fee_by_type.get(mono.monogram_type, 0))
    by_position = _to_decimal(rules.monogram_fee_by_position.get(mono.position, 0))
    return by_type + by_position


def generate_price_quote(
    state: ConfigurationState,
    catalog: OptionCatalog,
    base_price: Amount,
    rules: GarmentPriceRules,
) -> PriceQuote:
    """
    Itemised price for one configuration.

    Terms are added in a fixed order: base, selection deltas, measurement surcharge, lining
    modifier, monogram fee. The per-unit price is floored at zero and multiplied by quantity
    last. Amounts are carried at full precision; round only for display.
    """
    notes: List[str] = []
    line_items: List[LineItem] = [
        LineItem(code="BASE", description="Base price", amount=_to_decimal(base_price)),
    ]

    # Deltas were captured at selection time; the catalog is only used for labels.
    for category_id, sel in state.selections.items():
        if sel.resolved_price_delta == 0:
            continue
        category = catalog.categories.get(category_id)
        label = category.display_name if category is not None else category_id
        line_items.append(
            LineItem(
                code=f"OPTION:{category_id}",
                description=f"{label}: {sel.value_name}",
                amount=sel.resolved_price_delta,
            )
        )

    if state.measurement.size_type == SizeType.CUSTOM:
        line_items.append(
            LineItem(
                code="CUSTOM_MEASUREMENTS",
                description="Custom measurements",
                amount=_to_decimal(rules.custom_measurement_surcharge),
            )
        )

    if state.lining.type == LiningType.CUSTOM:
        line_items.append(
            LineItem(
                code="LINING",
                description="Custom lining",
                amount=_to_decimal(rules.custom_lining_surcharge),
            )
        )
    elif state.lining.type == LiningType.NONE:
        line_items.append(
            LineItem(
                code="LINING",
                description="No lining",
                amount=-_to_decimal(rules.no_lining_discount),
            )
        )

    fee = monogram_fee(state, rules)
    if fee != 0:
        mono = state.monogram
        line_items.append(
            LineItem(
                code="MONOGRAM",
                description=f"Monogram ({mono.monogram_type.value}, {mono.position}): {mono.text}",
                amount=fee,
            )
        )

    unit_price = sum((li.amount for li in line_items), Decimal("0"))
    if unit_price < 0:
        notes.append("Discounts exceed the garment price; the unit price is floored at 0.00.")
        unit_price = Decimal("0")

    total = unit_price * state.quantity
    if total < 0:
        raise PriceComputationInvariant(f"Negative total after clamping: {total}")
    if state.quantity > 1:
        notes.append(f"Unit price {format_price(unit_price, rules.currency)} x {state.quantity}.")

    return PriceQuote(
        line_items=tuple(line_items),
        unit_price=unit_price,
        quantity=state.quantity,
        total=total,
        currency=rules.currency,
        notes=tuple(notes),
    )


def compute_price(
    state: ConfigurationState,
    catalog: OptionCatalog,
    base_price: Amount,
    rules: GarmentPriceRules,
) -> Decimal:
    return generate_price_quote(state, catalog, base_price, rules).total


def display_price(amount: Amount) -> Decimal:
    return _to_decimal(amount).quantize(_CENTS, rounding=ROUND_HALF_UP)


_CURRENCY_SYMBOLS = {"USD": "$", "EUR": "€", "GBP": "£"}


def format_price(amount: Amount, currency: str = "USD") -> str:
    value = display_price(amount)
    symbol = _CURRENCY_SYMBOLS.get(currency.upper())
    sign = "-" if value < 0 else ""
    if symbol is None:
        return f"{sign}{abs(value):,.2f} {currency.upper()}"
    return f"{sign}{symbol}{abs(value):,.2f}"
