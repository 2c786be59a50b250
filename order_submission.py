from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Protocol, Set, Tuple

from configuration_state import ConfigurationState, SizeType, state_to_payload
from option_catalog import OptionCatalog
from pricing_engine import GarmentPriceRules, PriceQuote, display_price, generate_price_quote

logger = logging.getLogger(__name__)


class OrderError(RuntimeError):
    pass


class PaymentError(OrderError):
    pass


class CustomerInfoIncomplete(ValueError):
    def __init__(self, missing: Tuple[str, ...]) -> None:
        super().__init__(f"Missing customer details: {', '.join(missing)}")
        self.missing = missing


@dataclass(frozen=True)
class Customer:
    first_name: str
    last_name: str
    email: str
    phone: str
    address: str
    city: str
    state: str
    zip_code: str
    country: str = "United States"

    def missing_fields(self) -> Tuple[str, ...]:
        return tuple(k for k, v in asdict(self).items() if not str(v or "").strip())


@dataclass(frozen=True)
class OrderRequest:
    payload: Mapping[str, Any]
    total: Decimal
    customer: Customer
    payment_reference: str


@dataclass(frozen=True)
class OrderConfirmation:
    order_id: str
    status: str
    total: Decimal


class OrderSubmitter(Protocol):
    def submit(self, order: OrderRequest) -> OrderConfirmation:
        ...


class MeasurementSummaryCache(Protocol):
    def put(self, key: str, summary: Mapping[str, str]) -> None:
        ...

    def get(self, key: str) -> Optional[Mapping[str, str]]:
        ...


class InMemoryMeasurementCache:
    def __init__(self) -> None:
        self._items: Dict[str, Dict[str, str]] = {}

    def put(self, key: str, summary: Mapping[str, str]) -> None:
        self._items[key] = dict(summary)

    def get(self, key: str) -> Optional[Mapping[str, str]]:
        item = self._items.get(key)
        return dict(item) if item is not None else None


class InMemoryOrderSubmitter:
    """
    Local stand-in for the order backend: records orders and issues sequential ids.

    Payment references listed in `declined_references` fail with `PaymentError`.
    """

    def __init__(self, *, declined_references: Optional[Set[str]] = None) -> None:
        self.orders: List[OrderRequest] = []
        self._declined = set(declined_references or ())

    def submit(self, order: OrderRequest) -> OrderConfirmation:
        if not order.payment_reference.strip() or order.payment_reference in self._declined:
            raise PaymentError("Payment was declined")
        self.orders.append(order)
        return OrderConfirmation(
            order_id=f"ORD-{len(self.orders):05d}",
            status="confirmed",
            total=order.total,
        )


def _format_amount(value: Decimal) -> str:
    return format(value.normalize(), "f")


def measurement_summary(state: ConfigurationState) -> Dict[str, str]:
    """
    Human-readable measurement lines for the order summary.
    """
    m = state.measurement
    out: Dict[str, str] = {
        "Size type": m.size_type.value.title(),
        "Method": m.measurement_method.value.title(),
    }
    if m.size_type == SizeType.STANDARD:
        out["Size"] = m.standard_size or "-"
        out["Fit"] = m.fit_type or "-"
        return out
    for key in sorted(m.custom_measurements):
        out[key.replace("_", " ").title()] = f"{_format_amount(m.custom_measurements[key])} in"
    return out


def _quote_payload(quote: PriceQuote) -> Dict[str, Any]:
    return {
        "line_items": [
            {"code": li.code, "description": li.description, "amount": str(display_price(li.amount))}
            for li in quote.line_items
        ],
        "unit_price": str(display_price(quote.unit_price)),
        "quantity": quote.quantity,
        "total": str(display_price(quote.total)),
        "currency": quote.currency,
        "notes": list(quote.notes),
    }


def build_order_payload(state: ConfigurationState, quote: PriceQuote, customer: Customer) -> Dict[str, Any]:
    """
    JSON-serialisable order snapshot: configuration, itemised price, customer, measurement summary.
    """
    return {
        "product_id": state.product_id,
        "configuration": state_to_payload(state),
        "price": _quote_payload(quote),
        "customer": asdict(customer),
        "measurement_summary": measurement_summary(state),
    }


def submit_order(
    submitter: OrderSubmitter,
    state: ConfigurationState,
    catalog: OptionCatalog,
    rules: GarmentPriceRules,
    customer: Customer,
    payment_reference: str,
    *,
    cache: Optional[MeasurementSummaryCache] = None,
) -> OrderConfirmation:
    missing = customer.missing_fields()
    if missing:
        raise CustomerInfoIncomplete(missing)

    quote = generate_price_quote(state, catalog, rules.base_price, rules)
    payload = build_order_payload(state, quote, customer)
    if cache is not None:
        cache.put(state.product_id, payload["measurement_summary"])

    order = OrderRequest(
        payload=payload,
        total=display_price(quote.total),
        customer=customer,
        payment_reference=payment_reference,
    )
    try:
        confirmation = submitter.submit(order)
    except PaymentError:
        logger.warning("Payment failed for %s order (total %s)", state.product_id, order.total)
        raise
    logger.info(
        "Submitted order %s for %s x%d (total %s %s)",
        confirmation.order_id,
        state.product_id,
        state.quantity,
        order.total,
        quote.currency,
    )
    return confirmation
