from __future__ import annotations

import unittest
from decimal import Decimal

from configuration_state import (
    MonogramType,
    new_configuration,
    select,
    set_quantity,
    update_lining,
    update_measurement,
    update_monogram,
)
from pricing_engine import (
    GarmentPriceRules,
    compute_price,
    display_price,
    format_price,
    generate_price_quote,
    monogram_fee,
)
from sample_catalogs import load_sample_jacket, load_sample_shirt, sample_price_rules


def _print_quote(label: str, quote) -> None:
    print("\n" + "=" * 72)
    print(label)
    for li in quote.line_items:
        print(f"  - {li.code}: {format_price(li.amount, quote.currency)} | {li.description}")
    print(f"TOTAL  {format_price(quote.total, quote.currency)} (x{quote.quantity})")
    for n in quote.notes:
        print(f"  - {n}")
    print("=" * 72)


class TestPricingEngine(unittest.TestCase):
    def setUp(self) -> None:
        self.shirt = load_sample_shirt()
        self.shirt_rules = sample_price_rules("shirt-001")

    def _shirt_linen_spread(self):
        state = select(new_configuration("shirt-001"), self.shirt, "fabric-type", "linen")
        return select(state, self.shirt, "collar-style", "spread")

    def test_standard_size_with_fabric_and_collar(self) -> None:
        state = self._shirt_linen_spread()
        quote = generate_price_quote(state, self.shirt, Decimal("89"), self.shirt_rules)
        _print_quote("shirt linen + spread", quote)
        self.assertEqual(quote.total, Decimal("104"))
        self.assertEqual([li.code for li in quote.line_items], ["BASE", "OPTION:fabric-type"])
        self.assertEqual(quote.display_total, Decimal("104.00"))

    def test_custom_measurements_add_surcharge(self) -> None:
        state = update_measurement(self._shirt_linen_spread(), {"size_type": "custom"})
        quote = generate_price_quote(state, self.shirt, Decimal("89"), self.shirt_rules)
        self.assertEqual(display_price(quote.total), Decimal("129.00"))
        self.assertEqual(quote.line_items[-1].code, "CUSTOM_MEASUREMENTS")

    def test_quantity_multiplies_after_all_terms(self) -> None:
        state = set_quantity(new_configuration("shirt-001"), 3)
        rules = GarmentPriceRules(base_price=Decimal("50.00"))
        quote = generate_price_quote(state, self.shirt, rules.base_price, rules)
        self.assertEqual(quote.unit_price, Decimal("50.00"))
        self.assertEqual(quote.total, Decimal("150.00"))
        self.assertTrue(any("x 3" in n for n in quote.notes))

    def test_monogram_text_without_position_is_free(self) -> None:
        state = update_monogram(
            new_configuration("shirt-001"),
            {"enabled": True, "text": "AB", "position": "no-monogram"},
            catalog=self.shirt,
        )
        self.assertEqual(monogram_fee(state, self.shirt_rules), Decimal("0"))
        quote = generate_price_quote(state, self.shirt, self.shirt_rules.base_price, self.shirt_rules)
        self.assertNotIn("MONOGRAM", [li.code for li in quote.line_items])

    def test_monogram_fee_is_type_tier_plus_position(self) -> None:
        rules = GarmentPriceRules(
            base_price=Decimal("100"),
            monogram_fee_by_type={MonogramType.INITIALS: Decimal("6.50")},
            monogram_fee_by_position={"chest": Decimal("25")},
        )
        state = update_monogram(
            new_configuration("shirt-001"),
            {"enabled": True, "text": "AB", "position": "chest"},
            catalog=self.shirt,
        )
        self.assertEqual(monogram_fee(state, rules), Decimal("31.50"))
        self.assertEqual(compute_price(state, self.shirt, rules.base_price, rules), Decimal("131.50"))

    def test_jacket_lining_and_monogram_position_fee(self) -> None:
        jacket = load_sample_jacket()
        rules = sample_price_rules("jacket-001")
        state = update_lining(new_configuration("jacket-001"), jacket, {"type": "custom", "color_id": "teal"})
        state = update_monogram(state, {"enabled": True, "text": "ABC", "position": "lining"}, catalog=jacket)
        quote = generate_price_quote(state, jacket, rules.base_price, rules)
        _print_quote("jacket custom lining + lining monogram", quote)
        self.assertEqual(quote.total, Decimal("399.00") + Decimal("25.00") + Decimal("35.00"))

        # Removing the lining takes the lining monogram and its fee with it.
        no_lining = update_lining(state, jacket, {"type": "none"})
        self.assertEqual(no_lining.monogram.position, "no-monogram")
        self.assertEqual(monogram_fee(no_lining, rules), Decimal("0"))
        self.assertEqual(
            compute_price(no_lining, jacket, rules.base_price, rules),
            Decimal("399.00") - Decimal("15.00"),
        )

    def test_price_is_monotonic_in_deltas(self) -> None:
        jacket = load_sample_jacket()
        rules = sample_price_rules("jacket-001")
        state = new_configuration("jacket-001")
        previous = compute_price(state, jacket, rules.base_price, rules)
        for category_id, value_id in (
            ("fabric-type", "cashmere"),
            ("lapel-style", "peak"),
            ("button-material", "metal"),
            ("button-color", "gold"),
        ):
            state = select(state, jacket, category_id, value_id)
            current = compute_price(state, jacket, rules.base_price, rules)
            self.assertGreater(current, previous)
            previous = current

        discounted = select(state, jacket, "canvas-type", "fused")
        self.assertLess(compute_price(discounted, jacket, rules.base_price, rules), previous)

    def test_negative_unit_price_is_floored(self) -> None:
        jacket = load_sample_jacket()
        rules = GarmentPriceRules(base_price=Decimal("10"))
        state = set_quantity(select(new_configuration("jacket-001"), jacket, "canvas-type", "fused"), 2)
        quote = generate_price_quote(state, jacket, rules.base_price, rules)
        self.assertEqual(quote.unit_price, Decimal("0"))
        self.assertEqual(quote.total, Decimal("0"))
        self.assertTrue(any("floored" in n for n in quote.notes))

    def test_display_rounding_and_formatting(self) -> None:
        self.assertEqual(display_price(Decimal("0.005")), Decimal("0.01"))
        self.assertEqual(display_price("12.344"), Decimal("12.34"))
        self.assertEqual(format_price(Decimal("1234.5")), "$1,234.50")
        self.assertEqual(format_price(Decimal("-15"), "usd"), "-$15.00")
        self.assertEqual(format_price(Decimal("1234.5"), "CHF"), "1,234.50 CHF")


if __name__ == "__main__":
    unittest.main()
