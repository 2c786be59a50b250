from __future__ import annotations

import json
import unittest
from dataclasses import replace
from decimal import Decimal
from types import MappingProxyType

from configuration_state import (
    ConfigurationError,
    InvalidMeasurementInput,
    InvalidMonogramInput,
    LiningType,
    SizeType,
    clear_selection,
    new_configuration,
    reset,
    select,
    set_quantity,
    state_from_payload,
    state_to_payload,
    update_buttons,
    update_lining,
    update_measurement,
    update_monogram,
)
from option_catalog import UnknownCategory, UnknownValue
from sample_catalogs import load_sample_jacket, load_sample_shirt


class TestSelections(unittest.TestCase):
    def test_select_snapshots_price_and_visual(self) -> None:
        catalog = load_sample_shirt()
        state = select(new_configuration("shirt-001"), catalog, "fabric-color", "navy")
        sel = state.selections["fabric-color"]
        self.assertEqual(sel.value_name, "Navy")
        self.assertEqual(sel.resolved_price_delta, Decimal("5"))
        self.assertEqual(sel.resolved_visual.color, "#1565C0")  # type: ignore[union-attr]

    def test_select_replaces_previous_value(self) -> None:
        catalog = load_sample_shirt()
        state = select(new_configuration("shirt-001"), catalog, "collar-style", "button-down")
        state = select(state, catalog, "collar-style", "spread")
        self.assertEqual(state.selected_value_id("collar-style"), "spread")
        self.assertEqual(len(state.selections), 1)

    def test_select_does_not_mutate_input(self) -> None:
        catalog = load_sample_shirt()
        before = new_configuration("shirt-001")
        after = select(before, catalog, "fabric-type", "silk")
        self.assertEqual(dict(before.selections), {})
        self.assertIn("fabric-type", after.selections)

    def test_unknown_ids_raise(self) -> None:
        catalog = load_sample_shirt()
        with self.assertRaises(UnknownCategory):
            select(new_configuration("shirt-001"), catalog, "lapel-style", "peak")
        with self.assertRaises(UnknownValue):
            select(new_configuration("shirt-001"), catalog, "fabric-type", "polyester")

    def test_snapshot_survives_catalog_change(self) -> None:
        catalog = load_sample_shirt()
        state = select(new_configuration("shirt-001"), catalog, "fabric-type", "linen")
        category = catalog.categories["fabric-type"]
        repriced = replace(
            category,
            values=tuple(
                replace(v, price_delta=Decimal("99")) if v.id == "linen" else v for v in category.values
            ),
        )
        changed = replace(catalog, categories=MappingProxyType({**catalog.categories, "fabric-type": repriced}))
        self.assertEqual(changed.get_value("fabric-type", "linen").price_delta, Decimal("99"))
        self.assertEqual(state.selections["fabric-type"].resolved_price_delta, Decimal("15"))

    def test_button_roles_are_mirrored(self) -> None:
        catalog = load_sample_jacket()
        state = select(new_configuration("jacket-001"), catalog, "button-material", "horn")
        state = select(state, catalog, "button-configuration", "three-button")
        self.assertEqual(state.buttons.material_id, "horn")
        self.assertEqual(state.buttons.configuration_id, "three-button")

        cleared = clear_selection(state, "button-material", catalog=catalog)
        self.assertIsNone(cleared.buttons.material_id)
        self.assertNotIn("button-material", cleared.selections)

    def test_clear_missing_selection_is_a_no_op(self) -> None:
        state = new_configuration("shirt-001")
        self.assertIs(clear_selection(state, "fabric-type"), state)

    def test_update_buttons_uses_catalog_roles(self) -> None:
        jacket = load_sample_jacket()
        state = update_buttons(new_configuration("jacket-001"), jacket, {"color_id": "gold", "style_id": "domed"})
        self.assertEqual(state.selected_value_id("button-color"), "gold")
        self.assertEqual(state.buttons.style_id, "domed")

        state = update_buttons(state, jacket, {"color_id": None})
        self.assertIsNone(state.buttons.color_id)

        with self.assertRaises(UnknownCategory):
            update_buttons(new_configuration("shirt-001"), load_sample_shirt(), {"material_id": "horn"})
        with self.assertRaises(ConfigurationError):
            update_buttons(state, jacket, {"shape": "round"})

    def test_reset(self) -> None:
        catalog = load_sample_shirt()
        state = set_quantity(select(new_configuration("shirt-001"), catalog, "fabric-type", "silk"), 4)
        fresh = reset(state)
        self.assertEqual(fresh, new_configuration("shirt-001"))


class TestMeasurements(unittest.TestCase):
    def test_merge_and_remove(self) -> None:
        state = update_measurement(
            new_configuration("shirt-001"),
            {"size_type": "custom", "custom_measurements": {"chest": "40.5", "neck": 15}},
        )
        state = update_measurement(state, {"custom_measurements": {"neck": None, "sleeve": "34"}})
        m = state.measurement
        self.assertEqual(m.size_type, SizeType.CUSTOM)
        self.assertEqual(dict(m.custom_measurements), {"chest": Decimal("40.5"), "sleeve": Decimal("34")})

    def test_invalid_numbers_coerce_to_zero_with_warning(self) -> None:
        with self.assertLogs("configuration_state", level="WARNING"):
            state = update_measurement(
                new_configuration("shirt-001"),
                {"custom_measurements": {"chest": "abc", "waist": -3, "hip": "NaN"}},
            )
        self.assertEqual(set(state.measurement.custom_measurements.values()), {Decimal("0")})

    def test_strict_mode_raises(self) -> None:
        with self.assertRaises(InvalidMeasurementInput):
            update_measurement(new_configuration("shirt-001"), {"custom_measurements": {"chest": "abc"}}, strict=True)

    def test_unknown_field_and_bad_enum_raise(self) -> None:
        with self.assertRaises(InvalidMeasurementInput):
            update_measurement(new_configuration("shirt-001"), {"height": 70})
        with self.assertRaises(InvalidMeasurementInput):
            update_measurement(new_configuration("shirt-001"), {"size_type": "bespoke"})

    def test_standard_size_blank_becomes_none(self) -> None:
        state = update_measurement(new_configuration("shirt-001"), {"standard_size": "  ", "fit_type": "slim"})
        self.assertIsNone(state.measurement.standard_size)
        self.assertEqual(state.measurement.fit_type, "slim")


class TestMonogram(unittest.TestCase):
    def test_text_is_normalised(self) -> None:
        catalog = load_sample_shirt()
        state = update_monogram(
            new_configuration("shirt-001"),
            {"enabled": True, "text": " ab ", "position": "chest"},
            catalog=catalog,
        )
        self.assertEqual(state.monogram.text, "AB")
        self.assertTrue(state.monogram.is_active)

    def test_length_limits_follow_type(self) -> None:
        state = new_configuration("shirt-001")
        with self.assertRaises(InvalidMonogramInput):
            update_monogram(state, {"text": "ABCD"})
        full = update_monogram(state, {"monogram_type": "full-name", "text": "J. O'Neil-Smith"})
        self.assertEqual(full.monogram.text, "J. O'NEIL-SMITH")
        with self.assertRaises(InvalidMonogramInput):
            update_monogram(state, {"monogram_type": "generic", "text": "ABCDE"})

    def test_digits_rejected(self) -> None:
        with self.assertRaises(InvalidMonogramInput):
            update_monogram(new_configuration("shirt-001"), {"text": "A1"})

    def test_position_checked_against_catalog(self) -> None:
        catalog = load_sample_shirt()
        with self.assertRaises(InvalidMonogramInput):
            update_monogram(new_configuration("shirt-001"), {"position": "lining"}, catalog=catalog)
        state = update_monogram(new_configuration("shirt-001"), {"position": "no-monogram"}, catalog=catalog)
        self.assertFalse(state.monogram.is_active)

    def test_text_without_position_is_inactive(self) -> None:
        state = update_monogram(new_configuration("shirt-001"), {"enabled": True, "text": "AB"})
        self.assertFalse(state.monogram.is_active)


class TestLiningAndQuantity(unittest.TestCase):
    def test_custom_lining_selects_colour(self) -> None:
        jacket = load_sample_jacket()
        state = update_lining(new_configuration("jacket-001"), jacket, {"type": "custom", "color_id": "teal"})
        self.assertEqual(state.lining.type, LiningType.CUSTOM)
        self.assertEqual(state.lining.color_id, "teal")
        self.assertEqual(state.selected_value_id("lining-color"), "teal")

    def test_no_lining_clears_colour(self) -> None:
        jacket = load_sample_jacket()
        state = update_lining(new_configuration("jacket-001"), jacket, {"type": "custom", "color_id": "teal"})
        state = update_lining(state, jacket, {"type": "none"})
        self.assertIsNone(state.lining.color_id)
        self.assertNotIn("lining-color", state.selections)

    def test_colour_with_no_lining_rejected(self) -> None:
        jacket = load_sample_jacket()
        with self.assertRaises(ConfigurationError):
            update_lining(new_configuration("jacket-001"), jacket, {"type": "none", "color_id": "teal"})
        with self.assertRaises(ConfigurationError):
            update_lining(new_configuration("jacket-001"), jacket, {"pattern": "paisley"})

    def test_select_cannot_colour_a_missing_lining(self) -> None:
        jacket = load_sample_jacket()
        state = update_lining(new_configuration("jacket-001"), jacket, {"type": "none"})
        with self.assertRaises(ConfigurationError):
            select(state, jacket, "lining-color", "navy")
        self.assertIsNone(state.lining.color_id)
        self.assertNotIn("lining-color", state.selections)

    def test_lining_monogram_needs_a_lining(self) -> None:
        jacket = load_sample_jacket()
        unlined = update_lining(new_configuration("jacket-001"), jacket, {"type": "none"})
        with self.assertRaises(InvalidMonogramInput):
            update_monogram(unlined, {"enabled": True, "text": "ABC", "position": "lining"}, catalog=jacket)

        lined = update_monogram(
            new_configuration("jacket-001"),
            {"enabled": True, "text": "ABC", "position": "lining"},
            catalog=jacket,
        )
        with self.assertLogs("configuration_state", level="INFO"):
            dropped = update_lining(lined, jacket, {"type": "none"})
        self.assertEqual(dropped.monogram.position, "no-monogram")
        self.assertFalse(dropped.monogram.is_active)

    def test_quantity(self) -> None:
        state = set_quantity(new_configuration("shirt-001"), 3)
        self.assertEqual(state.quantity, 3)
        for bad in (0, -1, True, 2.5):
            with self.assertRaises(ConfigurationError):
                set_quantity(state, bad)  # type: ignore[arg-type]


class TestSnapshots(unittest.TestCase):
    def _configured(self):
        jacket = load_sample_jacket()
        state = new_configuration("jacket-001")
        state = select(state, jacket, "fabric-color", "charcoal")
        state = select(state, jacket, "button-configuration", "four-button")
        state = update_lining(state, jacket, {"type": "custom", "color_id": "burgundy"})
        state = update_measurement(state, {"size_type": "custom", "custom_measurements": {"chest": "42"}})
        state = update_monogram(state, {"enabled": True, "text": "abc", "position": "lining"}, catalog=jacket)
        state = set_quantity(state, 2)
        return jacket, state

    def test_payload_is_json_and_replays(self) -> None:
        jacket, state = self._configured()
        payload = json.loads(json.dumps(state_to_payload(state)))
        restored = state_from_payload(payload, jacket)
        self.assertEqual(restored, state)

    def test_product_mismatch_rejected(self) -> None:
        jacket, state = self._configured()
        with self.assertRaises(ConfigurationError):
            state_from_payload(state_to_payload(state), load_sample_shirt())

    def test_stale_value_rejected(self) -> None:
        jacket, state = self._configured()
        payload = state_to_payload(state)
        payload["selections"]["fabric-color"]["value_id"] = "tartan"
        with self.assertRaises(UnknownValue):
            state_from_payload(payload, jacket)

    def test_bad_measurement_in_snapshot_rejected(self) -> None:
        jacket, state = self._configured()
        payload = state_to_payload(state)
        payload["measurement"]["custom_measurements"]["chest"] = "lots"
        with self.assertRaises(InvalidMeasurementInput):
            state_from_payload(payload, jacket)


if __name__ == "__main__":
    unittest.main()
