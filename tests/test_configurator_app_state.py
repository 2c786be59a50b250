from __future__ import annotations

import unittest

import configurator_app
from configuration_state import new_configuration, select
from normalized_catalogs import CatalogLoadResult
from sample_catalogs import load_sample_shirt, sample_price_rules
from step_rules import default_steps


class TestConfiguratorAppState(unittest.TestCase):
    def setUp(self) -> None:
        self.catalog = load_sample_shirt()
        self.steps = default_steps(self.catalog)
        self.fake_session_state: dict[str, object] = {}
        self.original_session_state = configurator_app.st.session_state
        configurator_app.st.session_state = self.fake_session_state  # type: ignore[assignment]

    def tearDown(self) -> None:
        configurator_app.st.session_state = self.original_session_state

    def test_state_is_created_per_product(self) -> None:
        state = configurator_app._config_state("shirt-001")
        self.assertEqual(state, new_configuration("shirt-001"))
        self.assertIs(configurator_app._config_state("shirt-001"), state)

        other = configurator_app._config_state("jacket-001")
        self.assertEqual(other.product_id, "jacket-001")

    def test_apply_commits_and_undo_restores(self) -> None:
        ok = configurator_app._apply(lambda s: select(s, self.catalog, "fabric-type", "silk"), "shirt-001")
        self.assertTrue(ok)
        self.assertEqual(configurator_app._config_state("shirt-001").selected_value_id("fabric-type"), "silk")

        self.assertTrue(configurator_app._undo())
        self.assertNotIn("fabric-type", configurator_app._config_state("shirt-001").selections)
        self.assertFalse(configurator_app._undo())

    def test_unchanged_state_is_not_pushed_to_undo(self) -> None:
        configurator_app._apply(lambda s: s, "shirt-001")
        self.assertEqual(self.fake_session_state.get("undo_stack") or [], [])

    def test_apply_reports_data_errors(self) -> None:
        ok = configurator_app._apply(lambda s: select(s, self.catalog, "fabric-type", "polyester"), "shirt-001")
        self.assertFalse(ok)
        self.assertIn("polyester", str(self.fake_session_state["_flash_error"]))
        self.assertEqual(configurator_app._config_state("shirt-001"), new_configuration("shirt-001"))

    def test_advance_is_gated_by_step_completion(self) -> None:
        self.assertFalse(configurator_app._advance(self.steps, "shirt-001"))
        self.assertEqual(self.fake_session_state["wizard_step"], 0)
        self.assertIn("_flash_error", self.fake_session_state)

        configurator_app._apply(
            lambda s: select(select(s, self.catalog, "fabric-color", "navy"), self.catalog, "fabric-type", "wool"),
            "shirt-001",
        )
        self.assertTrue(configurator_app._advance(self.steps, "shirt-001"))
        self.assertEqual(self.fake_session_state["wizard_step"], 1)

        configurator_app._back(self.steps)
        configurator_app._back(self.steps)
        self.assertEqual(self.fake_session_state["wizard_step"], 0)

    def test_step_index_is_clamped(self) -> None:
        self.fake_session_state["wizard_step"] = 99
        self.assertEqual(configurator_app._step_index(self.steps), len(self.steps) - 1)

    def test_switch_product_resets_wizard(self) -> None:
        configurator_app._apply(lambda s: select(s, self.catalog, "fabric-type", "silk"), "shirt-001")
        self.fake_session_state["wizard_step"] = 3
        self.fake_session_state["order_confirmation"] = object()

        configurator_app._switch_product("jacket-001")
        self.assertEqual(self.fake_session_state["product_id"], "jacket-001")
        self.assertEqual(self.fake_session_state["config_state"], new_configuration("jacket-001"))
        self.assertEqual(self.fake_session_state["undo_stack"], [])
        self.assertEqual(self.fake_session_state["wizard_step"], 0)
        self.assertNotIn("order_confirmation", self.fake_session_state)

    def test_price_rules_come_from_the_load_result(self) -> None:
        rules = sample_price_rules("shirt-001")
        result = CatalogLoadResult(catalog=self.catalog, available=True, price_rules=rules)
        self.assertIs(configurator_app._price_rules(result), rules)

    def test_value_label_shows_signed_delta(self) -> None:
        fabric_type = self.catalog.get_category("fabric-type")
        self.assertEqual(configurator_app._value_label(fabric_type, "cotton", "USD"), "Cotton")
        self.assertEqual(configurator_app._value_label(fabric_type, "linen", "USD"), "Linen (+$15.00)")


if __name__ == "__main__":
    unittest.main()
