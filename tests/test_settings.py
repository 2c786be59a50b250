from __future__ import annotations

import os
import tempfile
import unittest
from pathlib import Path

from normalized_catalogs import FileCatalogLoader, HttpCatalogLoader, SampleCatalogLoader
from settings import Settings, SettingsError, catalog_loader_from_settings, load_settings, settings_from


class TestSettings(unittest.TestCase):
    def test_defaults(self) -> None:
        self.assertEqual(load_settings(env={}), Settings())

    def test_values_are_read_and_normalised(self) -> None:
        settings = load_settings(
            env={
                "CONFIGURATOR_CATALOG_DIR": "~/catalogs",
                "CONFIGURATOR_CATALOG_URL": " https://catalog.test ",
                "CONFIGURATOR_CATALOG_TIMEOUT_S": "2.5",
                "CONFIGURATOR_DEFAULT_PRODUCT": "jacket-001",
                "CONFIGURATOR_LOG_LEVEL": "debug",
                "CONFIGURATOR_CURRENCY": "eur",
            }
        )
        self.assertEqual(settings.catalog_dir, Path("~/catalogs").expanduser())
        self.assertEqual(settings.catalog_url, "https://catalog.test")
        self.assertEqual(settings.catalog_timeout_s, 2.5)
        self.assertEqual(settings.default_product_id, "jacket-001")
        self.assertEqual(settings.log_level, "DEBUG")
        self.assertEqual(settings.currency, "EUR")

    def test_invalid_values_raise(self) -> None:
        with self.assertRaises(SettingsError):
            load_settings(env={"CONFIGURATOR_CATALOG_TIMEOUT_S": "soon"})
        with self.assertRaises(SettingsError):
            load_settings(env={"CONFIGURATOR_CATALOG_TIMEOUT_S": "0"})
        with self.assertRaises(SettingsError):
            load_settings(env={"CONFIGURATOR_LOG_LEVEL": "LOUD"})

    def test_settings_from_accepts_any_lookup(self) -> None:
        secrets = {"CONFIGURATOR_DEFAULT_PRODUCT": "pants-001"}
        settings = settings_from(lambda key: secrets.get(key, ""))
        self.assertEqual(settings.default_product_id, "pants-001")

    def test_dotenv_file_is_loaded(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / ".env"
            path.write_text("CONFIGURATOR_TEST_ONLY_CURRENCY_PROBE=1\n", encoding="utf-8")
            try:
                load_settings(dotenv_path=path)
                self.assertEqual(os.environ.get("CONFIGURATOR_TEST_ONLY_CURRENCY_PROBE"), "1")
            finally:
                os.environ.pop("CONFIGURATOR_TEST_ONLY_CURRENCY_PROBE", None)

    def test_loader_selection(self) -> None:
        self.assertIsInstance(catalog_loader_from_settings(Settings()), SampleCatalogLoader)
        self.assertIsInstance(catalog_loader_from_settings(Settings(catalog_dir=Path("."))), FileCatalogLoader)
        loader = catalog_loader_from_settings(Settings(catalog_url="https://catalog.test", catalog_timeout_s=3.0))
        self.assertIsInstance(loader, HttpCatalogLoader)
        self.assertEqual(loader.timeout_s, 3.0)  # type: ignore[union-attr]


if __name__ == "__main__":
    unittest.main()
