from __future__ import annotations

import json
import tempfile
import unittest
from pathlib import Path

import httpx

from normalized_catalogs import (
    CATALOG_FILENAME,
    FileCatalogLoader,
    HttpCatalogLoader,
    SampleCatalogLoader,
    catalog_from_normalized,
    catalog_to_normalized,
    find_normalized_catalogs,
    load_catalog_or_unavailable,
    load_normalized_catalog,
    price_rules_from_normalized,
    price_rules_to_normalized,
    write_normalized_catalog,
)
from option_catalog import CatalogError, CatalogUnavailable
from sample_catalogs import (
    SAMPLE_PRODUCT_IDS,
    load_sample_catalog,
    load_sample_jacket,
    load_sample_shirt,
    sample_price_rules,
)


class TestNormalizedCatalogFiles(unittest.TestCase):
    def test_write_then_load_matches_sample(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            for product_id in SAMPLE_PRODUCT_IDS:
                write_normalized_catalog(root, load_sample_catalog(product_id), sample_price_rules(product_id))

            self.assertEqual(len(find_normalized_catalogs(root)), len(SAMPLE_PRODUCT_IDS))
            normalized = FileCatalogLoader(root).load_normalized("jacket-001")
            self.assertEqual(normalized.catalog, load_sample_jacket())
            self.assertEqual(normalized.price_rules, sample_price_rules("jacket-001"))
            self.assertTrue(normalized.source.endswith(CATALOG_FILENAME))

    def test_missing_file_is_unavailable(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            with self.assertRaises(CatalogUnavailable):
                FileCatalogLoader(Path(tmp)).load("shirt-001")

    def test_bad_json_is_unavailable(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / CATALOG_FILENAME
            path.write_text("{not json", encoding="utf-8")
            with self.assertRaises(CatalogUnavailable):
                load_normalized_catalog(path)

    def test_non_utf8_file_falls_back_to_unavailable(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            out = root / "shirt-001" / CATALOG_FILENAME
            out.parent.mkdir(parents=True)
            out.write_bytes(b'{"product_id": "x\xff"}')
            with self.assertRaises(CatalogUnavailable):
                load_normalized_catalog(out)
            with self.assertLogs("normalized_catalogs", level="WARNING"):
                result = load_catalog_or_unavailable(FileCatalogLoader(root), "shirt-001")
        self.assertFalse(result.available)
        self.assertIn("UTF-8", result.reason or "")

    def test_product_id_mismatch_rejected(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            out = root / "pants-001" / CATALOG_FILENAME
            out.parent.mkdir(parents=True)
            out.write_text(json.dumps(catalog_to_normalized(load_sample_shirt())), encoding="utf-8")
            with self.assertRaises(CatalogError):
                FileCatalogLoader(root).load("pants-001")

    def test_unavailable_fallback(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            with self.assertLogs("normalized_catalogs", level="WARNING"):
                result = load_catalog_or_unavailable(FileCatalogLoader(Path(tmp)), "shirt-001")
        self.assertFalse(result.available)
        self.assertTrue(result.catalog.is_empty)
        self.assertEqual(result.catalog.product_id, "shirt-001")
        self.assertIn("shirt-001", result.reason or "")

    def test_sample_loader(self) -> None:
        result = load_catalog_or_unavailable(SampleCatalogLoader(), "shirt-001")
        self.assertTrue(result.available)
        self.assertEqual(result.price_rules, sample_price_rules("shirt-001"))
        self.assertFalse(load_catalog_or_unavailable(SampleCatalogLoader(), "kilt-001").available)


class TestNormalizedCatalogParsing(unittest.TestCase):
    def test_junk_rows_are_skipped(self) -> None:
        doc = {
            "product_id": "tie-001",
            "garment_type": "tie",
            "categories": [
                "junk",
                {
                    "id": "width",
                    "values": [
                        {"id": "slim", "price_delta": "5"},
                        {"name": "no id"},
                        {"id": "wide", "price_delta": "lots"},
                        {"id": "tinted", "color": "#112233", "material": {"roughness": "high"}},
                    ],
                },
                {"id": "pattern", "role": "sideways", "values": [{"id": "paisley"}]},
            ],
            "monogram_positions": ["tip", 7, ""],
            "thread_colors": {"gold": "#FFD700", "": "#000000"},
        }
        with self.assertLogs("normalized_catalogs", level="WARNING"):
            catalog = catalog_from_normalized(doc)
        self.assertEqual(list(catalog.categories), ["width"])
        width = catalog.get_category("width")
        self.assertEqual([v.id for v in width.values], ["slim", "tinted"])
        self.assertIsNone(width.values[1].visual.material)  # type: ignore[union-attr]
        self.assertEqual(catalog.monogram_positions, ("tip",))
        self.assertEqual(dict(catalog.thread_colors), {"gold": "#FFD700"})
        self.assertEqual(catalog.display_name, "tie-001")

    def test_structural_problems_still_raise(self) -> None:
        with self.assertRaises(CatalogError):
            catalog_from_normalized({"categories": []})
        with self.assertRaises(CatalogError):
            catalog_from_normalized(
                {"product_id": "x", "categories": [{"id": "c", "values": [{"id": "a"}, {"id": "a"}]}]}
            )

    def test_price_rules(self) -> None:
        rules = sample_price_rules("shirt-001")
        self.assertEqual(price_rules_from_normalized({"price_rules": price_rules_to_normalized(rules)}), rules)
        self.assertIsNone(price_rules_from_normalized({}))
        with self.assertRaises(CatalogError):
            price_rules_from_normalized({"price_rules": {"base_price": "free"}})


class TestHttpCatalogLoader(unittest.TestCase):
    def _client(self, handler) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(handler))

    def test_fetches_catalog(self) -> None:
        doc = catalog_to_normalized(load_sample_shirt())
        doc["price_rules"] = price_rules_to_normalized(sample_price_rules("shirt-001"))
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(str(request.url))
            return httpx.Response(200, json=doc)

        with self._client(handler) as client:
            normalized = HttpCatalogLoader("https://catalog.test/api/", client=client).load_normalized("shirt-001")
        self.assertEqual(seen, ["https://catalog.test/api/catalogs/shirt-001"])
        self.assertEqual(normalized.catalog, load_sample_shirt())
        self.assertEqual(normalized.price_rules, sample_price_rules("shirt-001"))

    def test_http_error_status_is_unavailable(self) -> None:
        with self._client(lambda request: httpx.Response(404, json={"detail": "not found"})) as client:
            with self.assertRaises(CatalogUnavailable):
                HttpCatalogLoader("https://catalog.test", client=client).load("shirt-001")

    def test_transport_error_is_unavailable(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("timed out", request=request)

        with self._client(handler) as client:
            result = load_catalog_or_unavailable(HttpCatalogLoader("https://catalog.test", client=client), "shirt-001")
        self.assertFalse(result.available)
        self.assertIn("ConnectTimeout", result.reason or "")

    def test_non_json_is_unavailable(self) -> None:
        with self._client(lambda request: httpx.Response(200, text="<html>maintenance</html>")) as client:
            with self.assertRaises(CatalogUnavailable):
                HttpCatalogLoader("https://catalog.test", client=client).load("shirt-001")


if __name__ == "__main__":
    unittest.main()
