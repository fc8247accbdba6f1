from __future__ import annotations

import json
from pathlib import Path
import sys
import tempfile
import unittest

import httpx

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from routine_builder.client.catalog import CatalogCache

FIXTURE = ROOT / "tests" / "fixtures" / "products.json"


class TestCatalogCache(unittest.IsolatedAsyncioTestCase):
    async def test_load_from_file_normalizes_ids(self) -> None:
        catalog = CatalogCache(str(FIXTURE))
        products = await catalog.load()
        self.assertEqual([p.id for p in products], ["1", "2", "3", "4"])
        self.assertEqual(catalog.find_by_id(2).name, "Revitalift Serum")
        self.assertEqual(catalog.find_by_id("3").brand, "La Roche-Posay")
        self.assertIsNone(catalog.find_by_id("404"))

    async def test_categories_and_filter(self) -> None:
        catalog = CatalogCache(str(FIXTURE))
        await catalog.load()
        self.assertEqual(catalog.categories(), ["cleanser", "skincare", "haircare"])
        self.assertEqual([p.id for p in catalog.by_category("skincare")], ["2", "3"])
        self.assertEqual(catalog.by_category("fragrance"), [])

    async def test_load_over_http_replaces_cache(self) -> None:
        calls = {"n": 0}
        documents = [
            {"products": [{"id": 7, "name": "A", "brand": "B", "category": "c", "description": "d", "image": "i"}]},
            {"products": []},
        ]

        def handler(request: httpx.Request) -> httpx.Response:
            self.assertEqual(request.method, "GET")
            doc = documents[calls["n"]]
            calls["n"] += 1
            return httpx.Response(200, json=doc)

        catalog = CatalogCache("https://cdn.example.com/products.json", transport=httpx.MockTransport(handler))
        await catalog.load()
        self.assertIsNotNone(catalog.find_by_id("7"))
        await catalog.load()
        self.assertIsNone(catalog.find_by_id("7"))
        self.assertEqual(calls["n"], 2)

    async def test_load_propagates_http_failure(self) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(404, text="missing"))
        catalog = CatalogCache("https://cdn.example.com/products.json", transport=transport)
        with self.assertRaises(httpx.HTTPStatusError):
            await catalog.load()

    async def test_load_propagates_non_json(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "products.json"
            path.write_text("<html>not json</html>", encoding="utf-8")
            with self.assertRaises(ValueError):
                await CatalogCache(str(path)).load()

    async def test_load_rejects_document_without_products(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "products.json"
            path.write_text(json.dumps({"items": []}), encoding="utf-8")
            with self.assertRaises(ValueError):
                await CatalogCache(str(path)).load()


if __name__ == "__main__":
    unittest.main()
