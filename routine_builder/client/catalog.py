from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional

import httpx

from routine_builder.client.models import Product

logger = logging.getLogger("routine-builder.catalog")


class CatalogCache:
    """Holds the product list loaded from a static `{ "products": [...] }` document.

    `source` is either an http(s) URL, fetched with a plain GET, or a local
    file path. Every `load()` re-reads the source and replaces the cache.
    """

    def __init__(
        self,
        source: str,
        *,
        timeout_s: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._source = source
        self._timeout_s = timeout_s
        self._transport = transport
        self._products: list[Product] = []
        self._by_id: dict[str, Product] = {}

    @property
    def products(self) -> list[Product]:
        return list(self._products)

    async def load(self) -> list[Product]:
        document = await self._fetch_document()
        raw_products = document.get("products") if isinstance(document, dict) else None
        if not isinstance(raw_products, list):
            raise ValueError("catalog document has no `products` list")

        products = [Product.model_validate(item) for item in raw_products]
        self._products = products
        self._by_id = {}
        for product in products:
            self._by_id.setdefault(product.id, product)
        logger.info("catalog_loaded source=%s count=%d", self._source, len(products))
        return list(products)

    def find_by_id(self, product_id: Any) -> Optional[Product]:
        if product_id is None:
            return None
        return self._by_id.get(str(product_id).strip())

    def by_category(self, category: str) -> list[Product]:
        return [p for p in self._products if p.category == category]

    def categories(self) -> list[str]:
        seen: list[str] = []
        for product in self._products:
            if product.category not in seen:
                seen.append(product.category)
        return seen

    async def _fetch_document(self) -> Any:
        if self._source.startswith(("http://", "https://")):
            async with httpx.AsyncClient(timeout=self._timeout_s, transport=self._transport) as client:
                res = await client.get(self._source)
            res.raise_for_status()
            return res.json()

        text = Path(self._source).read_text(encoding="utf-8")
        return json.loads(text)
