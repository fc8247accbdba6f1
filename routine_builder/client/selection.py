from __future__ import annotations

import json
import logging
from typing import Any, Iterable, Iterator, Mapping, Union

from routine_builder.client.catalog import CatalogCache
from routine_builder.client.models import Product
from routine_builder.client.storage import KeyValueStorage

logger = logging.getLogger("routine-builder.selection")

SELECTION_STORAGE_KEY = "saved_product_ids"

ProductLike = Union[Product, Mapping[str, Any]]


class SelectionStore:
    """Ordered, duplicate-free set of selected products.

    Insertion order is the display order. Every mutation writes the id list to
    `storage` right away; a failed write is logged and the in-memory selection
    stays authoritative.
    """

    def __init__(
        self,
        catalog: CatalogCache,
        storage: KeyValueStorage,
        *,
        storage_key: str = SELECTION_STORAGE_KEY,
    ) -> None:
        self._catalog = catalog
        self._storage = storage
        self._storage_key = storage_key
        self._items: list[Product] = []

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Product]:
        return iter(list(self._items))

    def __contains__(self, product_id: object) -> bool:
        return self._index_of(product_id) != -1

    @property
    def items(self) -> list[Product]:
        return list(self._items)

    @property
    def ids(self) -> list[str]:
        return [p.id for p in self._items]

    def is_selected(self, product_id: Any) -> bool:
        return self._index_of(product_id) != -1

    def toggle(self, product: ProductLike) -> bool:
        """Select `product` if absent, unselect it if present. Returns the new membership."""
        normalized = product if isinstance(product, Product) else Product.model_validate(product)
        index = self._index_of(normalized.id)
        if index == -1:
            self._items.append(normalized)
            selected = True
        else:
            del self._items[index]
            selected = False
        self._persist()
        return selected

    def remove(self, product_id: Any) -> None:
        index = self._index_of(product_id)
        if index != -1:
            del self._items[index]
        self._persist()

    def clear(self) -> None:
        self._items = []
        self._persist()

    def restore(self, product_ids: Iterable[Any]) -> list[Product]:
        restored: list[Product] = []
        seen: set[str] = set()
        for raw_id in product_ids:
            product = self._catalog.find_by_id(raw_id)
            if product is None or product.id in seen:
                continue
            seen.add(product.id)
            restored.append(product)
        self._items = restored
        return list(restored)

    def read_persisted(self) -> list[str]:
        """Read the saved id list; anything unreadable counts as an empty selection."""
        try:
            raw = self._storage.get_item(self._storage_key)
        except Exception as exc:
            logger.warning("selection_read_failed backend=%s err=%s", self._storage.backend_kind, exc)
            return []
        if not raw:
            return []
        try:
            ids = json.loads(raw)
        except ValueError:
            logger.warning("selection_parse_failed key=%s", self._storage_key)
            return []
        if not isinstance(ids, list):
            return []
        return [str(i) for i in ids if i is not None]

    def _persist(self) -> None:
        try:
            self._storage.set_item(self._storage_key, json.dumps(self.ids))
        except Exception as exc:
            logger.warning("selection_persist_failed backend=%s err=%s", self._storage.backend_kind, exc)

    def _index_of(self, product_id: Any) -> int:
        if product_id is None:
            return -1
        key = str(product_id).strip()
        for i, product in enumerate(self._items):
            if product.id == key:
                return i
        return -1
