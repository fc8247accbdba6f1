from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from routine_builder.client.catalog import CatalogCache
from routine_builder.client.gateway import GatewayClient
from routine_builder.client.history import ConversationHistory
from routine_builder.client.models import ChatOutcome, Product
from routine_builder.client.orchestrator import RequestOrchestrator
from routine_builder.client.selection import SelectionStore
from routine_builder.client.storage import KeyValueStorage, build_storage
from routine_builder.config import ClientSettings, load_client_settings

logger = logging.getLogger("routine-builder.session")


class RoutineSession:
    """One user's picker state: catalog, selection, conversation and request runner.

    Build one per session and hand it to whatever renders the UI.
    """

    def __init__(
        self,
        settings: Optional[ClientSettings] = None,
        *,
        storage: Optional[KeyValueStorage] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.settings = settings or load_client_settings()
        self.catalog = CatalogCache(
            self.settings.catalog_source,
            timeout_s=self.settings.timeout_s,
            transport=transport,
        )
        self.selection = SelectionStore(
            self.catalog,
            storage if storage is not None else build_storage(self.settings.storage_url),
        )
        self.history = ConversationHistory(self.settings.system_prompt)
        self.gateway = GatewayClient(
            self.settings.gateway_url,
            model=self.settings.model,
            timeout_s=self.settings.timeout_s,
            transport=transport,
        )
        self.orchestrator = RequestOrchestrator(self.history, self.selection, self.gateway)

    @property
    def is_generating(self) -> bool:
        return self.orchestrator.is_generating

    async def start(self) -> list[Product]:
        """Load the catalog, then bring back the saved selection."""
        await self.catalog.load()
        saved_ids = self.selection.read_persisted()
        restored = self.selection.restore(saved_ids)
        if len(restored) != len(saved_ids):
            logger.info("selection_restore_dropped count=%d", len(saved_ids) - len(restored))
        return restored

    def browse(self, category: str) -> list[tuple[Product, bool]]:
        return [(p, self.selection.is_selected(p.id)) for p in self.catalog.by_category(category)]

    def toggle(self, product_id: Any) -> bool:
        product = self.catalog.find_by_id(product_id)
        if product is None:
            raise KeyError(product_id)
        return self.selection.toggle(product)

    async def send_chat(self, text: Optional[str]) -> ChatOutcome:
        return await self.orchestrator.send_chat(text)

    async def generate_routine(self) -> ChatOutcome:
        return await self.orchestrator.generate_routine()
