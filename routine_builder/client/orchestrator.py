from __future__ import annotations

import asyncio
import json
import logging
from typing import Optional, Sequence

from routine_builder.client.gateway import (
    GatewayClient,
    GatewayTransportError,
    GatewayUpstreamError,
    NoContentError,
)
from routine_builder.client.history import ConversationHistory
from routine_builder.client.models import ChatOutcome, Message, OutcomeKind
from routine_builder.client.selection import SelectionStore

logger = logging.getLogger("routine-builder.orchestrator")

ROUTINE_INSTRUCTION = (
    "Create a concise, easy-to-follow routine using these products. Include order of use, time of day (AM/PM), "
    "and short reasons why each product is used. Respond in plain text.\n\nProducts:\n"
)

EMPTY_MESSAGE_TEXT = "Please enter a message."
EMPTY_SELECTION_TEXT = "Please select one or more products first."
BUSY_TEXT = "A response is already being generated. Please wait for it to finish."
NO_CONTENT_TEXT = "No content returned from the AI."
ROUTINE_NO_CONTENT_TEXT = "No content returned from the AI. Check the gateway and provider response."
CHAT_TRANSPORT_TEXT = "Failed to generate response. See logs for details."
ROUTINE_TRANSPORT_TEXT = "Failed to generate routine. See logs for details."


def build_routine_instruction(selection: SelectionStore) -> str:
    products = [p.routine_fields() for p in selection.items]
    return ROUTINE_INSTRUCTION + json.dumps(products, indent=2, ensure_ascii=False)


class RequestOrchestrator:
    """Runs chat and routine requests against the gateway and folds replies into history.

    At most one request is outstanding; a second one is rejected with a
    `busy` outcome so replies land in history in submission order.
    """

    def __init__(
        self,
        history: ConversationHistory,
        selection: SelectionStore,
        gateway: GatewayClient,
    ) -> None:
        self._history = history
        self._selection = selection
        self._gateway = gateway
        self._lock = asyncio.Lock()

    @property
    def is_generating(self) -> bool:
        return self._lock.locked()

    async def send_chat(self, text: Optional[str]) -> ChatOutcome:
        cleaned = (text or "").strip()
        if not cleaned:
            return _failure("validation", EMPTY_MESSAGE_TEXT)
        if self._lock.locked():
            return _failure("busy", BUSY_TEXT)

        async with self._lock:
            # The user turn stays in history even if the request fails.
            self._history.append_user(cleaned)
            return await self._exchange(
                self._history.snapshot_for_request(),
                flow="chat",
                no_content_text=NO_CONTENT_TEXT,
                transport_text=CHAT_TRANSPORT_TEXT,
            )

    async def generate_routine(self) -> ChatOutcome:
        if len(self._selection) == 0:
            return _failure("validation", EMPTY_SELECTION_TEXT)
        if self._lock.locked():
            return _failure("busy", BUSY_TEXT)

        async with self._lock:
            instruction = build_routine_instruction(self._selection)
            return await self._exchange(
                self._history.snapshot_for_request(instruction),
                flow="routine",
                no_content_text=ROUTINE_NO_CONTENT_TEXT,
                transport_text=ROUTINE_TRANSPORT_TEXT,
            )

    async def _exchange(
        self,
        messages: Sequence[Message],
        *,
        flow: str,
        no_content_text: str,
        transport_text: str,
    ) -> ChatOutcome:
        try:
            reply = await self._gateway.complete(messages)
        except GatewayUpstreamError as exc:
            logger.warning("gateway_upstream_error flow=%s status=%s", flow, exc.status_code)
            return _failure(
                "upstream",
                f"Error from server: {exc.status_code} {exc.body}",
                status_code=exc.status_code,
            )
        except NoContentError:
            logger.warning("gateway_no_content flow=%s", flow)
            return _failure("no_content", no_content_text)
        except GatewayTransportError as exc:
            logger.warning("gateway_transport_error flow=%s err=%s", flow, exc)
            return _failure("transport", transport_text)

        self._history.append_assistant(reply)
        return ChatOutcome(ok=True, kind="reply", message=reply)


def _failure(kind: OutcomeKind, message: str, *, status_code: Optional[int] = None) -> ChatOutcome:
    return ChatOutcome(ok=False, kind=kind, message=message, status_code=status_code)
