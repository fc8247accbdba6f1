from __future__ import annotations

import json
from pathlib import Path
import sys
import tempfile
import unittest
from unittest.mock import patch

import httpx

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from routine_builder.client.selection import SELECTION_STORAGE_KEY
from routine_builder.client.session import RoutineSession
from routine_builder.client.storage import InMemoryStorage
from routine_builder.config import ClientSettings, GatewaySettings
from routine_builder.main import create_app

FIXTURE = ROOT / "tests" / "fixtures" / "products.json"


def _client_settings(**overrides) -> ClientSettings:
    values = {"gateway_url": "http://gateway.test/", "catalog_source": str(FIXTURE), "model": "gpt-4o"}
    values.update(overrides)
    return ClientSettings(**values)


class TestRoutineSessionStartup(unittest.IsolatedAsyncioTestCase):
    async def test_start_restores_saved_selection_and_drops_missing(self) -> None:
        storage = InMemoryStorage()
        storage.set_item(SELECTION_STORAGE_KEY, json.dumps(["4", "retired-sku", "2"]))
        session = RoutineSession(_client_settings(), storage=storage)

        restored = await session.start()

        self.assertEqual([p.id for p in restored], ["4", "2"])
        self.assertEqual(session.selection.ids, ["4", "2"])
        self.assertEqual(json.loads(storage.get_item(SELECTION_STORAGE_KEY)), ["4", "retired-sku", "2"])

    async def test_selection_survives_a_new_session_via_file_storage(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            settings = _client_settings(storage_url=f"file://{tmp}/state.json")

            first = RoutineSession(settings)
            await first.start()
            self.assertTrue(first.toggle("3"))
            self.assertTrue(first.toggle(1))
            first.selection.remove("3")
            self.assertTrue(first.toggle("2"))

            second = RoutineSession(settings)
            await second.start()

            self.assertEqual(second.selection.ids, ["1", "2"])

    async def test_browse_marks_selected_products(self) -> None:
        session = RoutineSession(_client_settings(), storage=InMemoryStorage())
        await session.start()
        session.toggle("3")

        listing = session.browse("skincare")

        self.assertEqual([(p.id, selected) for p, selected in listing], [("2", False), ("3", True)])
        with self.assertRaises(KeyError):
            session.toggle("nope")


class TestRoutineSessionAgainstGateway(unittest.IsolatedAsyncioTestCase):
    async def test_chat_and_routine_through_gateway_app(self) -> None:
        app = create_app(GatewaySettings(provider="openai", api_key="sk-test"))
        forwarded: list[list[dict]] = []

        async def fake_forward(**kwargs):
            forwarded.append(kwargs["messages"])
            return 200, {"choices": [{"message": {"role": "assistant", "content": f"reply {len(forwarded)}"}}]}

        session = RoutineSession(
            _client_settings(),
            storage=InMemoryStorage(),
            transport=httpx.ASGITransport(app=app),
        )
        await session.start()
        session.toggle("1")
        session.toggle("3")

        with patch("routine_builder.routes.proxy.forward_chat", side_effect=fake_forward):
            routine = await session.generate_routine()
            chat = await session.send_chat("Can I skip the serum?")

        self.assertTrue(routine.ok)
        self.assertEqual(routine.message, "reply 1")
        self.assertEqual(chat.message, "reply 2")
        self.assertFalse(session.is_generating)
        self.assertEqual(
            [(m.role, m.content) for m in session.history][1:],
            [("assistant", "reply 1"), ("user", "Can I skip the serum?"), ("assistant", "reply 2")],
        )
        self.assertEqual([m["role"] for m in forwarded[0]], ["system", "user"])
        self.assertIn("UV Fluid SPF 50", forwarded[0][-1]["content"])

    async def test_gateway_error_reaches_user_as_diagnostic(self) -> None:
        app = create_app(GatewaySettings(provider="openai", api_key=None, credential_env="LLM_SECRET"))
        session = RoutineSession(
            _client_settings(),
            storage=InMemoryStorage(),
            transport=httpx.ASGITransport(app=app),
        )
        await session.start()

        outcome = await session.send_chat("hello")

        self.assertEqual(outcome.kind, "upstream")
        self.assertEqual(outcome.status_code, 500)
        self.assertIn("Server misconfigured: LLM_SECRET not set", outcome.message)
        self.assertEqual(session.history.last.content, "hello")


if __name__ == "__main__":
    unittest.main()
