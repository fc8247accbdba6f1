from __future__ import annotations

from typing import Optional, Sequence

import httpx

from routine_builder.client.models import Message, extract_reply


class GatewayError(Exception):
    pass


class GatewayTransportError(GatewayError):
    """No usable HTTP response: bad URL, network error, timeout or a non-JSON body."""


class GatewayUpstreamError(GatewayError):
    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(f"gateway returned {status_code}")
        self.status_code = status_code
        self.body = body


class NoContentError(GatewayError):
    """2xx response without `choices[0].message.content`."""


class GatewayClient:
    def __init__(
        self,
        url: str,
        *,
        model: str,
        timeout_s: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._url = url
        self._model = model
        self._timeout_s = timeout_s
        self._transport = transport

    @property
    def url(self) -> str:
        return self._url

    async def complete(self, messages: Sequence[Message], *, model: Optional[str] = None) -> str:
        payload = {
            "messages": [m.model_dump() for m in messages],
            "model": model or self._model,
        }

        try:
            async with httpx.AsyncClient(timeout=self._timeout_s, transport=self._transport) as client:
                res = await client.post(
                    self._url,
                    headers={"Content-Type": "application/json"},
                    json=payload,
                )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise GatewayTransportError(str(exc) or exc.__class__.__name__) from exc

        if not res.is_success:
            raise GatewayUpstreamError(res.status_code, res.text)

        try:
            data = res.json()
        except ValueError as exc:
            raise GatewayTransportError("gateway returned a non-JSON body") from exc

        reply = extract_reply(data)
        if reply is None:
            raise NoContentError("no content returned")
        return reply
