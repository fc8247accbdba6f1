from __future__ import annotations

from typing import Any, Optional

import httpx
from pydantic import BaseModel, ConfigDict

from routine_builder.config import GatewaySettings


class ProviderAdapter(BaseModel):
    """Where a chat-completions request goes and how it is authenticated."""

    model_config = ConfigDict(frozen=True)

    name: str
    display_name: str
    endpoint_url: str
    default_model: str
    auth_header: str = "Authorization"
    auth_prefix: str = "Bearer "

    def auth_headers(self, api_key: str) -> dict[str, str]:
        return {self.auth_header: f"{self.auth_prefix}{api_key}"}


PROVIDERS: dict[str, ProviderAdapter] = {
    "openai": ProviderAdapter(
        name="openai",
        display_name="OpenAI",
        endpoint_url="https://api.openai.com/v1/chat/completions",
        default_model="gpt-4o",
    ),
    "mistral": ProviderAdapter(
        name="mistral",
        display_name="Mistral",
        endpoint_url="https://api.mistral.ai/v1/chat/completions",
        default_model="mistral-small-latest",
    ),
}


class UpstreamRequestError(Exception):
    pass


def resolve_provider(settings: GatewaySettings) -> ProviderAdapter:
    base = PROVIDERS.get(settings.provider)
    if base is None:
        raise ValueError(f"unknown LLM provider: {settings.provider}")
    overrides: dict[str, Any] = {}
    if settings.base_url:
        overrides["endpoint_url"] = settings.base_url
    if settings.default_model:
        overrides["default_model"] = settings.default_model
    return base.model_copy(update=overrides) if overrides else base


async def forward_chat(
    *,
    adapter: ProviderAdapter,
    api_key: str,
    messages: list[Any],
    model: Optional[str],
    timeout_s: float,
) -> tuple[int, Any]:
    """POST the conversation upstream and return `(status_code, json_body)` untouched.

    Any failure to get a JSON body back raises `UpstreamRequestError`.
    """
    headers = {"Content-Type": "application/json", **adapter.auth_headers(api_key)}
    payload = {"model": model or adapter.default_model, "messages": messages}

    try:
        async with httpx.AsyncClient(timeout=timeout_s) as client:
            res = await client.post(adapter.endpoint_url, headers=headers, json=payload)
    except httpx.HTTPError as exc:
        raise UpstreamRequestError(str(exc) or exc.__class__.__name__) from exc

    try:
        data = res.json()
    except ValueError as exc:
        raise UpstreamRequestError(f"non-JSON response status={res.status_code}") from exc

    return res.status_code, data
