from __future__ import annotations

import os
from typing import Optional

from pydantic import BaseModel, ConfigDict

DEFAULT_CREDENTIAL_ENV = "OPENAI_API_KEY"
DEFAULT_GATEWAY_URL = "http://localhost:8080/"
DEFAULT_CATALOG_SOURCE = "products.json"
DEFAULT_CHAT_MODEL = "gpt-4o"


class GatewaySettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    provider: str = "openai"
    credential_env: str = DEFAULT_CREDENTIAL_ENV
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    default_model: Optional[str] = None
    timeout_s: float = 60.0
    cors_allow_origin: str = "*"


class ClientSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    gateway_url: str = DEFAULT_GATEWAY_URL
    catalog_source: str = DEFAULT_CATALOG_SOURCE
    model: str = DEFAULT_CHAT_MODEL
    timeout_s: float = 60.0
    storage_url: str = "memory://"
    system_prompt: Optional[str] = None


def load_gateway_settings() -> GatewaySettings:
    credential_env = _env_str("LLM_CREDENTIAL_ENV") or DEFAULT_CREDENTIAL_ENV
    return GatewaySettings(
        provider=(_env_str("LLM_PROVIDER") or "openai").lower(),
        credential_env=credential_env,
        api_key=_env_str(credential_env),
        base_url=_env_str("LLM_BASE_URL"),
        default_model=_env_str("LLM_DEFAULT_MODEL"),
        timeout_s=_env_float("UPSTREAM_TIMEOUT_S", 60.0),
        cors_allow_origin=_env_str("CORS_ALLOW_ORIGIN") or "*",
    )


def load_client_settings() -> ClientSettings:
    return ClientSettings(
        gateway_url=_env_str("GATEWAY_URL") or DEFAULT_GATEWAY_URL,
        catalog_source=_env_str("CATALOG_SOURCE") or DEFAULT_CATALOG_SOURCE,
        model=_env_str("CHAT_MODEL") or DEFAULT_CHAT_MODEL,
        timeout_s=_env_float("GATEWAY_TIMEOUT_S", 60.0),
        storage_url=_env_str("SELECTION_STORAGE_URL") or "memory://",
        system_prompt=_env_str("SYSTEM_PROMPT"),
    )


def _env_str(name: str) -> Optional[str]:
    return (os.getenv(name) or "").strip() or None


def _env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except Exception:
        return default
    return value if value > 0 else default
