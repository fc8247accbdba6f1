from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from routine_builder.config import GatewaySettings
from routine_builder.services.providers import ProviderAdapter, UpstreamRequestError, forward_chat

router = APIRouter()

logger = logging.getLogger("routine-builder.proxy")


def _cors_headers(settings: GatewaySettings) -> dict[str, str]:
    return {
        "Access-Control-Allow-Origin": settings.cors_allow_origin,
        "Access-Control-Allow-Methods": "POST, OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type",
        "Access-Control-Max-Age": "86400",
    }


def _json(request: Request, body: Any, status_code: int = 200) -> JSONResponse:
    return JSONResponse(body, status_code=status_code, headers=_cors_headers(request.app.state.settings))


@router.options("/")
async def preflight(request: Request) -> Response:
    return Response(status_code=204, headers=_cors_headers(request.app.state.settings))


async def method_not_allowed_handler(request: Request, exc: StarletteHTTPException) -> Response:
    if exc.status_code == 405:
        return _json(request, {"error": "Method Not Allowed"}, 405)
    return await http_exception_handler(request, exc)


@router.post("/")
async def proxy_chat(request: Request) -> JSONResponse:
    settings: GatewaySettings = request.app.state.settings
    adapter: ProviderAdapter = request.app.state.provider

    try:
        body = await request.json()
    except ValueError:
        return _json(request, {"error": "Invalid JSON body"}, 400)

    messages = body.get("messages") if isinstance(body, dict) else None
    if not isinstance(messages, list) or not messages:
        return _json(request, {"error": "Missing or invalid messages array"}, 400)

    model = body.get("model") or adapter.default_model

    if not settings.api_key:
        logger.error("gateway_misconfigured credential_env=%s", settings.credential_env)
        return _json(request, {"error": f"Server misconfigured: {settings.credential_env} not set"}, 500)

    try:
        status_code, data = await forward_chat(
            adapter=adapter,
            api_key=settings.api_key,
            messages=messages,
            model=model,
            timeout_s=settings.timeout_s,
        )
    except UpstreamRequestError as exc:
        logger.warning("upstream_request_failed provider=%s err=%s", adapter.name, exc)
        return _json(request, {"error": f"Request to {adapter.display_name} failed"}, 502)

    if status_code >= 400:
        logger.warning("upstream_error provider=%s status=%s", adapter.name, status_code)
    return _json(request, data, status_code)
