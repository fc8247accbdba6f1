from __future__ import annotations

from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/healthz")
def healthz(request: Request):
    settings = request.app.state.settings
    provider = request.app.state.provider
    return {
        "ok": True,
        "service": "routine-builder-gateway",
        "provider": provider.name,
        "endpoint": provider.endpoint_url,
        "default_model": provider.default_model,
        "credential_env": settings.credential_env,
        "credential_configured": bool(settings.api_key),
    }
