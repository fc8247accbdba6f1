from __future__ import annotations

import logging
import os
from typing import Optional

from fastapi import FastAPI
from starlette.exceptions import HTTPException as StarletteHTTPException

from routine_builder.config import GatewaySettings, load_gateway_settings
from routine_builder.routes.health import router as health_router
from routine_builder.routes.proxy import method_not_allowed_handler, router as proxy_router
from routine_builder.services.providers import resolve_provider

logger = logging.getLogger("routine-builder.main")


def _setup_logging() -> None:
    level = (os.getenv("LOG_LEVEL") or "INFO").upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app(settings: Optional[GatewaySettings] = None) -> FastAPI:
    _setup_logging()
    settings = settings or load_gateway_settings()
    provider = resolve_provider(settings)

    # CORS is answered by the proxy routes themselves; the preflight contract
    # is a bare 204, which CORSMiddleware would not produce.
    app = FastAPI(title="Routine Builder Gateway", version="0.1.0")
    app.state.settings = settings
    app.state.provider = provider

    app.include_router(health_router)
    app.include_router(proxy_router)
    app.add_exception_handler(StarletteHTTPException, method_not_allowed_handler)

    logger.info(
        "gateway_configured provider=%s endpoint=%s credential_env=%s credential_set=%s",
        provider.name,
        provider.endpoint_url,
        settings.credential_env,
        bool(settings.api_key),
    )
    return app


app = create_app()
