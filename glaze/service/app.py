"""FastAPI application exposing the serving switch."""

from __future__ import annotations

from typing import Callable

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel

from ..builder import BuildResult, Builder
from ..config import GlazeConfig
from ..css import is_external
from ..logging import get_logger
from .switch import Responder, ServingSwitch, serving_switch_for

logger = get_logger("service")


class HealthResponse(BaseModel):
    status: str
    mode: str


def create_app(switch: ServingSwitch, *, mode: str = "development") -> FastAPI:
    """Create the FastAPI application serving files through ``switch``."""
    app = FastAPI(title="glaze", version="1.0.0", docs_url=None, redoc_url=None, openapi_url=None)
    app.state.switch = switch

    @app.get("/health", response_model=HealthResponse)
    async def health() -> JSONResponse:
        ready = switch.ready
        payload = HealthResponse(status="ok" if ready else "unavailable", mode=mode)
        return JSONResponse(status_code=200 if ready else 503, content=payload.model_dump())

    @app.api_route("/{path:path}", methods=["GET", "HEAD"], include_in_schema=False)
    async def serve(request: Request, path: str) -> Response:
        return await switch.respond(request)

    return app


def create_app_for_build(
    result: BuildResult,
    *,
    fallback: Responder | None = None,
    assets_prefix: str = "/assets",
) -> FastAPI:
    switch = serving_switch_for(result, fallback=fallback, assets_prefix=assets_prefix)
    return create_app(switch, mode=result.mode.name)


def check_public_url(config: GlazeConfig, result: BuildResult) -> bool:
    """Warn when stylesheet URLs point outside the URL space this service serves assets from.

    Returns True when the rewritten URLs are reachable (or nothing was rewritten).
    """
    public_url = config.css.public_url
    if not result.mode.release or is_external(public_url):
        return True
    if not any(asset.is_stylesheet for asset in result.assets):
        return True

    prefix = "/" + config.serve.assets_prefix.strip("/")
    path = "/" + public_url.strip("/")
    if prefix == "/" or path == prefix or path.startswith(prefix + "/"):
        return True
    logger.warning(
        "css.public_url %r is outside serve.assets_prefix %r; stylesheet URLs will 404 "
        "from this server (set css.public_url: %s/)",
        public_url,
        prefix,
        prefix,
    )
    return False


def run_service(
    config: GlazeConfig,
    *,
    host: str | None = None,
    port: int | None = None,
    builder_factory: Callable[[GlazeConfig], Builder] = Builder,
) -> None:  # pragma: no cover - integration path
    import uvicorn

    result = builder_factory(config).build()
    check_public_url(config, result)
    app = create_app_for_build(result, assets_prefix=config.serve.assets_prefix)
    bind_host = host or config.serve.host
    bind_port = port or config.serve.port
    logger.info("Serving %s build on http://%s:%d", result.mode.name, bind_host, bind_port)
    uvicorn.run(app, host=bind_host, port=bind_port)


__all__ = [
    "HealthResponse",
    "check_public_url",
    "create_app",
    "create_app_for_build",
    "run_service",
]
