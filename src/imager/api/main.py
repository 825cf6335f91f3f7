"""Imager Studio - FastAPI application.

This module is the HTTP entry point.  It plays the part of the presentation
layer: every route is a thin call into :mod:`imager.core`, and core errors
are returned with their message unchanged so the client can show them next
to the control that triggered them.

Endpoints
---------
========  =================================  =================================
Method    Path                               Purpose
========  =================================  =================================
GET       ``/api/config``                    Site config, active model, ratios
POST      ``/api/generate``                  Generate an image
POST      ``/api/admin/login``               Open an admin session
POST      ``/api/admin/logout``              Close the admin session
GET       ``/api/admin/status``              Whether an admin is logged in
PUT       ``/api/site``                      Update the site config (admin)
GET       ``/api/models``                    List / search models (admin)
POST      ``/api/models``                    Add a model (admin)
PUT       ``/api/models/{id}``               Edit a model (admin)
DELETE    ``/api/models/{id}``               Delete a model (admin)
POST      ``/api/models/{id}/default``       Make a model the default (admin)
POST      ``/api/models/{id}/enabled``       Enable / disable a model (admin)
========  =================================  =================================

Error mapping
-------------
================  ======
Core error        Status
================  ======
ValidationError   400
EncodingError     400
NotFoundError     404
PolicyError       409
ProviderError     502
================  ======

Usage
-----
CLI (installed entry point)::

    imager

Direct invocation::

    python -m imager.api.main
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from imager import __version__
from imager.api.models import (
    EnabledRequest,
    GenerateRequest,
    GenerateResponse,
    LoginRequest,
    ModelRequest,
    ModelView,
)
from imager.core.admin import AdminSession
from imager.core.config import ImagerConfig, config
from imager.core.config_store import ConfigStore, JsonConfigStore
from imager.core.encoding import decode_data_uri
from imager.core.errors import (
    EncodingError,
    ImagerError,
    NotFoundError,
    PolicyError,
    ProviderError,
    ValidationError,
)
from imager.core.models import AspectRatio, SiteConfig, build_request
from imager.core.orchestrator import GenerationOrchestrator
from imager.core.provider import GeminiProvider, GenerationProvider
from imager.core.registry import ModelRegistry

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: dict[type[ImagerError], int] = {
    ValidationError: 400,
    EncodingError: 400,
    NotFoundError: 404,
    PolicyError: 409,
    ProviderError: 502,
}


def _status_for(error: ImagerError) -> int:
    for error_type, status in _STATUS_BY_ERROR.items():
        if isinstance(error, error_type):
            return status
    return 500


def create_app(
    app_config: ImagerConfig | None = None,
    store: ConfigStore | None = None,
    provider: GenerationProvider | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    The admin gate is the single stored admin flag, not a per-client
    session: once an operator logs in, every client reaching the server can
    use the admin routes until logout.  Serve it on localhost only.

    Args:
        app_config: Configuration; defaults to the global ``config``.
        store: Persistence collaborator; defaults to a
            :class:`JsonConfigStore` in ``app_config.data_dir``.
        provider: Generation provider; defaults to a :class:`GeminiProvider`
            sharing one ``httpx.AsyncClient`` for the app's lifetime.

    Returns:
        The configured application.
    """
    app_config = app_config or config
    store = store or JsonConfigStore(app_config.data_dir, app_config)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        # --- Startup -------------------------------------------------------
        http_client: httpx.AsyncClient | None = None
        gen_provider = provider
        if gen_provider is None:
            http_client = httpx.AsyncClient(timeout=None)
            gen_provider = GeminiProvider(app_config.provider_base_url, client=http_client)

        app.state.registry = ModelRegistry(store)
        app.state.orchestrator = GenerationOrchestrator(gen_provider)
        logger.info("Registry loaded with %d model(s).", len(app.state.registry.list()))

        yield

        # --- Shutdown ------------------------------------------------------
        if http_client is not None:
            await http_client.aclose()

    app = FastAPI(
        title="Imager Studio",
        description="Model registry and image generation API.",
        version=__version__,
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    admin = AdminSession(store, app_config)

    @app.exception_handler(ImagerError)
    async def imager_error_handler(request: Request, exc: ImagerError) -> JSONResponse:
        return JSONResponse(status_code=_status_for(exc), content={"detail": str(exc)})

    def get_registry(request: Request) -> ModelRegistry:
        return request.app.state.registry

    def get_orchestrator(request: Request) -> GenerationOrchestrator:
        return request.app.state.orchestrator

    def require_admin() -> None:
        if not admin.is_authenticated:
            raise HTTPException(status_code=401, detail="Admin login required")

    # -- Public routes ------------------------------------------------------

    @app.get("/api/config")
    async def get_config(registry: ModelRegistry = Depends(get_registry)) -> dict:
        """Return site config, the active model and the supported ratios.

        The registry is re-read from the store so that edits made by another
        process are picked up.
        """
        registry.reload()
        try:
            active = ModelView.from_model(registry.active_model()).model_dump()
        except NotFoundError:
            active = None
        return {
            "version": __version__,
            "site": store.read_site_config().model_dump(),
            "active_model": active,
            "aspect_ratios": [ratio.value for ratio in AspectRatio],
        }

    @app.post("/api/generate", response_model=GenerateResponse)
    async def generate(
        req: GenerateRequest,
        registry: ModelRegistry = Depends(get_registry),
        orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
    ) -> GenerateResponse:
        """Generate an image with the active model.

        The active model is resolved once, here; later registry edits do not
        affect a request that is already running.
        """
        model = registry.active_model()
        source_image = decode_data_uri(req.source_image) if req.source_image else None
        request = build_request(req.prompt, model, req.aspect_ratio, source_image)
        result = await orchestrator.generate(request)
        return GenerateResponse(
            image_url=result.image_url,
            timestamp=result.timestamp,
            model_name=model.name,
        )

    # -- Admin session ------------------------------------------------------

    @app.post("/api/admin/login")
    async def login(req: LoginRequest) -> dict:
        admin.login(req.username, req.password)
        return {"authenticated": True}

    @app.post("/api/admin/logout")
    async def logout() -> dict:
        admin.logout()
        return {"authenticated": False}

    @app.get("/api/admin/status")
    async def admin_status() -> dict:
        return {"authenticated": admin.is_authenticated}

    # -- Admin routes -------------------------------------------------------

    @app.put("/api/site", dependencies=[Depends(require_admin)])
    async def update_site(site: SiteConfig) -> SiteConfig:
        store.write_site_config(site)
        logger.info("Site config updated (language=%s)", site.language)
        return site

    @app.get("/api/models", dependencies=[Depends(require_admin)])
    async def list_models(
        q: str = "", registry: ModelRegistry = Depends(get_registry)
    ) -> list[ModelView]:
        return [ModelView.from_model(m) for m in registry.search(q)]

    @app.post("/api/models", status_code=201, dependencies=[Depends(require_admin)])
    async def add_model(
        req: ModelRequest, registry: ModelRegistry = Depends(get_registry)
    ) -> ModelView:
        return ModelView.from_model(registry.add(req.name, req.api_key))

    @app.put("/api/models/{model_id}", dependencies=[Depends(require_admin)])
    async def update_model(
        model_id: str, req: ModelRequest, registry: ModelRegistry = Depends(get_registry)
    ) -> ModelView:
        return ModelView.from_model(registry.update(model_id, req.name, req.api_key))

    @app.delete("/api/models/{model_id}", dependencies=[Depends(require_admin)])
    async def delete_model(model_id: str, registry: ModelRegistry = Depends(get_registry)) -> dict:
        registry.delete(model_id)
        return {"success": True}

    @app.post("/api/models/{model_id}/default", dependencies=[Depends(require_admin)])
    async def set_default_model(
        model_id: str, registry: ModelRegistry = Depends(get_registry)
    ) -> ModelView:
        return ModelView.from_model(registry.set_default(model_id))

    @app.post("/api/models/{model_id}/enabled", dependencies=[Depends(require_admin)])
    async def set_model_enabled(
        model_id: str, req: EnabledRequest, registry: ModelRegistry = Depends(get_registry)
    ) -> ModelView:
        return ModelView.from_model(registry.set_enabled(model_id, req.enabled))

    return app


app = create_app()


def main() -> None:
    """Launch the uvicorn server using settings from :data:`config`."""
    import uvicorn

    logging.basicConfig(
        level=getattr(logging, config.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        "imager.api.main:app",
        host=config.server_host,
        port=config.server_port,
        log_level=config.log_level.lower(),
    )


if __name__ == "__main__":
    main()
