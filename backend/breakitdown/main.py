"""FastAPI app factory."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from breakitdown.config import Settings, settings
from breakitdown.engine.workspace import WorkspaceRegistry
from breakitdown.errors import BreakItDownError
from breakitdown.llm.client import Completer, CompletionGateway
from breakitdown.services.image_search import ImageSearchClient
from breakitdown.storage.sessions import SessionStore

load_dotenv()

logging.basicConfig(
    level=getattr(logging, settings.breakitdown_log_level.upper(), logging.DEBUG),
    format="%(asctime)s %(name)s %(levelname)s %(message)s",
)

logger = logging.getLogger(__name__)


async def _handle_service_error(request: Request, exc: BreakItDownError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.user_message, "detail": str(exc)},
    )


def create_app(
    s: Settings | None = None,
    *,
    gateway: Completer | None = None,
    image_search: ImageSearchClient | None = None,
) -> FastAPI:
    s = s or settings
    gateway = gateway or CompletionGateway.from_settings(s)
    image_search = image_search or ImageSearchClient.from_settings(s)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await image_search.aclose()

    app = FastAPI(
        title="Break It Down",
        description="Recursive object decomposition down to raw materials",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=s.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = s
    app.state.gateway = gateway
    app.state.image_search = image_search
    app.state.registry = WorkspaceRegistry.from_settings(gateway, s, image_lookup=image_search.search)
    app.state.sessions = SessionStore(s.sessions_dir)

    app.add_exception_handler(BreakItDownError, _handle_service_error)

    from breakitdown.api.router import api_router

    app.include_router(api_router)

    logger.info("Provider: %s", getattr(gateway, "provider_name", "") or "none configured")
    return app


app = create_app()
