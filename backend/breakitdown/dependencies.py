"""FastAPI dependency injection. Long-lived services live on ``app.state``."""

from __future__ import annotations

from fastapi import Request

from breakitdown.config import Settings
from breakitdown.engine.workspace import WorkspaceRegistry
from breakitdown.llm.client import CompletionGateway
from breakitdown.services.image_search import ImageSearchClient
from breakitdown.storage.sessions import SessionStore


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_gateway(request: Request) -> CompletionGateway:
    return request.app.state.gateway


def get_registry(request: Request) -> WorkspaceRegistry:
    return request.app.state.registry


def get_session_store(request: Request) -> SessionStore:
    return request.app.state.sessions


def get_image_search(request: Request) -> ImageSearchClient:
    return request.app.state.image_search
