"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting
domain services and infrastructure adapters into routes.
"""

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from psycopg_pool import ConnectionPool

from src.adapters.backend.http import HttpMarketplaceBackend
from src.config.settings import Settings
from src.domain.documents import DocumentRequirements
from src.domain.gate import AuthSnapshot, PortalPaths
from src.domain.session import PortalSession
from src.domain.submission import SubmissionPipeline
from src.domain.workspace import WorkspaceRegistry


def build_document_requirements(settings: Settings) -> DocumentRequirements:
    """Document slot configuration from settings."""
    return DocumentRequirements(
        document_types=tuple(settings.required_documents),
        allowed_content_types=frozenset(settings.allowed_document_types),
        max_bytes=settings.max_document_bytes,
    )


def build_portal_paths(settings: Settings) -> PortalPaths:
    """Redirect targets from settings."""
    return PortalPaths(
        login=settings.login_path,
        vendor_dashboard=settings.dashboard_path,
        admin_dashboard=settings.admin_dashboard_path,
        pending=settings.pending_path,
        rejected=settings.rejected_path,
        suspended=settings.suspended_path,
    )


def get_pool(request: Request) -> ConnectionPool:
    """
    Get connection pool from app state.

    The pool is created during app lifespan startup and stored in app.state.
    """
    return request.app.state.pool


def get_registry(request: Request) -> WorkspaceRegistry:
    """Get the process-wide workspace registry from app state."""
    return request.app.state.registry


def get_pipeline(request: Request) -> SubmissionPipeline:
    """Get the submission pipeline (owns the in-flight guard) from app state."""
    return request.app.state.pipeline


def get_backend(request: Request) -> HttpMarketplaceBackend:
    """Get the marketplace backend adapter from app state."""
    return request.app.state.backend


def get_portal_paths(request: Request) -> PortalPaths:
    """Get redirect targets from app state."""
    return request.app.state.paths


# Bearer token security scheme for OpenAPI documentation
http_bearer = HTTPBearer(auto_error=False)


def get_bearer_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(http_bearer),
) -> str | None:
    """
    Extract the bearer token, if any.

    A missing or malformed Authorization header yields None rather than 401,
    so the gate can answer with a login redirect.
    """
    if credentials is None:
        return None
    return credentials.credentials.strip() or None


def get_auth_snapshot(
    token: str | None = Depends(get_bearer_token),
    backend: HttpMarketplaceBackend = Depends(get_backend),
) -> AuthSnapshot:
    """
    Refresh a session for the caller and return its snapshot.

    Status is re-read from the backend on every request; nothing is cached
    across requests.
    """
    session = PortalSession(backend)
    return session.refresh(token)
