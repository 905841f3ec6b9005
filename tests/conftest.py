"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- In-memory draft storage and workspace registries
- Default document requirements
"""

from collections.abc import Generator

import pytest

from src.adapters.repository.memory import InMemoryDraftRepository
from src.domain.documents import DocumentRequirements
from src.domain.workspace import WorkspaceRegistry
from tests.factories import DOCUMENT_TYPES, NAMESPACE


@pytest.fixture
def requirements() -> DocumentRequirements:
    """Default document requirements: seven documents, JPEG/PNG/PDF, 5MB."""
    return DocumentRequirements(
        document_types=DOCUMENT_TYPES,
        allowed_content_types=frozenset({"image/jpeg", "image/png", "application/pdf"}),
        max_bytes=5 * 1024 * 1024,
    )


@pytest.fixture
def repository() -> InMemoryDraftRepository:
    return InMemoryDraftRepository()


@pytest.fixture
def registry(
    repository: InMemoryDraftRepository, requirements: DocumentRequirements
) -> Generator[WorkspaceRegistry, None, None]:
    registry = WorkspaceRegistry(repository, requirements, NAMESPACE)
    yield registry
    registry.close_all()
