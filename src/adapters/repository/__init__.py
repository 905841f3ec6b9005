"""Repository adapters - Draft storage implementations."""

from .memory import InMemoryDraftRepository
from .postgres import PostgresDraftRepository, run_migrations

__all__ = ["InMemoryDraftRepository", "PostgresDraftRepository", "run_migrations"]
