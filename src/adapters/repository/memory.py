"""
In-memory repository adapter - Implements DraftRepository protocol.

Drafts are held as JSON text so that a save has the same serialization
behaviour as the PostgreSQL adapter: an unserializable payload fails at
save time and every load hands back a fresh copy.
"""

import json
import threading
from typing import Any

from src.domain.exceptions import DraftStorageError


class InMemoryDraftRepository:
    """Process-local draft storage for development and tests."""

    def __init__(self) -> None:
        self._records: dict[tuple[str, str], str] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def load(self, namespace: str, draft_id: str) -> dict[str, Any] | None:
        with self._lock:
            document = self._records.get((namespace, draft_id))
        if document is None:
            return None
        return json.loads(document)

    def save(self, namespace: str, draft_id: str, payload: dict[str, Any]) -> None:
        try:
            document = json.dumps(payload)
        except (TypeError, ValueError) as e:
            raise DraftStorageError(f"Draft {draft_id} is not serializable") from e
        with self._lock:
            self._records[(namespace, draft_id)] = document

    def delete(self, namespace: str, draft_id: str) -> None:
        with self._lock:
            self._records.pop((namespace, draft_id), None)
