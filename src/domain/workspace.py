"""
Registration workspaces - Live per-draft state.

A workspace pairs a DraftStore with the transient DocumentSlots of the same
draft, the way one browser tab pairs the persisted wizard state with the
files held in component memory. Workspaces are created on the first visit,
rehydrated from durable storage when missing from memory (documents do not
survive that), and torn down on completion or abandonment.

Workspaces left idle longer than ``idle_ttl_seconds`` are evicted on the
next create or get. Eviction releases document bytes and previews; the
persisted sections stay resumable.
"""

import logging
import threading
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field

from .documents import DocumentRequirements, DocumentSlots
from .draft import DraftStore
from .ports import DraftRepository

logger = logging.getLogger(__name__)

DEFAULT_IDLE_TTL_SECONDS = 3600.0


@dataclass
class RegistrationWorkspace:
    """Draft store plus transient document slots for one draft."""

    draft_id: str
    store: DraftStore
    documents: DocumentSlots
    last_access: float = field(default=0.0, compare=False)

    def close(self) -> None:
        self.documents.release_all()


class WorkspaceRegistry:
    """
    Process-wide registry of live registration workspaces.

    Sync FastAPI endpoints run on a threadpool, so every access to the
    registry map is serialized by a lock.
    """

    def __init__(
        self,
        repository: DraftRepository,
        requirements: DocumentRequirements,
        namespace: str,
        idle_ttl_seconds: float = DEFAULT_IDLE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._repository = repository
        self._requirements = requirements
        self._namespace = namespace
        self._idle_ttl = idle_ttl_seconds
        self._clock = clock
        self._workspaces: dict[str, RegistrationWorkspace] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._workspaces)

    def __contains__(self, draft_id: object) -> bool:
        with self._lock:
            return draft_id in self._workspaces

    def create(self) -> RegistrationWorkspace:
        """Open a workspace for a brand-new, empty draft."""
        draft_id = uuid.uuid4().hex
        store = DraftStore.create(self._repository, self._namespace, draft_id)
        workspace = RegistrationWorkspace(draft_id, store, DocumentSlots(self._requirements))
        with self._lock:
            now = self._clock()
            evicted = self._evict_idle(now)
            workspace.last_access = now
            self._workspaces[draft_id] = workspace
        self._close(evicted)
        logger.info("Registration draft created: %s", draft_id)
        return workspace

    def get(self, draft_id: str) -> RegistrationWorkspace:
        """
        Return the live workspace, rehydrating it from storage if needed.

        Raises:
            UnknownDraft: If the draft is neither live nor persisted
        """
        with self._lock:
            now = self._clock()
            evicted = self._evict_idle(now)
            workspace = self._workspaces.get(draft_id)
            if workspace is None:
                store = DraftStore.resume(self._repository, self._namespace, draft_id)
                workspace = RegistrationWorkspace(draft_id, store, DocumentSlots(self._requirements))
                self._workspaces[draft_id] = workspace
                logger.info("Registration draft resumed: %s (step %d)", draft_id, store.current_step)
            workspace.last_access = now
        self._close(evicted)
        return workspace

    def discard(self, draft_id: str) -> None:
        """Tear down a workspace, releasing its preview handles."""
        with self._lock:
            workspace = self._workspaces.pop(draft_id, None)
        if workspace is not None:
            workspace.close()

    def abandon(self, draft_id: str) -> None:
        """Explicit abandonment: clear the draft, then tear the workspace down."""
        workspace = self.get(draft_id)
        workspace.store.clear_registration_data()
        self.discard(draft_id)
        logger.info("Registration draft abandoned: %s", draft_id)

    def close_all(self) -> None:
        with self._lock:
            workspaces = list(self._workspaces.values())
            self._workspaces.clear()
        self._close(workspaces)

    def _evict_idle(self, now: float) -> list[RegistrationWorkspace]:
        # Caller holds the lock
        idle = [
            draft_id
            for draft_id, workspace in self._workspaces.items()
            if now - workspace.last_access > self._idle_ttl
        ]
        if idle:
            logger.info("Evicting %d idle registration workspace(s)", len(idle))
        return [self._workspaces.pop(draft_id) for draft_id in idle]

    @staticmethod
    def _close(workspaces: list[RegistrationWorkspace]) -> None:
        for workspace in workspaces:
            workspace.close()
