"""
Draft store - Durable, resumable accumulation of the registration wizard.

The draft holds one section slot per wizard step plus a cursor. Every
mutation is persisted through the DraftRepository port. Only the
``{currentStep, sections}`` subset is ever persisted; credentials stay in
memory for the lifetime of the workspace.

Step sequencing rules
=====================

- The cursor lives in ``[1, 8]``; moves past either end are no-ops.
- ``next_step()`` refuses to leave a step whose slot is still empty, so the
  cursor never passes the first incomplete step.
- ``set_step(n)`` clamps ``n`` to ``[1, 8]`` and to the furthest reachable
  step (first incomplete step).

Storage failures never interrupt the wizard: they are logged and the store
keeps working in memory (``persistence_degraded``).
"""

import copy
import logging
from dataclasses import dataclass, field
from typing import Any

from .exceptions import DraftStorageError, UnknownDraft
from .ports import FIRST_STEP, LAST_STEP, DraftRepository, StepId

logger = logging.getLogger(__name__)


@dataclass
class Credentials:
    """Login credentials captured on the final step. Never persisted."""

    email: str
    password: str

    def __repr__(self) -> str:
        return f"Credentials(email={self.email!r}, password='***')"


@dataclass
class RegistrationDraft:
    """The in-progress, not-yet-submitted vendor application."""

    current_step: int = FIRST_STEP
    sections: dict[StepId, Any] = field(default_factory=dict)
    credentials: Credentials | None = None

    def is_complete(self, step: StepId) -> bool:
        return self.sections.get(StepId(step)) is not None

    @property
    def completed_steps(self) -> list[StepId]:
        return [step for step in StepId if self.is_complete(step)]

    @property
    def missing_steps(self) -> list[StepId]:
        return [step for step in StepId if not self.is_complete(step)]

    @property
    def furthest_reachable_step(self) -> int:
        """First incomplete step, or the last step when all are complete."""
        for step in StepId:
            if not self.is_complete(step):
                return int(step)
        return int(LAST_STEP)

    @property
    def is_empty(self) -> bool:
        return not self.sections and self.current_step == FIRST_STEP and self.credentials is None

    def to_persisted(self) -> dict[str, Any]:
        """Whitelisted view for durable storage. Credentials are excluded."""
        return {
            "currentStep": self.current_step,
            "sections": {
                step.slot_name: payload
                for step, payload in sorted(self.sections.items())
                if payload is not None
            },
        }

    @classmethod
    def from_persisted(cls, payload: dict[str, Any]) -> "RegistrationDraft":
        """
        Rebuild a draft from its persisted view.

        Unknown slot names are dropped and the cursor is re-clamped, so a
        tampered or stale record cannot break the sequencing invariant.
        """
        sections: dict[StepId, Any] = {}
        for name, section in (payload.get("sections") or {}).items():
            try:
                step = StepId.from_slot_name(name)
            except KeyError:
                logger.warning("Dropping unknown draft section: %s", name)
                continue
            if section is not None:
                sections[step] = section

        draft = cls(sections=sections)
        try:
            stored_step = int(payload.get("currentStep", FIRST_STEP))
        except (TypeError, ValueError):
            stored_step = FIRST_STEP
        draft.current_step = _clamp(stored_step, draft.furthest_reachable_step)
        return draft


def _clamp(step: int, ceiling: int) -> int:
    return max(int(FIRST_STEP), min(step, int(LAST_STEP), ceiling))


class DraftStore:
    """
    Owner of one registration draft.

    Wizard steps mutate the draft exclusively through this class. Each
    mutation is followed by a write of the whitelisted view to the
    repository under ``(namespace, draft_id)``.
    """

    def __init__(
        self,
        repository: DraftRepository,
        namespace: str,
        draft_id: str,
        draft: RegistrationDraft | None = None,
    ) -> None:
        self._repository = repository
        self._namespace = namespace
        self.draft_id = draft_id
        self._draft = draft or RegistrationDraft()
        self.persistence_degraded = False

    @classmethod
    def create(cls, repository: DraftRepository, namespace: str, draft_id: str) -> "DraftStore":
        """Start an empty draft and persist it so it can be resumed later."""
        store = cls(repository, namespace, draft_id)
        store._persist()
        return store

    @classmethod
    def resume(cls, repository: DraftRepository, namespace: str, draft_id: str) -> "DraftStore":
        """
        Rehydrate a draft from durable storage.

        Raises:
            UnknownDraft: If nothing is stored for the draft, or storage
                cannot be read (there is no in-memory copy to fall back to)
        """
        try:
            payload = repository.load(namespace, draft_id)
        except DraftStorageError as exc:
            logger.warning("Draft storage unavailable while resuming %s: %s", draft_id, exc)
            raise UnknownDraft(draft_id) from exc

        if payload is None:
            raise UnknownDraft(draft_id)

        return cls(repository, namespace, draft_id, RegistrationDraft.from_persisted(payload))

    @property
    def draft(self) -> RegistrationDraft:
        return self._draft

    @property
    def current_step(self) -> int:
        return self._draft.current_step

    def update_form_data(self, step: StepId | int, data: Any) -> None:
        """
        Overwrite one section slot with an already-validated payload.

        The caller's local validation is trusted; no cross-field checks
        happen here. The cursor is not moved.
        """
        self._draft.sections[StepId(step)] = copy.deepcopy(data)
        self._persist()

    def update_credentials(self, email: str, password: str) -> None:
        """Hold login credentials in memory only."""
        self._draft.credentials = Credentials(email=email, password=password)

    def next_step(self) -> bool:
        """
        Advance the cursor by one.

        Returns:
            True if the cursor moved. False at the last step, or when the
            current step has not been completed yet.
        """
        current = StepId(self._draft.current_step)
        if current == LAST_STEP:
            return False
        if not self._draft.is_complete(current):
            logger.info("Draft %s: step %d incomplete, not advancing", self.draft_id, current)
            return False

        self._draft.current_step += 1
        self._persist()
        return True

    def prev_step(self) -> bool:
        """Retreat the cursor by one. Returns False at the first step."""
        if self._draft.current_step <= FIRST_STEP:
            return False

        self._draft.current_step -= 1
        self._persist()
        return True

    def set_step(self, step: int) -> int:
        """
        Jump directly to a step.

        The target is clamped to ``[1, 8]`` and to the furthest reachable
        step. Returns the step the cursor ends up on.
        """
        target = _clamp(int(step), self._draft.furthest_reachable_step)
        if target != self._draft.current_step:
            self._draft.current_step = target
            self._persist()
        return target

    def clear_registration_data(self) -> None:
        """Reset to the empty draft and drop the persisted record."""
        self._draft = RegistrationDraft()
        try:
            self._repository.delete(self._namespace, self.draft_id)
        except DraftStorageError as exc:
            self._degrade(exc)

    def _persist(self) -> None:
        try:
            self._repository.save(self._namespace, self.draft_id, self._draft.to_persisted())
        except DraftStorageError as exc:
            self._degrade(exc)
        else:
            self.persistence_degraded = False

    def _degrade(self, exc: DraftStorageError) -> None:
        if not self.persistence_degraded:
            logger.warning(
                "Draft %s: persistence failed, continuing in memory only: %s",
                self.draft_id,
                exc,
            )
        self.persistence_degraded = True
