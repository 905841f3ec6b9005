"""
Submission pipeline - The one-shot vendor registration call.

Registration Flow State Machine
===============================

States:
- STEP(1..8): wizard in progress (owned by the DraftStore cursor)
- SUBMITTING: registration call in flight for the draft
- COMPLETE: terminal; draft destroyed, application id surfaced
- FAILED: backend refused or was unreachable; back to STEP(8)

Transitions:
    STEP(8)    -> SUBMITTING  (all gates pass)
    SUBMITTING -> COMPLETE    (backend accepted)
    SUBMITTING -> FAILED      (backend error, draft kept for retry)
    SUBMITTING -> FAILED      (accepted without an id; "outcome unknown", logged as an error)

Gates, checked before anything is sent:
1. Every configured document slot filled, zero slot errors
2. Credentials: valid email, password >= 8 characters, confirmation matches
3. All eight section slots populated

At most one submission per draft may be in flight. A second, overlapping
attempt raises SubmissionInProgress and never reaches the backend.
"""

import logging
import threading
from dataclasses import dataclass, field

from email_validator import EmailNotValidError, validate_email

from .documents import DocumentCheck, DocumentSlots
from .exceptions import (
    BackendUnavailable,
    RegistrationOutcomeUnknown,
    SubmissionInProgress,
    SubmissionRejected,
)
from .ports import RegistrationBackend, StepId, SubmissionState
from .workspace import WorkspaceRegistry

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8

INVALID_CREDENTIALS = "invalid credentials"
INCOMPLETE_STEPS = "incomplete steps"
OUTCOME_UNKNOWN = "outcome unknown"
OUTCOME_UNKNOWN_MESSAGE = (
    "We could not confirm your registration. Please check your email before trying again."
)


@dataclass(frozen=True)
class CredentialCandidate:
    """Login credentials as typed on the final step."""

    email: str
    password: str
    confirm_password: str

    def __repr__(self) -> str:
        return f"CredentialCandidate(email={self.email!r}, password='***', confirm_password='***')"


def validate_credentials(candidate: CredentialCandidate) -> dict[str, str]:
    """
    Check the final-step credentials.

    Returns:
        Mapping of field name to error message. Empty means valid.
    """
    errors: dict[str, str] = {}
    email = candidate.email.strip()

    if not email:
        errors["email"] = "Email is required"
    else:
        try:
            validate_email(email, check_deliverability=False)
        except EmailNotValidError:
            errors["email"] = "Email is invalid"

    if not candidate.password:
        errors["password"] = "Password is required"
    elif len(candidate.password) < MIN_PASSWORD_LENGTH:
        errors["password"] = f"Password must be at least {MIN_PASSWORD_LENGTH} characters"

    if not candidate.confirm_password:
        errors["confirmPassword"] = "Please confirm your password"
    elif candidate.password != candidate.confirm_password:
        errors["confirmPassword"] = "Passwords do not match"

    return errors


@dataclass(frozen=True)
class SubmissionOutcome:
    """What a submission attempt produced, ready to be shown to the user."""

    state: SubmissionState
    registration_id: str | None = None
    message: str | None = None
    problem: str | None = None
    field_errors: dict[str, str] = field(default_factory=dict)
    status_code: int | None = None
    status: str | None = None
    reason: str | None = None

    @property
    def registration_complete(self) -> bool:
        return self.state is SubmissionState.COMPLETE


class SubmissionPipeline:
    """
    Gate-check, bundle and send a registration draft.

    The draft is drained from the workspace registry; document binaries come
    from the workspace's transient slots, never from durable storage.
    """

    def __init__(self, backend: RegistrationBackend, registry: WorkspaceRegistry) -> None:
        self._backend = backend
        self._registry = registry
        self._in_flight: set[str] = set()
        self._lock = threading.Lock()

    def is_in_flight(self, draft_id: str) -> bool:
        with self._lock:
            return draft_id in self._in_flight

    def validate_documents(self, slots: DocumentSlots) -> DocumentCheck:
        return slots.check()

    def validate_credentials(self, candidate: CredentialCandidate) -> dict[str, str]:
        return validate_credentials(candidate)

    def submit_registration(self, draft_id: str, candidate: CredentialCandidate) -> SubmissionOutcome:
        """
        Submit the draft identified by ``draft_id``.

        Returns:
            COMPLETE with the application id, FAILED with the backend
            message verbatim, or BLOCKED when a gate refused the attempt

        Raises:
            UnknownDraft: If the draft does not exist
            SubmissionInProgress: If another submission for the draft is in flight
        """
        workspace = self._registry.get(draft_id)
        store = workspace.store

        document_check = self.validate_documents(workspace.documents)
        field_errors = self.validate_credentials(candidate)

        if not document_check:
            logger.info("Draft %s: submission blocked, %s", draft_id, document_check.problem)
            return SubmissionOutcome(
                state=SubmissionState.BLOCKED,
                message=document_check.message,
                problem=document_check.problem,
                field_errors=field_errors,
            )

        if field_errors:
            return SubmissionOutcome(
                state=SubmissionState.BLOCKED,
                message="Please correct the highlighted account fields.",
                problem=INVALID_CREDENTIALS,
                field_errors=field_errors,
            )

        self._claim(draft_id)
        try:
            store.update_form_data(StepId.DOCUMENTS_META, workspace.documents.metadata())

            missing = store.draft.missing_steps
            if missing:
                numbers = ", ".join(str(int(step)) for step in missing)
                return SubmissionOutcome(
                    state=SubmissionState.BLOCKED,
                    message=f"Please complete step(s) {numbers} before submitting.",
                    problem=INCOMPLETE_STEPS,
                )

            email = candidate.email.strip()
            store.update_credentials(email, candidate.password)
            sections = {step.slot_name: payload for step, payload in sorted(store.draft.sections.items())}

            try:
                registration_id = self._backend.submit_registration(
                    sections=sections,
                    documents=workspace.documents.files(),
                    email=email,
                    password=candidate.password,
                )
            except SubmissionRejected as exc:
                logger.warning("Draft %s: registration rejected by backend: %s", draft_id, exc.message)
                return SubmissionOutcome(
                    state=SubmissionState.FAILED,
                    message=exc.message,
                    status_code=exc.status_code,
                    status=exc.status,
                    reason=exc.reason,
                )
            except BackendUnavailable as exc:
                logger.warning("Draft %s: registration backend unavailable: %s", draft_id, exc)
                return SubmissionOutcome(state=SubmissionState.FAILED, message=str(exc))
            except RegistrationOutcomeUnknown as exc:
                logger.error("Draft %s: registration outcome unknown: %s", draft_id, exc.message)
                return SubmissionOutcome(
                    state=SubmissionState.FAILED,
                    message=OUTCOME_UNKNOWN_MESSAGE,
                    problem=OUTCOME_UNKNOWN,
                )

            # Still claimed: the draft is gone before any retry can claim it
            store.clear_registration_data()
            self._registry.discard(draft_id)
        finally:
            self._release(draft_id)

        logger.info("Draft %s: registration submitted, application %s", draft_id, registration_id)
        return SubmissionOutcome(state=SubmissionState.COMPLETE, registration_id=registration_id)

    def _claim(self, draft_id: str) -> None:
        with self._lock:
            if draft_id in self._in_flight:
                logger.warning("Draft %s: duplicate submission refused", draft_id)
                raise SubmissionInProgress(draft_id)
            self._in_flight.add(draft_id)

    def _release(self, draft_id: str) -> None:
        with self._lock:
            self._in_flight.discard(draft_id)
