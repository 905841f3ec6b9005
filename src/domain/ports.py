"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the enumerations shared across the vendor lifecycle
subsystem and the interfaces (ports) that the domain requires from
infrastructure. Adapters implement these protocols.
"""

from enum import Enum, IntEnum
from typing import Any, Protocol


class StepId(IntEnum):
    """
    Registration wizard steps, in the order the vendor completes them.

    Each step owns exactly one section slot of the draft. The value is the
    1-based step number used by the wizard cursor.
    """

    PHARMACY_INFO = 1
    PHARMACY_OWNER = 2
    PRIMARY_CONTACT = 3
    PHARMACY_LICENSE = 4
    PHARMACY_QUESTIONS = 5
    REFERRAL_INFO = 6
    BANK_ACCOUNT = 7
    DOCUMENTS_META = 8

    @property
    def slot_name(self) -> str:
        """Name of the section slot on the wire and in durable storage."""
        return _SLOT_NAMES[self]

    @classmethod
    def from_slot_name(cls, name: str) -> "StepId":
        for step, slot in _SLOT_NAMES.items():
            if slot == name:
                return step
        raise KeyError(name)


_SLOT_NAMES = {
    StepId.PHARMACY_INFO: "pharmacyInfo",
    StepId.PHARMACY_OWNER: "pharmacyOwner",
    StepId.PRIMARY_CONTACT: "primaryContact",
    StepId.PHARMACY_LICENSE: "pharmacyLicense",
    StepId.PHARMACY_QUESTIONS: "pharmacyQuestions",
    StepId.REFERRAL_INFO: "referralInfo",
    StepId.BANK_ACCOUNT: "bankAccount",
    StepId.DOCUMENTS_META: "documentsMeta",
}

FIRST_STEP = min(StepId)
LAST_STEP = max(StepId)


class VendorStatus(str, Enum):
    """
    Server-assigned vendor lifecycle status.

    Transitions (server-authoritative, never computed by this service):
    - PENDING -> APPROVED | REJECTED
    - APPROVED -> SUSPENDED
    - SUSPENDED -> APPROVED (reactivation)
    """

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    SUSPENDED = "suspended"


class Role(str, Enum):
    """Account roles known to the portals."""

    VENDOR = "vendor"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


class SubmissionState(Enum):
    """
    Registration flow state after a submission attempt.

    BLOCKED means a gate refused the attempt and nothing was sent.
    FAILED means the backend call was made and did not succeed.
    """

    COMPLETE = "complete"
    FAILED = "failed"
    BLOCKED = "blocked"


class DraftRepository(Protocol):
    """Port interface for durable draft persistence."""

    def load(self, namespace: str, draft_id: str) -> dict[str, Any] | None:
        """
        Load the persisted subset of a draft.

        Returns:
            The stored ``{"currentStep", "sections"}`` mapping, or None
            when nothing is stored for this draft.

        Raises:
            DraftStorageError: If the storage backend cannot be read
        """
        ...

    def save(self, namespace: str, draft_id: str, payload: dict[str, Any]) -> None:
        """
        Overwrite the persisted subset of a draft.

        Raises:
            DraftStorageError: If the payload cannot be serialized or written
        """
        ...

    def delete(self, namespace: str, draft_id: str) -> None:
        """Remove a draft. Deleting a missing draft is not an error."""
        ...


class RegistrationBackend(Protocol):
    """Port interface for the marketplace backend registration endpoint."""

    def submit_registration(
        self,
        sections: dict[str, dict[str, Any] | list[Any]],
        documents: list[Any],
        email: str,
        password: str,
    ) -> str:
        """
        Issue the single registration call.

        Args:
            sections: Section payloads keyed by slot name
            documents: DocumentFile objects, in slot order
            email: Login email for the new vendor account
            password: Plaintext password, sent once and never stored

        Returns:
            Server-issued application identifier

        Raises:
            SubmissionRejected: Backend answered with an error response
            BackendUnavailable: Backend could not be reached
        """
        ...


class AccountSource(Protocol):
    """Port interface for the current-user lookup (``GET /me``)."""

    def fetch_current_account(self, token: str) -> dict[str, Any] | None:
        """
        Fetch the raw account record for a bearer token.

        Returns:
            Raw account mapping, or None when the token is not recognised

        Raises:
            BackendUnavailable: Backend could not be reached
        """
        ...


class VendorDirectory(Protocol):
    """Port interface for admin vendor listings."""

    def list_vendors(self, token: str, status: str | None = None) -> list[dict[str, Any]]:
        """Return raw vendor records visible to the admin token."""
        ...
