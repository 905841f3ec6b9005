"""
Domain layer - Pure business logic with zero framework imports.

This package contains the vendor lifecycle core: the resumable registration
draft, the one-shot submission pipeline and the lifecycle authorization
gate. It defines its own port interfaces for infrastructure abstraction,
ensuring true hexagonal architecture decoupling.
"""

from .documents import DocumentFile, DocumentRequirements, DocumentSlots
from .draft import DraftStore, RegistrationDraft
from .exceptions import (
    BackendUnavailable,
    DraftStorageError,
    RegistrationError,
    RegistrationOutcomeUnknown,
    SubmissionInProgress,
    SubmissionRejected,
    UnknownDocumentSlot,
    UnknownDraft,
)
from .gate import AuthSnapshot, GateDecision, Outcome, PortalPaths, VendorAccount, authorize, authorize_exact
from .ports import (
    AccountSource,
    DraftRepository,
    RegistrationBackend,
    Role,
    StepId,
    SubmissionState,
    VendorDirectory,
    VendorStatus,
)
from .session import PortalSession
from .submission import CredentialCandidate, SubmissionOutcome, SubmissionPipeline
from .vendors import VendorSummary, normalize_vendor_summary
from .workspace import RegistrationWorkspace, WorkspaceRegistry

__all__ = [
    "AccountSource",
    "AuthSnapshot",
    "BackendUnavailable",
    "CredentialCandidate",
    "DocumentFile",
    "DocumentRequirements",
    "DocumentSlots",
    "DraftRepository",
    "DraftStorageError",
    "DraftStore",
    "GateDecision",
    "Outcome",
    "PortalPaths",
    "PortalSession",
    "RegistrationBackend",
    "RegistrationDraft",
    "RegistrationError",
    "RegistrationOutcomeUnknown",
    "RegistrationWorkspace",
    "Role",
    "StepId",
    "SubmissionInProgress",
    "SubmissionOutcome",
    "SubmissionPipeline",
    "SubmissionRejected",
    "SubmissionState",
    "UnknownDocumentSlot",
    "UnknownDraft",
    "VendorAccount",
    "VendorDirectory",
    "VendorStatus",
    "VendorSummary",
    "WorkspaceRegistry",
    "authorize",
    "authorize_exact",
    "normalize_vendor_summary",
]
