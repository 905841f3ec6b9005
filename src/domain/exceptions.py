"""
Domain exceptions - Semantic error types for the vendor lifecycle subsystem.

Only genuine I/O or protocol failures are raised. Local validation and
completeness problems are returned as values, never raised.
"""


class RegistrationError(Exception):
    """Base class for vendor lifecycle domain errors."""

    pass


class DraftStorageError(RegistrationError):
    """Durable draft storage could not be read or written."""

    pass


class UnknownDraft(RegistrationError):
    """No live or persisted draft exists for the given identifier."""

    pass


class UnknownDocumentSlot(RegistrationError):
    """Document slot index is outside the configured document list."""

    pass


class SubmissionInProgress(RegistrationError):
    """A registration call for this draft is already in flight."""

    pass


class BackendUnavailable(RegistrationError):
    """The marketplace backend could not be reached."""

    pass


class SubmissionRejected(RegistrationError):
    """
    The marketplace backend refused the registration.

    Carries the backend message verbatim, plus the structured
    ``{status, reason}`` payload when the backend sent one.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        status: str | None = None,
        reason: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.status = status
        self.reason = reason


class RegistrationOutcomeUnknown(RegistrationError):
    """
    The backend answered with success but no application id.

    The account may already exist, so the attempt is neither complete nor
    safely retryable.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
