"""
Document slots - Transient holding area for the required registration documents.

Uploaded files live only in process memory for the lifetime of the
registration workspace. Binary content is never handed to the draft store;
only ``{name, size, type}`` metadata reaches the ``documentsMeta`` section.

The list of required documents (and therefore the slot count) comes from
configuration through DocumentRequirements.
"""

import logging
import mimetypes
import os
import tempfile
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from .exceptions import UnknownDocumentSlot

logger = logging.getLogger(__name__)

MISSING_DOCUMENTS = "missing documents"
DOCUMENT_ERRORS = "document errors"


@dataclass(frozen=True)
class DocumentRequirements:
    """Required document list and per-file acceptance rules."""

    document_types: tuple[str, ...]
    allowed_content_types: frozenset[str]
    max_bytes: int

    @property
    def count(self) -> int:
        return len(self.document_types)


@dataclass(frozen=True)
class DocumentFile:
    """One uploaded file, as received from the browser."""

    filename: str
    content_type: str
    content: bytes = field(repr=False)

    @property
    def size(self) -> int:
        return len(self.content)


class PreviewHandle:
    """
    Temporary on-disk copy of an image upload, served back as a preview.

    The file exists until release() is called. Releasing twice is a no-op.
    """

    def __init__(self, content: bytes, content_type: str) -> None:
        suffix = mimetypes.guess_extension(content_type) or ""
        fd, path = tempfile.mkstemp(prefix="vendor-preview-", suffix=suffix)
        with os.fdopen(fd, "wb") as handle:
            handle.write(content)
        self.path = Path(path)
        self.released = False

    def release(self) -> None:
        if self.released:
            return
        self.path.unlink(missing_ok=True)
        self.released = True


@dataclass
class UploadedDocument:
    """State of one document slot."""

    slot: int
    declared_type: str
    file: DocumentFile | None = None
    validation_error: str | None = None
    preview: PreviewHandle | None = None

    @property
    def filled(self) -> bool:
        return self.file is not None

    def metadata(self) -> dict[str, object]:
        return {
            "name": self.file.filename if self.file else self.declared_type,
            "size": self.file.size if self.file else 0,
            "type": self.file.content_type if self.file else "",
            "declaredType": self.declared_type,
        }


@dataclass(frozen=True)
class DocumentCheck:
    """
    Result of the document completeness gate.

    Truthy when every slot is filled and error-free. Otherwise ``problem``
    names the failure (missing documents wins over document errors) and
    ``message`` is the user-facing summary.
    """

    ok: bool
    problem: str | None = None
    message: str | None = None

    def __bool__(self) -> bool:
        return self.ok


def validate_documents(slots: Sequence[UploadedDocument], required_count: int) -> DocumentCheck:
    """Require ``required_count`` filled slots and zero slot errors."""
    filled = sum(1 for document in slots if document.filled)
    if len(slots) < required_count or filled < required_count:
        return DocumentCheck(
            ok=False,
            problem=MISSING_DOCUMENTS,
            message=f"Please upload all {required_count} required documents.",
        )

    if any(document.validation_error is not None for document in slots):
        return DocumentCheck(
            ok=False,
            problem=DOCUMENT_ERRORS,
            message="Please fix document errors before submitting.",
        )

    return DocumentCheck(ok=True)


class DocumentSlots:
    """Fixed-size set of document slots, one per required document type."""

    def __init__(self, requirements: DocumentRequirements) -> None:
        self.requirements = requirements
        self._slots = [
            UploadedDocument(slot=index, declared_type=document_type)
            for index, document_type in enumerate(requirements.document_types)
        ]

    def __iter__(self) -> Iterator[UploadedDocument]:
        return iter(self._slots)

    def __len__(self) -> int:
        return len(self._slots)

    def __getitem__(self, index: int) -> UploadedDocument:
        return self._slot(index)

    def place(self, index: int, upload: DocumentFile) -> UploadedDocument:
        """
        Put a file into a slot, replacing whatever was there.

        A file that breaks the acceptance rules leaves the slot empty with
        its validation_error set.
        """
        document = self._slot(index)
        self._release(document)

        error = self._check(upload)
        if error is not None:
            logger.info("Document slot %d rejected %s: %s", index, upload.filename, error)
            document.file = None
            document.validation_error = error
            return document

        document.file = upload
        document.validation_error = None
        if upload.content_type.startswith("image/"):
            document.preview = PreviewHandle(upload.content, upload.content_type)
        return document

    def clear(self, index: int) -> UploadedDocument:
        document = self._slot(index)
        self._release(document)
        document.file = None
        document.validation_error = None
        return document

    def check(self) -> DocumentCheck:
        return validate_documents(self._slots, self.requirements.count)

    def files(self) -> list[DocumentFile]:
        return [document.file for document in self._slots if document.file is not None]

    def metadata(self) -> list[dict[str, object]]:
        return [document.metadata() for document in self._slots]

    def release_all(self) -> None:
        for document in self._slots:
            self._release(document)

    def _slot(self, index: int) -> UploadedDocument:
        if not 0 <= index < len(self._slots):
            raise UnknownDocumentSlot(index)
        return self._slots[index]

    def _check(self, upload: DocumentFile) -> str | None:
        if upload.content_type not in self.requirements.allowed_content_types:
            return "Invalid file type. Please upload JPEG, PNG, or PDF."
        if upload.size == 0:
            return "File is empty."
        if upload.size > self.requirements.max_bytes:
            limit_mb = self.requirements.max_bytes // (1024 * 1024)
            return f"File too large. Maximum size is {limit_mb}MB."
        return None

    @staticmethod
    def _release(document: UploadedDocument) -> None:
        if document.preview is not None:
            document.preview.release()
            document.preview = None
