"""
API v1 registration routes.

Defines REST endpoints for the vendor registration wizard: draft lifecycle,
step payloads, transient document uploads and the final submission.
"""

from typing import Any

from fastapi import APIRouter, Body, Depends, File, HTTPException, Response, UploadFile, status
from fastapi.responses import FileResponse
from pydantic import ValidationError

from src.api.dependencies import get_pipeline, get_registry
from src.api.models import (
    SECTION_MODELS,
    CredentialsRequest,
    DocumentSlotResponse,
    DraftResponse,
    ErrorResponse,
    GotoRequest,
    ProblemResponse,
    StepMoveResponse,
    SubmissionResponse,
    field_error_map,
)
from src.domain.documents import DocumentFile, UploadedDocument
from src.domain.exceptions import SubmissionInProgress, UnknownDocumentSlot, UnknownDraft
from src.domain.ports import StepId, SubmissionState
from src.domain.submission import INVALID_CREDENTIALS, CredentialCandidate, SubmissionPipeline
from src.domain.workspace import RegistrationWorkspace, WorkspaceRegistry

router = APIRouter(prefix="/registration/drafts", tags=["registration"])

NOT_FOUND = {404: {"model": ErrorResponse, "description": "Unknown draft"}}


def _slot_response(document: UploadedDocument) -> DocumentSlotResponse:
    return DocumentSlotResponse(
        slot=document.slot,
        declared_type=document.declared_type,
        filled=document.filled,
        filename=document.file.filename if document.file else None,
        size=document.file.size if document.file else None,
        content_type=document.file.content_type if document.file else None,
        validation_error=document.validation_error,
        has_preview=document.preview is not None,
    )


def _draft_response(workspace: RegistrationWorkspace) -> DraftResponse:
    draft = workspace.store.draft
    return DraftResponse(
        draft_id=workspace.draft_id,
        current_step=draft.current_step,
        completed_steps=[int(step) for step in draft.completed_steps],
        furthest_reachable_step=draft.furthest_reachable_step,
        sections={step.slot_name: payload for step, payload in sorted(draft.sections.items())},
        documents=[_slot_response(document) for document in workspace.documents],
        persistence_degraded=workspace.store.persistence_degraded,
    )


def _workspace(registry: WorkspaceRegistry, draft_id: str) -> RegistrationWorkspace:
    try:
        return registry.get(draft_id)
    except UnknownDraft:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Registration draft not found",
        ) from None


def _document(workspace: RegistrationWorkspace, slot: int) -> UploadedDocument:
    try:
        return workspace.documents[slot]
    except UnknownDocumentSlot:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown document slot: {slot}",
        ) from None


def _problem(status_code: int, message: str, **extra: Any) -> HTTPException:
    return HTTPException(status_code=status_code, detail={"message": message, **extra})


@router.post(
    "",
    response_model=DraftResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Start a registration draft",
)
def create_draft(registry: WorkspaceRegistry = Depends(get_registry)) -> DraftResponse:
    """Open an empty draft at step 1. Keep the returned id to resume later."""
    return _draft_response(registry.create())


@router.get(
    "/{draft_id}",
    response_model=DraftResponse,
    responses=NOT_FOUND,
    summary="Resume a registration draft",
    description="Returns the cursor, completed steps, stored sections and document slots. "
    "Documents do not survive a service restart and must be uploaded again.",
)
def get_draft(draft_id: str, registry: WorkspaceRegistry = Depends(get_registry)) -> DraftResponse:
    return _draft_response(_workspace(registry, draft_id))


@router.put(
    "/{draft_id}/steps/{step}",
    response_model=StepMoveResponse,
    responses={
        **NOT_FOUND,
        422: {"model": ProblemResponse, "description": "Section failed local validation"},
        409: {"model": ProblemResponse, "description": "An earlier step is still incomplete"},
    },
    summary="Save a wizard step and advance",
)
def save_step(
    draft_id: str,
    step: int,
    payload: dict[str, Any] = Body(...),
    registry: WorkspaceRegistry = Depends(get_registry),
) -> StepMoveResponse:
    """
    Validate one section, store it and move to the next step.

    The section replaces whatever the slot held before. The cursor is first
    placed on the saved step (so editing an earlier step works), then
    advanced. Steps past the first incomplete one are refused with 409.
    """
    workspace = _workspace(registry, draft_id)

    model = SECTION_MODELS.get(step)
    if model is None:
        raise _problem(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            "This step cannot be saved directly.",
            field_errors={"step": f"Step must be between 1 and {len(SECTION_MODELS)}"},
        )

    try:
        section = model.model_validate(payload)
    except ValidationError as exc:
        raise _problem(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            "Please correct the highlighted fields.",
            field_errors=field_error_map(exc),
        ) from None

    store = workspace.store
    reachable = store.draft.furthest_reachable_step
    if step > reachable:
        raise _problem(
            status.HTTP_409_CONFLICT,
            "Please complete the earlier steps first.",
            field_errors={"step": f"Step {reachable} must be completed first"},
        )
    store.update_form_data(StepId(step), section.to_section())
    store.set_step(step)
    moved = store.next_step()
    return StepMoveResponse(moved=moved, draft=_draft_response(workspace))


@router.post(
    "/{draft_id}/back",
    response_model=StepMoveResponse,
    responses=NOT_FOUND,
    summary="Go back one step",
)
def previous_step(draft_id: str, registry: WorkspaceRegistry = Depends(get_registry)) -> StepMoveResponse:
    workspace = _workspace(registry, draft_id)
    moved = workspace.store.prev_step()
    return StepMoveResponse(moved=moved, draft=_draft_response(workspace))


@router.post(
    "/{draft_id}/goto",
    response_model=StepMoveResponse,
    responses=NOT_FOUND,
    summary="Jump to a step",
    description="The target is clamped to 1-8 and to the first incomplete step.",
)
def goto_step(
    draft_id: str,
    request_data: GotoRequest,
    registry: WorkspaceRegistry = Depends(get_registry),
) -> StepMoveResponse:
    workspace = _workspace(registry, draft_id)
    before = workspace.store.current_step
    landed = workspace.store.set_step(request_data.step)
    return StepMoveResponse(moved=landed != before, draft=_draft_response(workspace))


@router.put(
    "/{draft_id}/documents/{slot}",
    response_model=DocumentSlotResponse,
    responses={
        **NOT_FOUND,
        422: {"model": ProblemResponse, "description": "File rejected"},
    },
    summary="Upload a registration document",
)
def upload_document(
    draft_id: str,
    slot: int,
    file: UploadFile = File(...),
    registry: WorkspaceRegistry = Depends(get_registry),
) -> DocumentSlotResponse:
    """
    Place a file into a document slot (0-based), replacing any earlier file.

    The file is held in memory only until the draft is submitted or
    abandoned. A rejected file leaves the slot empty with its error recorded.
    """
    workspace = _workspace(registry, draft_id)
    _document(workspace, slot)

    # One byte past the limit is enough for the size check to reject it
    limit = workspace.documents.requirements.max_bytes
    upload = DocumentFile(
        filename=file.filename or f"document-{slot}",
        content_type=file.content_type or "application/octet-stream",
        content=file.file.read(limit + 1),
    )
    document = workspace.documents.place(slot, upload)
    if document.validation_error is not None:
        raise _problem(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            document.validation_error,
            field_errors={str(slot): document.validation_error},
        )
    return _slot_response(document)


@router.delete(
    "/{draft_id}/documents/{slot}",
    response_model=DocumentSlotResponse,
    responses=NOT_FOUND,
    summary="Remove a registration document",
)
def remove_document(
    draft_id: str,
    slot: int,
    registry: WorkspaceRegistry = Depends(get_registry),
) -> DocumentSlotResponse:
    workspace = _workspace(registry, draft_id)
    _document(workspace, slot)
    return _slot_response(workspace.documents.clear(slot))


@router.get(
    "/{draft_id}/documents/{slot}/preview",
    response_class=FileResponse,
    responses=NOT_FOUND,
    summary="Preview an uploaded image",
)
def preview_document(
    draft_id: str,
    slot: int,
    registry: WorkspaceRegistry = Depends(get_registry),
) -> FileResponse:
    workspace = _workspace(registry, draft_id)
    document = _document(workspace, slot)
    if document.preview is None or document.file is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No preview available for this slot",
        )
    return FileResponse(document.preview.path, media_type=document.file.content_type)


@router.post(
    "/{draft_id}/submit",
    response_model=SubmissionResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        **NOT_FOUND,
        400: {"model": ProblemResponse, "description": "Documents or steps incomplete"},
        409: {"model": ErrorResponse, "description": "Submission already in progress"},
        422: {"model": ProblemResponse, "description": "Invalid account credentials"},
        502: {"model": ProblemResponse, "description": "Backend refused or unreachable"},
    },
    summary="Submit the registration",
)
def submit_registration(
    draft_id: str,
    request_data: CredentialsRequest,
    pipeline: SubmissionPipeline = Depends(get_pipeline),
) -> SubmissionResponse:
    """
    Send the completed draft to the marketplace backend in one call.

    On success the draft is destroyed and the application id returned. On
    any failure the draft is kept so the vendor can retry.
    """
    candidate = CredentialCandidate(
        email=request_data.email,
        password=request_data.password,
        confirm_password=request_data.confirm_password,
    )

    try:
        outcome = pipeline.submit_registration(draft_id, candidate)
    except UnknownDraft:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Registration draft not found",
        ) from None
    except SubmissionInProgress:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Registration submission already in progress",
        ) from None

    if outcome.state is SubmissionState.BLOCKED:
        code = (
            status.HTTP_422_UNPROCESSABLE_ENTITY
            if outcome.problem == INVALID_CREDENTIALS
            else status.HTTP_400_BAD_REQUEST
        )
        raise _problem(
            code,
            outcome.message or "Registration is incomplete.",
            problem=outcome.problem,
            field_errors=outcome.field_errors,
        )

    if outcome.state is SubmissionState.FAILED:
        code = outcome.status_code
        if code is None or not 400 <= code < 500:
            code = status.HTTP_502_BAD_GATEWAY
        raise _problem(
            code,
            outcome.message or "Registration failed. Please try again.",
            problem=outcome.problem,
            status=outcome.status,
            reason=outcome.reason,
        )

    return SubmissionResponse(
        message="Registration submitted. Your application is pending review.",
        registration_id=outcome.registration_id,
    )


@router.delete(
    "/{draft_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses=NOT_FOUND,
    summary="Abandon a registration draft",
)
def abandon_draft(draft_id: str, registry: WorkspaceRegistry = Depends(get_registry)) -> Response:
    try:
        registry.abandon(draft_id)
    except UnknownDraft:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Registration draft not found",
        ) from None
    return Response(status_code=status.HTTP_204_NO_CONTENT)
