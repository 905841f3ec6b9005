"""
API v1 navigation routes.

Every protected portal screen asks the lifecycle gate before rendering.
The caller's account is re-read from the marketplace backend on each call,
so an approval, rejection or suspension takes effect on the next navigation.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from src.adapters.backend.http import HttpMarketplaceBackend
from src.api.dependencies import get_auth_snapshot, get_backend, get_bearer_token, get_portal_paths
from src.api.models import ErrorResponse, GateDecisionResponse, VendorSummaryResponse
from src.domain.exceptions import BackendUnavailable
from src.domain.gate import AuthSnapshot, GateDecision, Outcome, PortalPaths, decide, match_route
from src.domain.ports import VendorStatus
from src.domain.vendors import normalize_vendor_summaries

router = APIRouter(tags=["navigation"])

ADMIN_VENDORS_SCREEN = "/admin/vendors"


def _decision_response(decision: GateDecision) -> GateDecisionResponse:
    return GateDecisionResponse(
        outcome=decision.outcome.value,
        location=decision.location,
        target=decision.target,
        from_path=decision.from_path,
        status=decision.status,
        reason=decision.reason,
    )


@router.get(
    "/navigation/authorize",
    response_model=GateDecisionResponse,
    summary="Authorize a portal navigation",
    description="Returns render, or a redirect carrying the originally requested path, "
    "the live account status and the server-provided reason.",
)
def authorize_navigation(
    path: str = Query(..., min_length=1, description="Portal path about to be rendered"),
    snapshot: AuthSnapshot = Depends(get_auth_snapshot),
    paths: PortalPaths = Depends(get_portal_paths),
) -> GateDecisionResponse:
    return _decision_response(decide(snapshot, path, match_route(path), paths))


@router.get(
    "/admin/vendors",
    response_model=list[VendorSummaryResponse],
    responses={
        401: {"model": ErrorResponse, "description": "Not signed in"},
        403: {"model": ErrorResponse, "description": "Admin role required"},
        502: {"model": ErrorResponse, "description": "Marketplace backend unreachable"},
    },
    summary="List vendors for the admin console",
)
def list_vendors(
    status_filter: VendorStatus | None = Query(None, alias="status"),
    token: str | None = Depends(get_bearer_token),
    snapshot: AuthSnapshot = Depends(get_auth_snapshot),
    paths: PortalPaths = Depends(get_portal_paths),
    backend: HttpMarketplaceBackend = Depends(get_backend),
) -> list[VendorSummaryResponse]:
    """Vendor records normalized into one display shape."""
    decision = decide(snapshot, ADMIN_VENDORS_SCREEN, match_route(ADMIN_VENDORS_SCREEN), paths)
    if decision.outcome is not Outcome.RENDER:
        if not snapshot.is_authenticated:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=decision.reason or "Authentication required",
                headers={"WWW-Authenticate": "Bearer"},
            )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=decision.reason or "Admin role required",
        )

    try:
        records = backend.list_vendors(token, status_filter.value if status_filter else None)
    except BackendUnavailable as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Vendor directory is unavailable",
        ) from exc

    return [
        VendorSummaryResponse(
            id=summary.id,
            business_name=summary.business_name,
            email=summary.email,
            npi_number=summary.npi_number,
            phone=summary.phone,
            status=summary.status,
            documents_count=summary.documents_count,
            registered_at=summary.registered_at,
        )
        for summary in normalize_vendor_summaries(records)
    ]
