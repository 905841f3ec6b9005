"""
Lifecycle authorization gate - Render-or-redirect decisions for portal screens.

Decision Order (first match wins)
=================================

1. Auth state still loading      -> LOADING (decide again once loaded)
2. Not authenticated             -> REDIRECT login, carrying the requested path
3. Role does not fit the area    -> REDIRECT role default path
4. Required status not matched   -> REDIRECT status path (table below)
5. Otherwise                     -> RENDER

Status Path Table (shared by every entry point)
===============================================

    approved  -> vendor dashboard
    pending   -> pending approval page
    rejected  -> account rejected page
    suspended -> account suspended page
    other     -> login

authorize() guards ordinary vendor screens (approved-only by default).
authorize_exact() guards the terminal status pages themselves and bounces
a vendor away as soon as the live status no longer matches the page.

The gate never raises. Accounts missing expected fields are treated as
unauthenticated.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from urllib.parse import quote

from .ports import Role, VendorStatus

DEFAULT_REJECTION_REASON = "Your application did not meet our requirements."
DEFAULT_SUSPENSION_REASON = "Your account has been suspended due to policy violations."
LOGIN_REQUIRED_REASON = "Please sign in to continue."


def _text(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None


@dataclass(frozen=True)
class VendorAccount:
    """Server-owned account record, as read from the current-user endpoint."""

    id: str
    role: str
    status: str | None = None
    rejection_reason: str | None = None
    suspension_reason: str | None = None
    permissions: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def from_payload(cls, payload: Any) -> "VendorAccount | None":
        """
        Build an account from a raw ``/me`` payload.

        Returns None (least privileged) when the payload is not a mapping or
        lacks an id or role, or when a vendor account lacks its status.
        """
        if not isinstance(payload, Mapping):
            return None

        account_id = payload.get("id") or payload.get("_id")
        role = payload.get("role")
        status = payload.get("status")
        if not account_id or not isinstance(role, str) or not role:
            return None
        role = role.lower()
        if role == Role.VENDOR and not isinstance(status, str):
            return None

        permissions = payload.get("permissions")
        if isinstance(permissions, Mapping):
            permissions = [name for name, granted in permissions.items() if granted]
        elif not isinstance(permissions, (list, tuple, set, frozenset)):
            permissions = ()

        return cls(
            id=str(account_id),
            role=role,
            status=status.lower() if isinstance(status, str) else None,
            rejection_reason=_text(payload.get("rejectionReason")),
            suspension_reason=_text(payload.get("suspensionReason")),
            permissions=frozenset(str(name) for name in permissions),
        )


@dataclass(frozen=True)
class AuthSnapshot:
    """Immutable view of the session at decision time."""

    is_authenticated: bool = False
    is_loading: bool = False
    account: VendorAccount | None = None


@dataclass(frozen=True)
class PortalPaths:
    """Destination screens used by redirects."""

    login: str = "/login"
    vendor_dashboard: str = "/vendor/dashboard"
    admin_dashboard: str = "/admin/dashboard"
    pending: str = "/pending-approval"
    rejected: str = "/account-rejected"
    suspended: str = "/account-suspended"


@dataclass(frozen=True)
class RouteRule:
    """
    Access requirements of one portal area.

    ``role`` None marks a public area. ``exact`` marks a terminal status
    page that only renders while the live status equals ``required_status``.
    """

    role: Role | None = None
    required_status: VendorStatus | None = None
    exact: bool = False


class Outcome(Enum):
    LOADING = "loading"
    RENDER = "render"
    REDIRECT = "redirect"


@dataclass(frozen=True)
class GateDecision:
    """Outcome of one gate evaluation."""

    outcome: Outcome
    target: str | None = None
    from_path: str | None = None
    status: str | None = None
    reason: str | None = None
    return_to_origin: bool = False

    @property
    def location(self) -> str | None:
        """Redirect URL; login redirects carry the return path as ``?redirect=``."""
        if self.target is None:
            return None
        if self.return_to_origin and self.from_path:
            return f"{self.target}?redirect={quote(self.from_path, safe='')}"
        return self.target


LOADING = GateDecision(Outcome.LOADING)
RENDER = GateDecision(Outcome.RENDER)

DEFAULT_ROUTES: tuple[tuple[str, RouteRule], ...] = (
    ("/pending-approval", RouteRule(Role.VENDOR, VendorStatus.PENDING, exact=True)),
    ("/account-rejected", RouteRule(Role.VENDOR, VendorStatus.REJECTED, exact=True)),
    ("/account-suspended", RouteRule(Role.VENDOR, VendorStatus.SUSPENDED, exact=True)),
    ("/admin", RouteRule(Role.ADMIN)),
    ("/vendor", RouteRule(Role.VENDOR, VendorStatus.APPROVED)),
    ("/dashboard", RouteRule(Role.VENDOR, VendorStatus.APPROVED)),
    ("/profile", RouteRule(Role.VENDOR, VendorStatus.APPROVED)),
)


def match_route(
    path: str, routes: tuple[tuple[str, RouteRule], ...] = DEFAULT_ROUTES
) -> RouteRule | None:
    """Return the rule of the first prefix owning ``path``; None for public paths."""
    for prefix, rule in routes:
        if path == prefix or path.startswith(prefix.rstrip("/") + "/"):
            return rule
    return None


def status_redirect_path(status: str | None, paths: PortalPaths) -> str:
    """The single status-to-screen table."""
    table = {
        VendorStatus.APPROVED.value: paths.vendor_dashboard,
        VendorStatus.PENDING.value: paths.pending,
        VendorStatus.REJECTED.value: paths.rejected,
        VendorStatus.SUSPENDED.value: paths.suspended,
    }
    return table.get(status or "", paths.login)


def role_default_path(role: str | None, paths: PortalPaths) -> str:
    if role == Role.VENDOR:
        return paths.vendor_dashboard
    if role in (Role.ADMIN, Role.SUPER_ADMIN):
        return paths.admin_dashboard
    return paths.login


def status_reason(account: VendorAccount) -> str | None:
    if account.status == VendorStatus.REJECTED:
        return account.rejection_reason or DEFAULT_REJECTION_REASON
    if account.status == VendorStatus.SUSPENDED:
        return account.suspension_reason or DEFAULT_SUSPENSION_REASON
    return None


def _role_fits(required: Role, role: str) -> bool:
    if required == Role.ADMIN:
        return role in (Role.ADMIN, Role.SUPER_ADMIN)
    return role == required


def decide(
    snapshot: AuthSnapshot,
    requested_path: str,
    rule: RouteRule | None,
    paths: PortalPaths = PortalPaths(),
) -> GateDecision:
    """Evaluate the gate for one navigation."""
    if rule is None or rule.role is None:
        return RENDER

    if snapshot.is_loading:
        return LOADING

    account = snapshot.account
    if not snapshot.is_authenticated or account is None:
        return GateDecision(
            Outcome.REDIRECT,
            target=paths.login,
            from_path=requested_path,
            reason=LOGIN_REQUIRED_REASON,
            return_to_origin=True,
        )

    if not _role_fits(rule.role, account.role):
        return GateDecision(
            Outcome.REDIRECT,
            target=role_default_path(account.role, paths),
            from_path=requested_path,
            status=account.status,
            reason=f"This area requires the {rule.role.value} role.",
        )

    if rule.required_status is not None and account.status != rule.required_status:
        return GateDecision(
            Outcome.REDIRECT,
            target=status_redirect_path(account.status, paths),
            from_path=requested_path,
            status=account.status,
            reason=status_reason(account),
        )

    return RENDER


def authorize(
    snapshot: AuthSnapshot,
    requested_path: str,
    paths: PortalPaths = PortalPaths(),
    required_status: VendorStatus | None = VendorStatus.APPROVED,
    role: Role = Role.VENDOR,
) -> GateDecision:
    """General route protection."""
    return decide(snapshot, requested_path, RouteRule(role, required_status), paths)


def authorize_exact(
    snapshot: AuthSnapshot,
    requested_path: str,
    status: VendorStatus,
    paths: PortalPaths = PortalPaths(),
) -> GateDecision:
    """Protection for a terminal status page that must match the live status."""
    return decide(snapshot, requested_path, RouteRule(Role.VENDOR, status, exact=True), paths)
