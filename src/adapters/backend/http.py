"""
Marketplace backend adapter - Implements RegistrationBackend, AccountSource
and VendorDirectory protocols over HTTP.

Endpoints used (relative to the configured backend base URL):

    POST /vendors/register          multipart registration, one call per draft
    GET  /vendor/auth/me            current account for a bearer token
    GET  /admin/vendors?status=...  admin vendor listing

Response envelopes are ``{"success", "message", "data"}``. Error bodies may
carry ``data.status`` and ``data.reason`` for accounts in a terminal state.
"""

import json
import logging
from typing import Any

import httpx

from src.domain.documents import DocumentFile
from src.domain.exceptions import BackendUnavailable, RegistrationOutcomeUnknown, SubmissionRejected

logger = logging.getLogger(__name__)

REGISTER_PATH = "/vendors/register"
CURRENT_ACCOUNT_PATH = "/vendor/auth/me"
ADMIN_VENDORS_PATH = "/admin/vendors"

GENERIC_FAILURE = "Registration failed. Please try again."


def _json_body(response: httpx.Response) -> dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def _unwrap(body: dict[str, Any]) -> Any:
    """Return the ``data`` member of an envelope, or the body itself."""
    return body["data"] if "data" in body else body


class HttpMarketplaceBackend:
    """
    Implements the backend ports via a shared httpx.Client.

    Uses structural subtyping - no explicit inheritance from Protocol.
    The client carries the base URL and timeout; the adapter never retries.
    """

    def __init__(self, client: httpx.Client) -> None:
        """
        Initialize adapter with an HTTP client.

        Args:
            client: httpx.Client configured with the backend base_url
        """
        self._client = client

    def submit_registration(
        self,
        sections: dict[str, Any],
        documents: list[DocumentFile],
        email: str,
        password: str,
    ) -> str:
        """
        Send the registration as one multipart request.

        Each section travels as a JSON-encoded form field named after its
        slot; each document is a ``documents`` file part.
        """
        form = {name: json.dumps(payload) for name, payload in sections.items()}
        form["email"] = email
        form["password"] = password
        files = [
            ("documents", (document.filename, document.content, document.content_type))
            for document in documents
        ]

        try:
            response = self._client.post(REGISTER_PATH, data=form, files=files)
        except httpx.TransportError as e:
            raise BackendUnavailable(f"Registration backend unreachable: {e}") from e

        body = _json_body(response)
        if response.is_error or body.get("success") is False:
            data = body.get("data") if isinstance(body.get("data"), dict) else {}
            raise SubmissionRejected(
                body.get("message") or GENERIC_FAILURE,
                status_code=response.status_code,
                status=data.get("status"),
                reason=data.get("reason")
                or data.get("rejectionReason")
                or data.get("suspensionReason"),
            )

        data = _unwrap(body)
        registration_id = None
        if isinstance(data, dict):
            registration_id = data.get("id") or data.get("_id") or data.get("applicationId")
        if not registration_id:
            registration_id = body.get("applicationId")
        if not registration_id:
            logger.error(
                "Registration answered HTTP %d without an application id", response.status_code
            )
            raise RegistrationOutcomeUnknown(
                "Registration response did not include an application id.",
                status_code=response.status_code,
            )

        logger.info("Registration accepted by backend: %s", registration_id)
        return str(registration_id)

    def fetch_current_account(self, token: str) -> dict[str, Any] | None:
        try:
            response = self._client.get(
                CURRENT_ACCOUNT_PATH, headers={"Authorization": f"Bearer {token}"}
            )
        except httpx.TransportError as e:
            raise BackendUnavailable(f"Account backend unreachable: {e}") from e

        if response.status_code in (401, 403, 404):
            return None
        if response.is_error:
            raise BackendUnavailable(f"Account lookup failed with HTTP {response.status_code}")

        data = _unwrap(_json_body(response))
        if isinstance(data, dict) and isinstance(data.get("vendor"), dict):
            data = data["vendor"]
        return data if isinstance(data, dict) else None

    def list_vendors(self, token: str, status: str | None = None) -> list[dict[str, Any]]:
        params = {"status": status} if status else None
        try:
            response = self._client.get(
                ADMIN_VENDORS_PATH,
                params=params,
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.TransportError as e:
            raise BackendUnavailable(f"Vendor directory unreachable: {e}") from e

        if response.is_error:
            raise BackendUnavailable(f"Vendor listing failed with HTTP {response.status_code}")

        data = _unwrap(_json_body(response))
        if isinstance(data, dict):
            data = data.get("vendors", [])
        return [record for record in data if isinstance(record, dict)] if isinstance(data, list) else []
