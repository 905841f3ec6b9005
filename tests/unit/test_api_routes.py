"""
Unit tests for API v1 routes.

Tests endpoint responses with an in-memory registry, a recording backend
and overridden session dependencies.
"""

from collections.abc import Generator
from unittest.mock import MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.adapters.backend.http import HttpMarketplaceBackend
from src.adapters.repository.memory import InMemoryDraftRepository
from src.api.dependencies import get_auth_snapshot, get_backend, get_pipeline
from src.api.v1 import router
from src.domain.documents import DocumentFile, DocumentRequirements, DocumentSlots, UploadedDocument
from src.domain.exceptions import (
    BackendUnavailable,
    RegistrationOutcomeUnknown,
    SubmissionInProgress,
    SubmissionRejected,
)
from src.domain.gate import AuthSnapshot, PortalPaths, VendorAccount
from src.domain.submission import SubmissionPipeline
from src.domain.workspace import WorkspaceRegistry
from tests.factories import DOCUMENT_TYPES, NAMESPACE, RecordingBackend, complete_workspace, section

CREDENTIALS = {
    "email": "owner@mainstreetrx.com",
    "password": "s3cret-pass",
    "confirmPassword": "s3cret-pass",
}


@pytest.fixture
def backend() -> RecordingBackend:
    return RecordingBackend()


@pytest.fixture
def app(registry: WorkspaceRegistry, backend: RecordingBackend) -> Generator[FastAPI, None, None]:
    """Create test FastAPI application."""
    test_app = FastAPI()
    test_app.include_router(router, prefix="/v1")

    test_app.state.registry = registry
    test_app.state.pipeline = SubmissionPipeline(backend, registry)
    test_app.state.paths = PortalPaths()
    test_app.state.backend = MagicMock(spec=HttpMarketplaceBackend)

    yield test_app
    test_app.dependency_overrides.clear()


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """Create test client for the application."""
    return TestClient(app)


@pytest.fixture
def draft_id(client: TestClient) -> str:
    return client.post("/v1/registration/drafts").json()["draft_id"]


def snapshot(role: str = "vendor", status: str | None = "approved") -> AuthSnapshot:
    return AuthSnapshot(is_authenticated=True, account=VendorAccount(id="u-1", role=role, status=status))


class TestDraftEndpoints:
    """Tests for creating, resuming and abandoning drafts."""

    def test_create_returns_201_with_empty_draft(self, client: TestClient) -> None:
        """A new draft starts at step 1 with seven empty document slots."""
        response = client.post("/v1/registration/drafts")

        assert response.status_code == 201
        body = response.json()
        assert body["current_step"] == 1
        assert body["completed_steps"] == []
        assert len(body["documents"]) == 7
        assert not any(slot["filled"] for slot in body["documents"])

    def test_get_unknown_draft_returns_404(self, client: TestClient) -> None:
        """Unknown ids are not found."""
        response = client.get("/v1/registration/drafts/does-not-exist")

        assert response.status_code == 404
        assert response.json() == {"detail": "Registration draft not found"}

    def test_abandon_deletes_draft(self, client: TestClient, draft_id: str) -> None:
        """Abandoned drafts cannot be resumed."""
        assert client.delete(f"/v1/registration/drafts/{draft_id}").status_code == 204
        assert client.get(f"/v1/registration/drafts/{draft_id}").status_code == 404

    def test_draft_resumes_after_workspace_eviction(
        self, client: TestClient, registry: WorkspaceRegistry, draft_id: str
    ) -> None:
        """A draft missing from memory is rehydrated from storage."""
        client.put(f"/v1/registration/drafts/{draft_id}/steps/1", json=section("pharmacyInfo"))
        registry.discard(draft_id)

        body = client.get(f"/v1/registration/drafts/{draft_id}").json()

        assert body["current_step"] == 2
        assert body["sections"]["pharmacyInfo"]["npiNumber"] == "1234567890"


class TestStepEndpoints:
    """Tests for saving steps and moving the cursor."""

    def test_valid_step_is_stored_and_advances(self, client: TestClient, draft_id: str) -> None:
        """Saving step 1 moves the wizard to step 2."""
        response = client.put(
            f"/v1/registration/drafts/{draft_id}/steps/1", json=section("pharmacyInfo")
        )

        assert response.status_code == 200
        body = response.json()
        assert body["moved"] is True
        assert body["draft"]["current_step"] == 2
        assert body["draft"]["completed_steps"] == [1]

    def test_invalid_step_returns_field_errors(self, client: TestClient, draft_id: str) -> None:
        """Local validation problems come back as a field map."""
        response = client.put(
            f"/v1/registration/drafts/{draft_id}/steps/1",
            json=section("pharmacyInfo", npiNumber="123"),
        )

        assert response.status_code == 422
        detail = response.json()["detail"]
        assert detail["field_errors"] == {"npiNumber": "Must be 10 digits"}
        assert client.get(f"/v1/registration/drafts/{draft_id}").json()["sections"] == {}

    @pytest.mark.parametrize("step", [0, 8, 9])
    def test_unwritable_step_returns_422(self, client: TestClient, draft_id: str, step: int) -> None:
        """Only steps 1-7 accept section payloads."""
        response = client.put(f"/v1/registration/drafts/{draft_id}/steps/{step}", json={})
        assert response.status_code == 422

    def test_saving_later_step_is_refused(self, client: TestClient, draft_id: str) -> None:
        """A step past the first incomplete one is a conflict and is not stored."""
        response = client.put(
            f"/v1/registration/drafts/{draft_id}/steps/3", json=section("primaryContact")
        )

        assert response.status_code == 409
        assert response.json()["detail"]["field_errors"] == {"step": "Step 1 must be completed first"}
        draft = client.get(f"/v1/registration/drafts/{draft_id}").json()
        assert draft["sections"] == {}
        assert draft["current_step"] == 1

    def test_completed_step_can_be_edited(self, client: TestClient, draft_id: str) -> None:
        """Going back to rewrite an earlier step is allowed."""
        for step, name in enumerate(["pharmacyInfo", "pharmacyOwner"], start=1):
            client.put(f"/v1/registration/drafts/{draft_id}/steps/{step}", json=section(name))

        response = client.put(
            f"/v1/registration/drafts/{draft_id}/steps/1", json=section("pharmacyInfo")
        )

        assert response.status_code == 200
        assert response.json()["draft"]["current_step"] == 2

    def test_back_and_goto(self, client: TestClient, draft_id: str) -> None:
        """back retreats by one; goto is clamped to the reachable range."""
        for step, name in enumerate(["pharmacyInfo", "pharmacyOwner"], start=1):
            client.put(f"/v1/registration/drafts/{draft_id}/steps/{step}", json=section(name))

        back = client.post(f"/v1/registration/drafts/{draft_id}/back").json()
        assert back["moved"] is True
        assert back["draft"]["current_step"] == 2

        goto = client.post(f"/v1/registration/drafts/{draft_id}/goto", json={"step": 8}).json()
        assert goto["draft"]["current_step"] == 3


class TestDocumentEndpoints:
    """Tests for transient document uploads."""

    def test_upload_fills_slot(self, client: TestClient, draft_id: str) -> None:
        """An accepted PDF fills its slot."""
        response = client.put(
            f"/v1/registration/drafts/{draft_id}/documents/0",
            files={"file": ("dea.pdf", b"%PDF-1.7 body", "application/pdf")},
        )

        assert response.status_code == 200
        assert response.json()["filled"] is True
        assert response.json()["declared_type"] == "DEA License"

    def test_rejected_upload_returns_422(self, client: TestClient, draft_id: str) -> None:
        """Unsupported types are refused with the slot message."""
        response = client.put(
            f"/v1/registration/drafts/{draft_id}/documents/0",
            files={"file": ("notes.txt", b"hello", "text/plain")},
        )

        assert response.status_code == 422
        assert response.json()["detail"]["message"] == (
            "Invalid file type. Please upload JPEG, PNG, or PDF."
        )
        slot = client.get(f"/v1/registration/drafts/{draft_id}").json()["documents"][0]
        assert slot["filled"] is False
        assert slot["validation_error"] is not None

    def test_oversized_upload_is_read_only_past_the_limit(
        self,
        app: FastAPI,
        repository: InMemoryDraftRepository,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """The body is never buffered beyond one byte over max_bytes."""
        limit = 1024 * 1024
        small = DocumentRequirements(
            document_types=DOCUMENT_TYPES,
            allowed_content_types=frozenset({"application/pdf"}),
            max_bytes=limit,
        )
        app.state.registry = WorkspaceRegistry(repository, small, NAMESPACE)
        seen_sizes: list[int] = []
        original_place = DocumentSlots.place

        def recording_place(slots: DocumentSlots, index: int, upload: DocumentFile) -> UploadedDocument:
            seen_sizes.append(upload.size)
            return original_place(slots, index, upload)

        monkeypatch.setattr(DocumentSlots, "place", recording_place)
        client = TestClient(app)
        draft_id = client.post("/v1/registration/drafts").json()["draft_id"]

        response = client.put(
            f"/v1/registration/drafts/{draft_id}/documents/0",
            files={"file": ("big.pdf", b"%PDF" + b"\x00" * (3 * limit), "application/pdf")},
        )
        app.state.registry.close_all()

        assert response.status_code == 422
        assert response.json()["detail"]["message"] == "File too large. Maximum size is 1MB."
        assert seen_sizes == [limit + 1]

    def test_unknown_slot_returns_404(self, client: TestClient, draft_id: str) -> None:
        """Slots beyond the configured list do not exist."""
        response = client.put(
            f"/v1/registration/drafts/{draft_id}/documents/7",
            files={"file": ("dea.pdf", b"%PDF", "application/pdf")},
        )
        assert response.status_code == 404

    def test_image_preview_is_served(self, client: TestClient, draft_id: str) -> None:
        """Image uploads can be previewed; the preview is the uploaded bytes."""
        client.put(
            f"/v1/registration/drafts/{draft_id}/documents/1",
            files={"file": ("license.png", b"\x89PNG-bytes", "image/png")},
        )

        response = client.get(f"/v1/registration/drafts/{draft_id}/documents/1/preview")

        assert response.status_code == 200
        assert response.content == b"\x89PNG-bytes"

    def test_pdf_has_no_preview(self, client: TestClient, draft_id: str) -> None:
        """Only images get previews."""
        client.put(
            f"/v1/registration/drafts/{draft_id}/documents/0",
            files={"file": ("dea.pdf", b"%PDF", "application/pdf")},
        )
        response = client.get(f"/v1/registration/drafts/{draft_id}/documents/0/preview")
        assert response.status_code == 404

    def test_remove_document_clears_slot(self, client: TestClient, draft_id: str) -> None:
        """DELETE empties the slot."""
        client.put(
            f"/v1/registration/drafts/{draft_id}/documents/0",
            files={"file": ("dea.pdf", b"%PDF", "application/pdf")},
        )
        response = client.delete(f"/v1/registration/drafts/{draft_id}/documents/0")

        assert response.status_code == 200
        assert response.json()["filled"] is False


class TestSubmitEndpoint:
    """Tests for POST /v1/registration/drafts/{id}/submit."""

    def test_submit_success_returns_201(
        self, client: TestClient, registry: WorkspaceRegistry, backend: RecordingBackend, draft_id: str
    ) -> None:
        """A complete draft is submitted and destroyed."""
        complete_workspace(registry.get(draft_id))

        response = client.post(f"/v1/registration/drafts/{draft_id}/submit", json=CREDENTIALS)

        assert response.status_code == 201
        assert response.json()["registration_id"] == "app-123"
        assert response.json()["registration_complete"] is True
        assert len(backend.calls) == 1
        assert client.get(f"/v1/registration/drafts/{draft_id}").status_code == 404

    def test_missing_documents_returns_400(
        self, client: TestClient, registry: WorkspaceRegistry, backend: RecordingBackend, draft_id: str
    ) -> None:
        """Document gate failures are a bad request."""
        complete_workspace(registry.get(draft_id), documents=6)

        response = client.post(f"/v1/registration/drafts/{draft_id}/submit", json=CREDENTIALS)

        assert response.status_code == 400
        assert response.json()["detail"]["problem"] == "missing documents"
        assert backend.calls == []

    def test_invalid_credentials_returns_422(
        self, client: TestClient, registry: WorkspaceRegistry, draft_id: str
    ) -> None:
        """Credential errors come back per field."""
        complete_workspace(registry.get(draft_id))

        response = client.post(
            f"/v1/registration/drafts/{draft_id}/submit",
            json={**CREDENTIALS, "confirmPassword": "different"},
        )

        assert response.status_code == 422
        assert response.json()["detail"]["field_errors"] == {
            "confirmPassword": "Passwords do not match"
        }

    def test_backend_rejection_keeps_status_and_message(
        self, client: TestClient, registry: WorkspaceRegistry, backend: RecordingBackend, draft_id: str
    ) -> None:
        """A 4xx rejection is passed through with the backend message."""
        backend.error = SubmissionRejected("Email already registered", status_code=409)
        complete_workspace(registry.get(draft_id))

        response = client.post(f"/v1/registration/drafts/{draft_id}/submit", json=CREDENTIALS)

        assert response.status_code == 409
        assert response.json()["detail"]["message"] == "Email already registered"
        assert client.get(f"/v1/registration/drafts/{draft_id}").status_code == 200

    def test_backend_outage_returns_502(
        self, client: TestClient, registry: WorkspaceRegistry, backend: RecordingBackend, draft_id: str
    ) -> None:
        """Unreachable backend is a bad gateway."""
        backend.error = BackendUnavailable("Registration backend unreachable")
        complete_workspace(registry.get(draft_id))

        response = client.post(f"/v1/registration/drafts/{draft_id}/submit", json=CREDENTIALS)

        assert response.status_code == 502
        assert response.json()["detail"]["message"] == "Registration backend unreachable"

    def test_unknown_outcome_returns_502_and_keeps_draft(
        self, client: TestClient, registry: WorkspaceRegistry, backend: RecordingBackend, draft_id: str
    ) -> None:
        """An unconfirmed registration is not reported as a rejection."""
        backend.error = RegistrationOutcomeUnknown("Registration answered without an id", status_code=201)
        complete_workspace(registry.get(draft_id))

        response = client.post(f"/v1/registration/drafts/{draft_id}/submit", json=CREDENTIALS)

        assert response.status_code == 502
        assert response.json()["detail"]["problem"] == "outcome unknown"
        assert client.get(f"/v1/registration/drafts/{draft_id}").status_code == 200

    def test_submission_in_progress_returns_409(self, app: FastAPI, draft_id: str) -> None:
        """A concurrent duplicate is refused."""
        mock_pipeline = MagicMock(spec=SubmissionPipeline)
        mock_pipeline.submit_registration.side_effect = SubmissionInProgress(draft_id)
        app.dependency_overrides[get_pipeline] = lambda: mock_pipeline

        response = TestClient(app).post(f"/v1/registration/drafts/{draft_id}/submit", json=CREDENTIALS)

        assert response.status_code == 409
        assert response.json() == {"detail": "Registration submission already in progress"}

    def test_submit_unknown_draft_returns_404(self, client: TestClient) -> None:
        """Unknown drafts cannot be submitted."""
        response = client.post("/v1/registration/drafts/nope/submit", json=CREDENTIALS)
        assert response.status_code == 404


class TestNavigationEndpoint:
    """Tests for GET /v1/navigation/authorize."""

    def test_approved_vendor_renders(self, app: FastAPI) -> None:
        """Approved vendors see vendor screens."""
        app.dependency_overrides[get_auth_snapshot] = lambda: snapshot()

        response = TestClient(app).get("/v1/navigation/authorize", params={"path": "/vendor/orders"})

        assert response.status_code == 200
        assert response.json()["outcome"] == "render"

    def test_suspended_vendor_is_redirected_with_reason(self, app: FastAPI) -> None:
        """The redirect names the status page, origin and reason."""
        account = VendorAccount(id="u-1", role="vendor", status="suspended", suspension_reason="Audit")
        app.dependency_overrides[get_auth_snapshot] = lambda: AuthSnapshot(True, False, account)

        body = TestClient(app).get(
            "/v1/navigation/authorize", params={"path": "/vendor/orders"}
        ).json()

        assert body == {
            "outcome": "redirect",
            "location": "/account-suspended",
            "target": "/account-suspended",
            "from_path": "/vendor/orders",
            "status": "suspended",
            "reason": "Audit",
        }

    def test_anonymous_caller_goes_to_login(self, client: TestClient) -> None:
        """Without a bearer token the gate redirects to login."""
        body = client.get("/v1/navigation/authorize", params={"path": "/profile"}).json()

        assert body["outcome"] == "redirect"
        assert body["location"] == "/login?redirect=%2Fprofile"

    def test_malformed_account_fields_do_not_break_the_gate(self, app: FastAPI) -> None:
        """Odd permission and reason types from the backend still yield a decision."""
        app.state.backend.fetch_current_account.return_value = {
            "id": "v-1",
            "role": "vendor",
            "status": "approved",
            "permissions": True,
            "rejectionReason": 7,
        }

        response = TestClient(app).get(
            "/v1/navigation/authorize",
            params={"path": "/vendor/orders"},
            headers={"Authorization": "Bearer token-1"},
        )

        assert response.status_code == 200
        assert response.json()["outcome"] == "render"

    def test_path_is_required(self, client: TestClient) -> None:
        """The path query parameter is mandatory."""
        assert client.get("/v1/navigation/authorize").status_code == 422


class TestAdminVendorsEndpoint:
    """Tests for GET /v1/admin/vendors."""

    def test_admin_gets_normalized_summaries(self, app: FastAPI) -> None:
        """Raw records are normalized for display."""
        backend = MagicMock(spec=HttpMarketplaceBackend)
        backend.list_vendors.return_value = [
            {"id": "v-1", "status": "pending", "businessName": "Flat Name", "documents": [{}, {}]}
        ]
        app.dependency_overrides[get_backend] = lambda: backend
        app.dependency_overrides[get_auth_snapshot] = lambda: snapshot("admin", None)

        response = TestClient(app).get(
            "/v1/admin/vendors",
            params={"status": "pending"},
            headers={"Authorization": "Bearer admin-token"},
        )

        assert response.status_code == 200
        assert response.json() == [
            {
                "id": "v-1",
                "business_name": "Flat Name",
                "email": "N/A",
                "npi_number": "Not provided",
                "phone": "No phone",
                "status": "pending",
                "documents_count": 2,
                "registered_at": None,
            }
        ]
        backend.list_vendors.assert_called_once_with("admin-token", "pending")

    def test_vendor_is_forbidden(self, app: FastAPI) -> None:
        """Vendors cannot list other vendors."""
        app.dependency_overrides[get_auth_snapshot] = lambda: snapshot()
        assert TestClient(app).get("/v1/admin/vendors").status_code == 403

    def test_anonymous_is_unauthorized(self, app: FastAPI) -> None:
        """Anonymous callers must sign in."""
        app.dependency_overrides[get_auth_snapshot] = lambda: AuthSnapshot()
        assert TestClient(app).get("/v1/admin/vendors").status_code == 401

    def test_backend_outage_returns_502(self, app: FastAPI) -> None:
        """Directory failures are a bad gateway."""
        backend = MagicMock(spec=HttpMarketplaceBackend)
        backend.list_vendors.side_effect = BackendUnavailable("down")
        app.dependency_overrides[get_backend] = lambda: backend
        app.dependency_overrides[get_auth_snapshot] = lambda: snapshot("super_admin", None)

        assert TestClient(app).get("/v1/admin/vendors").status_code == 502
