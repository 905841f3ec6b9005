"""
Integration tests for PostgresDraftRepository.

Tests repository operations and draft resumption against a real
PostgreSQL database.
"""

from concurrent.futures import ThreadPoolExecutor

import pytest
from psycopg_pool import ConnectionPool

from src.adapters.repository.postgres import PostgresDraftRepository
from src.domain.documents import DocumentRequirements
from src.domain.draft import DraftStore
from src.domain.ports import StepId
from src.domain.workspace import WorkspaceRegistry
from tests.factories import NAMESPACE, VALID_SECTIONS

pytestmark = [pytest.mark.integration, pytest.mark.usefixtures("clean_database")]


class TestRoundTrip:
    """Tests for load/save/delete."""

    def test_load_missing_returns_none(self, repository: PostgresDraftRepository) -> None:
        """Nothing stored means None, not an error."""
        assert repository.load(NAMESPACE, "missing") is None

    def test_save_then_load(self, repository: PostgresDraftRepository) -> None:
        """The jsonb payload comes back as a dict."""
        payload = {"currentStep": 2, "sections": {"pharmacyInfo": VALID_SECTIONS["pharmacyInfo"]}}

        repository.save(NAMESPACE, "draft-1", payload)

        assert repository.load(NAMESPACE, "draft-1") == payload

    def test_save_overwrites(self, repository: PostgresDraftRepository) -> None:
        """Saves are whole-record upserts."""
        repository.save(NAMESPACE, "draft-1", {"currentStep": 1, "sections": {}})
        repository.save(NAMESPACE, "draft-1", {"currentStep": 3, "sections": {}})

        assert repository.load(NAMESPACE, "draft-1")["currentStep"] == 3

    def test_namespaces_are_isolated(self, repository: PostgresDraftRepository) -> None:
        """The same draft id under another namespace is a different record."""
        repository.save(NAMESPACE, "draft-1", {"currentStep": 2, "sections": {}})

        assert repository.load("other-namespace", "draft-1") is None

    def test_delete(self, repository: PostgresDraftRepository) -> None:
        """Deleted drafts no longer load; deleting twice is harmless."""
        repository.save(NAMESPACE, "draft-1", {"currentStep": 1, "sections": {}})

        repository.delete(NAMESPACE, "draft-1")
        repository.delete(NAMESPACE, "draft-1")

        assert repository.load(NAMESPACE, "draft-1") is None

    def test_concurrent_saves_leave_one_row(
        self, pool: ConnectionPool, repository: PostgresDraftRepository
    ) -> None:
        """Concurrent upserts of one draft never duplicate it."""

        def save(step: int) -> None:
            repository.save(NAMESPACE, "draft-1", {"currentStep": step, "sections": {}})

        with ThreadPoolExecutor(max_workers=5) as executor:
            list(executor.map(save, range(1, 6)))

        with pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(
                "SELECT COUNT(*) FROM registration_drafts WHERE namespace = %s AND draft_id = %s",
                (NAMESPACE, "draft-1"),
            )
            assert cursor.fetchone()[0] == 1


class TestDraftResumption:
    """A draft written by one process is resumed by another."""

    def test_resume_after_restart(
        self, repository: PostgresDraftRepository, requirements: DocumentRequirements
    ) -> None:
        """Sections and cursor survive; documents do not."""
        first = WorkspaceRegistry(repository, requirements, NAMESPACE)
        workspace = first.create()
        workspace.store.update_form_data(StepId.PHARMACY_INFO, VALID_SECTIONS["pharmacyInfo"])
        workspace.store.next_step()
        first.close_all()

        second = WorkspaceRegistry(repository, requirements, NAMESPACE)
        resumed = second.get(workspace.draft_id)

        assert resumed.store.current_step == 2
        assert resumed.store.draft.sections[StepId.PHARMACY_INFO] == VALID_SECTIONS["pharmacyInfo"]
        assert not any(document.filled for document in resumed.documents)
        second.close_all()

    def test_credentials_are_never_stored(self, repository: PostgresDraftRepository) -> None:
        """Only currentStep and sections reach the table."""
        store = DraftStore.create(repository, NAMESPACE, "draft-1")
        store.update_credentials("owner@mainstreetrx.com", "s3cret-pass")
        store.update_form_data(StepId.REFERRAL_INFO, VALID_SECTIONS["referralInfo"])

        stored = repository.load(NAMESPACE, "draft-1")

        assert set(stored) == {"currentStep", "sections"}
        assert "s3cret-pass" not in str(stored)
