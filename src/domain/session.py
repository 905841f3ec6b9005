"""
Portal session - Explicit holder of authentication and lifecycle status.

refresh() is the only writer: it re-fetches the current account from the
backend every time it runs, because status can change server-side between
requests. Everything else reads the immutable AuthSnapshot.
"""

import logging
import threading

from .exceptions import BackendUnavailable
from .gate import AuthSnapshot, VendorAccount
from .ports import AccountSource

logger = logging.getLogger(__name__)


class PortalSession:
    """Single-writer, many-reader session state for one caller."""

    def __init__(self, source: AccountSource) -> None:
        self._source = source
        self._snapshot = AuthSnapshot()
        self._lock = threading.Lock()

    @property
    def snapshot(self) -> AuthSnapshot:
        return self._snapshot

    def refresh(self, token: str | None) -> AuthSnapshot:
        """
        Re-fetch the account for ``token`` and publish a new snapshot.

        A missing token, an unrecognised token, an unreachable backend or a
        malformed account record all publish the unauthenticated snapshot.
        """
        with self._lock:
            if not token:
                self._snapshot = AuthSnapshot()
                return self._snapshot

            self._snapshot = AuthSnapshot(
                is_authenticated=self._snapshot.is_authenticated,
                is_loading=True,
                account=self._snapshot.account,
            )
            try:
                payload = self._source.fetch_current_account(token)
            except BackendUnavailable as exc:
                logger.warning("Current account lookup failed: %s", exc)
                payload = None

            account = VendorAccount.from_payload(payload)
            if payload is not None and account is None:
                logger.warning("Current account record is missing required fields")

            self._snapshot = AuthSnapshot(is_authenticated=account is not None, account=account)
            return self._snapshot
