"""
Shared fixtures for adversarial tests.

Provides a backend double that holds every registration call open until
released, so tests can pile concurrent submissions onto one draft.
"""

import pytest

from tests.factories import BlockingBackend

# Module-level marker for all adversarial tests
pytestmark = pytest.mark.adversarial


@pytest.fixture
def blocking_backend() -> BlockingBackend:
    return BlockingBackend()
