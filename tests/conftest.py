"""
Shared fixtures for the Konnect test suite.
"""

from unittest.mock import Mock

import pytest

from konnect.rest.pagination import Breather
from konnect.rest.transport import MockTransport
from konnect.settings import KonnectSettings


@pytest.fixture
def transport():
    """In-memory transport; tests queue or route the responses they need."""
    return MockTransport()


@pytest.fixture
def breather():
    """Breather stand-in so paginated tests never actually sleep."""
    return Mock(spec=Breather)


@pytest.fixture
def settings():
    return KonnectSettings()
