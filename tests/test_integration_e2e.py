"""
End-to-End Integration Tests

Runs a real login against a Centrify tenant.

Prerequisites:
    - A tenant with an OAuth2 client application (app id $CENTRIFY_APP_ID)
    - A confidential client allowed to use it
    - A test user

Usage:
    CENTRIFY_SERVICE_URL=tenant.my.centrify.com \\
    CENTRIFY_CLIENT_ID=... CENTRIFY_CLIENT_SECRET=... \\
    CENTRIFY_TEST_USERNAME=... CENTRIFY_TEST_PASSWORD=... \\
    pytest tests/test_integration_e2e.py -v

    # Skip integration tests during CI
    pytest -m "not integration" tests/
"""

import os

import pytest

from centrify_auth.core.backend_config import ConfigStore, InMemoryStorage
from centrify_auth.core.exceptions import OAuthRejection
from centrify_auth.core.login import CentrifyAuthBackend, LoginRequest

SERVICE_URL = os.getenv("CENTRIFY_SERVICE_URL", "")
CLIENT_ID = os.getenv("CENTRIFY_CLIENT_ID", "")
CLIENT_SECRET = os.getenv("CENTRIFY_CLIENT_SECRET", "")
APP_ID = os.getenv("CENTRIFY_APP_ID", "vault_io_auth")
TEST_USERNAME = os.getenv("CENTRIFY_TEST_USERNAME", "")
TEST_PASSWORD = os.getenv("CENTRIFY_TEST_PASSWORD", "")

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(
        not (SERVICE_URL and CLIENT_ID and CLIENT_SECRET and TEST_USERNAME and TEST_PASSWORD),
        reason="Centrify tenant credentials not configured",
    ),
]


@pytest.fixture
def backend():
    store = ConfigStore(InMemoryStorage())
    store.write(
        {
            "service_url": SERVICE_URL,
            "client_id": CLIENT_ID,
            "client_secret": CLIENT_SECRET,
            "app_id": APP_ID,
            "scope": APP_ID,
        },
        create=True,
    )
    return CentrifyAuthBackend(store, timeout=30)


def test_resource_owner_login(backend):
    result = backend.login(LoginRequest(TEST_USERNAME, TEST_PASSWORD, "ro"))

    assert result.alias.name == TEST_USERNAME.lower()
    assert result.metadata["unique_id"]
    assert result.lease.ttl_seconds > 0
    assert "centrify" in result.policies


def test_wrong_password_rejected(backend):
    with pytest.raises(OAuthRejection):
        backend.login(LoginRequest(TEST_USERNAME, TEST_PASSWORD + "-wrong", "ro"))
