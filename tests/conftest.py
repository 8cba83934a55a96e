"""Pytest shared fixtures: stub HTTP sessions and a configured backend."""
import json
import pathlib
import sys
from typing import Optional

# Add project root to Python path
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest
import requests

from centrify_auth.config import AppConfig
from centrify_auth.core.backend_config import ConfigStore, InMemoryStorage
from centrify_auth.core.centrify import OAuthClient, RestClient
from centrify_auth.core.login import CentrifyAuthBackend

SERVICE_URL = "https://tenant.my.centrify.com"


# ─────────────────────────────────────────────────────────────────────────────
# Network Guard Rails
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture(autouse=True)
def _block_real_http(monkeypatch, request):
    """
    Prevent unit tests from hitting a live tenant.

    Integration tests are explicitly marked with @pytest.mark.integration and
    are allowed to perform real HTTP calls by skipping this fixture.
    """
    if request.node.get_closest_marker("integration"):
        return

    def _refuse(self, method, url, *args, **kwargs):
        raise RuntimeError(f"Unexpected HTTP {method} in unit test: {url}")

    monkeypatch.setattr(requests.Session, "request", _refuse)


# ─────────────────────────────────────────────────────────────────────────────
# Stub HTTP
# ─────────────────────────────────────────────────────────────────────────────
class StubResponse:
    def __init__(self, payload=None, status_code: int = 200, text: Optional[str] = None):
        self._payload = payload
        self.status_code = status_code
        self.text = text if text is not None else json.dumps(payload)

    def json(self):
        if self._payload is None:
            return json.loads(self.text)
        return self._payload


class StubSession:
    """Records POSTs and replays queued responses (or raises queued exceptions)."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def queue(self, *responses):
        self.responses.extend(responses)

    def post(self, url, data=None, json=None, headers=None, auth=None, timeout=None):
        # Headers as requests would send them (auth applied)
        prepared = requests.Request("POST", url, data=data, json=json, headers=headers, auth=auth).prepare()
        self.calls.append({
            "url": url,
            "data": data,
            "json": json,
            "headers": dict(prepared.headers),
            "auth": auth,
            "timeout": timeout,
        })
        if not self.responses:
            raise AssertionError(f"No stub response queued for POST {url}")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def token_payload(expires_in: int = 3600, **overrides):
    payload = {
        "access_token": "access-123",
        "token_type": "Bearer",
        "expires_in": expires_in,
        "refresh_token": "refresh-456",
    }
    payload.update(overrides)
    return payload


def whoami_payload(user: str = "Alice@Tenant.com", uuid: str = "c2c7bcc6-9560-44e0-8dff-5be221cd37ee"):
    return {"success": True, "Result": {"User": user, "UserUuid": uuid}, "Message": None}


def roles_payload(*names):
    return {
        "success": True,
        "Result": {"Count": len(names), "Results": [{"Row": {"Name": name, "ID": f"id-{i}"}} for i, name in enumerate(names)]},
        "Message": None,
    }


def failure_payload(message: str):
    return {"success": False, "Result": None, "Message": message}


# ─────────────────────────────────────────────────────────────────────────────
# Backend
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture
def config_store():
    """In-memory store holding a valid configuration."""
    store = ConfigStore(InMemoryStorage())
    store.write(
        {
            "client_id": "vault-svc@tenant",
            "client_secret": "svc-secret",
            "service_url": "tenant.my.centrify.com/",
            "policies": ["centrify", "default"],
        },
        create=True,
    )
    return store


class BackendHarness:
    """Backend wired to one stub session, recording the clients it builds."""

    def __init__(self, store: ConfigStore):
        self.session = StubSession()
        self.oauth_clients = []
        self.rest_clients = []
        self.backend = CentrifyAuthBackend(
            store,
            oauth_client_factory=self._oauth,
            rest_client_factory=self._rest,
        )

    def _oauth(self, service_url, client_id, client_secret):
        client = OAuthClient(service_url, client_id, client_secret, session=self.session)
        self.oauth_clients.append(client)
        return client

    def _rest(self, service_url, token):
        client = RestClient(service_url, token=token, session=self.session)
        self.rest_clients.append(client)
        return client

    def queue(self, *responses):
        self.session.queue(*responses)

    def queue_success(self, roles=("Database Admin", "Everybody"), expires_in=3600):
        self.queue(
            StubResponse(token_payload(expires_in=expires_in)),
            StubResponse(whoami_payload()),
            StubResponse(roles_payload(*roles)),
        )


@pytest.fixture
def harness(config_store):
    return BackendHarness(config_store)


@pytest.fixture
def app_config(tmp_path):
    return AppConfig(
        demo_mode=False,
        store_backend="memory",
        store_path=str(tmp_path / "config.json"),
        mount="centrify",
        audit_log_dir=str(tmp_path / "audit"),
        audit_log_signing_key="test-signing-key",
    )
