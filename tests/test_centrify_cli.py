import json
import sys

import pytest

import scripts.centrify_cli as cli
from conftest import SERVICE_URL, StubResponse, StubSession, token_payload
from centrify_auth.core.audit import AuditTrail
from centrify_auth.core.centrify import OAuthClient, RestClient


@pytest.fixture(autouse=True)
def restore_sys_argv():
    """Make sure every test sees a clean CLI invocation."""
    original = sys.argv[:]
    yield
    sys.argv = original


@pytest.fixture
def store_path(tmp_path):
    return str(tmp_path / "config.json")


def _run(*args):
    sys.argv = ["centrify_cli.py", *args]
    cli.main()


def _configure(store_path, *extra):
    _run(
        "--store", store_path,
        "configure",
        "--service-url", "tenant.my.centrify.com",
        "--client-id", "svc",
        "--client-secret", "svc-secret",
        *extra,
    )


def test_configure_then_read(store_path, capsys):
    _configure(store_path, "--policies", "centrify,ops", "--roles-as-policies")
    capsys.readouterr()

    _run("--store", store_path, "read-config")

    data = json.loads(capsys.readouterr().out)
    assert data["service_url"] == SERVICE_URL
    assert data["policies"] == ["centrify", "ops"]
    assert data["roles_as_policies"] is True


def test_configure_update_keeps_values(store_path, capsys):
    _configure(store_path, "--scope", "custom")

    _run("--store", store_path, "configure", "--update", "--no-roles-as-policies")
    capsys.readouterr()
    _run("--store", store_path, "read-config")

    data = json.loads(capsys.readouterr().out)
    assert data["scope"] == "custom"
    assert data["client_secret"] == "svc-secret"
    assert data["roles_as_policies"] is False


def test_configure_missing_fields_exits(store_path, monkeypatch, capsys):
    monkeypatch.delenv("CENTRIFY_CLIENT_SECRET", raising=False)
    sys.argv = ["centrify_cli.py", "--store", store_path, "configure", "--client-id", "svc"]

    with pytest.raises(SystemExit) as excinfo:
        cli.main()

    assert excinfo.value.code == 1
    assert "[configure] Error" in capsys.readouterr().err


def test_read_config_when_absent(store_path, capsys):
    with pytest.raises(SystemExit) as excinfo:
        _run("--store", store_path, "read-config")

    assert excinfo.value.code == 1
    assert "not found" in capsys.readouterr().err


def test_login_prints_result_without_token(store_path, monkeypatch, capsys):
    _configure(store_path)
    captured = {}

    class FakeBackend:
        def login(self, request):
            captured["request"] = request

            class Result:
                def to_dict(self):
                    return {"alias": {"name": "alice"}, "internal_data": {"access_token": "secret"}}

            return Result()

    monkeypatch.setattr(cli, "build_backend", lambda store, source: FakeBackend())
    monkeypatch.setattr(cli.getpass, "getpass", lambda prompt: "typed-pw")
    capsys.readouterr()

    _run("--store", store_path, "login", "--username", "Alice")

    out = json.loads(capsys.readouterr().out)
    assert out == {"alias": {"name": "alice"}}
    assert captured["request"].password == "typed-pw"
    assert captured["request"].mode == "ro"


def test_login_failure_exits(store_path, capsys):
    # no configuration stored: the backend refuses before any network call
    with pytest.raises(SystemExit) as excinfo:
        _run("--store", store_path, "login", "--username", "alice", "--password", "pw")

    assert excinfo.value.code == 1
    assert "[login] Error: backend not configured" in capsys.readouterr().err


def test_run_query_uses_client_credentials(monkeypatch):
    session = StubSession(
        StubResponse(token_payload()),
        StubResponse({"success": True, "Result": {"Results": [{"Row": {"Username": "alice"}}]}}),
    )
    real_oauth, real_rest = OAuthClient, RestClient
    monkeypatch.setattr(cli, "OAuthClient", lambda *a, **kw: real_oauth(*a, session=session, **kw))
    monkeypatch.setattr(cli, "RestClient", lambda *a, **kw: real_rest(*a, session=session, **kw))

    rows = cli.run_query("tenant.my.centrify.com/", "app", "scope", "svc", "secret", "select Username from User", "src")

    assert rows == [{"Username": "alice"}]
    assert session.calls[0]["url"] == f"{SERVICE_URL}/oauth2/token/app"
    assert session.calls[0]["data"]["grant_type"] == "client_credentials"
    assert session.calls[1]["json"]["Script"] == "select Username from User"
    assert session.calls[1]["headers"]["X-CFY-SRC"] == "src"


def test_query_rejected_token_exits(monkeypatch, capsys):
    session = StubSession(StubResponse({"error": "invalid_client"}, status_code=401))
    real_oauth = OAuthClient
    monkeypatch.setattr(cli, "OAuthClient", lambda *a, **kw: real_oauth(*a, session=session, **kw))

    with pytest.raises(SystemExit):
        _run("query", "--service-url", "tenant.my.centrify.com", "--client-id", "svc", "--client-secret", "x")

    assert "invalid_client" in capsys.readouterr().err


def test_verify_audit(tmp_path, monkeypatch, capsys):
    monkeypatch.setenv("AUDIT_LOG_SIGNING_KEY", "k")
    trail = AuditTrail(tmp_path, "k")
    trail.log_event("login_success", "alice")
    trail.log_event("config_write", "-")

    with pytest.raises(SystemExit) as excinfo:
        _run("verify-audit", "--audit-dir", str(tmp_path))

    assert excinfo.value.code == 0
    assert "2/2" in capsys.readouterr().out


def test_no_command_prints_help(capsys):
    _run()
    assert "usage" in capsys.readouterr().out.lower()
