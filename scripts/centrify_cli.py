"""Operator CLI for the Centrify auth backend.

This module is a command-line wrapper around centrify_auth.core: it edits
the stored configuration, runs a login, runs report queries, and checks
the audit trail.
"""
from __future__ import annotations
import argparse
import getpass
import json
import os
import sys
from pathlib import Path

SCRIPT_DIR = Path(__file__).parent
PROJECT_ROOT = SCRIPT_DIR.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from centrify_auth.config.settings import DEFAULT_AUDIT_DIR, DEFAULT_STORE_PATH
from centrify_auth.core.audit import AuditTrail
from centrify_auth.core.backend_config import ConfigStore, JsonFileStorage, normalize_service_url
from centrify_auth.core.centrify import CentrifyError, OAuthClient, OAuthErrorResponse, RestClient
from centrify_auth.core.exceptions import LoginError
from centrify_auth.core.login import CentrifyAuthBackend, LoginRequest


def open_store(path: str) -> ConfigStore:
    """Configuration store backed by the JSON file at path."""
    return ConfigStore(JsonFileStorage(path))


def build_backend(store: ConfigStore, source: str) -> CentrifyAuthBackend:
    return CentrifyAuthBackend(store, source=source)


def run_query(service_url: str, app_id: str, scope: str, client_id: str, client_secret: str, sql: str, source: str) -> list:
    """Get a confidential-client token, then run a report query with it."""
    service_url = normalize_service_url(service_url)
    with OAuthClient(service_url, client_id, client_secret, source=source) as oauth:
        result = oauth.client_credentials(app_id, scope)
    if isinstance(result, OAuthErrorResponse):
        raise LoginError(f"Unable to get oauth token, failure: {result}")
    with RestClient(service_url, token=result, source=source) as rest:
        return rest.query(sql)


def _prompt_secret(value: str | None, prompt: str) -> str:
    if value:
        return value
    return getpass.getpass(prompt)


def main() -> None:
    """Command-line entry point."""
    parser = argparse.ArgumentParser(description="Centrify auth backend helper")
    parser.add_argument("--store", default=os.environ.get("CENTRIFY_AUTH_STORE_PATH", DEFAULT_STORE_PATH),
                        help="Path of the JSON configuration store")
    parser.add_argument("--source", default=os.environ.get("CENTRIFY_SOURCE_HEADER", "vault-auth-plugin"),
                        help="Source-application header value")

    sub = parser.add_subparsers(dest="cmd")

    sc = sub.add_parser("configure")
    sc.add_argument("--service-url")
    sc.add_argument("--client-id")
    sc.add_argument("--client-secret", default=os.environ.get("CENTRIFY_CLIENT_SECRET"))
    sc.add_argument("--app-id")
    sc.add_argument("--scope")
    sc.add_argument("--policies", help="Comma-separated list of policies")
    sc.add_argument("--roles-as-policies", dest="roles_as_policies", action="store_true", default=None)
    sc.add_argument("--no-roles-as-policies", dest="roles_as_policies", action="store_false")
    sc.add_argument("--update", action="store_true", help="Keep stored values for omitted fields")

    sub.add_parser("read-config")

    sl = sub.add_parser("login")
    sl.add_argument("--username", required=True)
    sl.add_argument("--password")
    sl.add_argument("--mode", default="ro", help="'ro' (resource owner) or 'cc' (client credentials)")

    sq = sub.add_parser("query")
    sq.add_argument("--service-url", required=True)
    sq.add_argument("--client-id", required=True)
    sq.add_argument("--client-secret", default=os.environ.get("CENTRIFY_CLIENT_SECRET"))
    sq.add_argument("--app-id", default="vault_io_auth")
    sq.add_argument("--scope", default="vault_io_auth")
    sq.add_argument("--sql", default="select ID, DisplayName, Username, Email from User")

    sv = sub.add_parser("verify-audit")
    sv.add_argument("--audit-dir", default=os.environ.get("AUDIT_LOG_DIR", DEFAULT_AUDIT_DIR))

    args = parser.parse_args()

    if not args.cmd:
        parser.print_help()
        return

    if args.cmd == "configure":
        fields = {
            "service_url": args.service_url,
            "client_id": args.client_id,
            "client_secret": args.client_secret,
            "app_id": args.app_id,
            "scope": args.scope,
            "policies": args.policies,
            "roles_as_policies": args.roles_as_policies,
        }
        data = {name: value for name, value in fields.items() if value is not None}
        try:
            config = open_store(args.store).write(data, create=not args.update)
        except LoginError as e:
            print(f"[configure] Error: {e}", file=sys.stderr)
            sys.exit(1)
        print(f"[configure] Stored configuration for {config.service_url}", file=sys.stderr)
    elif args.cmd == "read-config":
        config = open_store(args.store).load()
        if config is None:
            print("[read-config] configuration object not found", file=sys.stderr)
            sys.exit(1)
        print(json.dumps(config.to_response(), indent=2))
    elif args.cmd == "login":
        password = _prompt_secret(args.password, "Password: ")
        backend = build_backend(open_store(args.store), args.source)
        try:
            result = backend.login(LoginRequest(args.username, password, args.mode))
        except (LoginError, CentrifyError) as e:
            print(f"[login] Error: {e}", file=sys.stderr)
            sys.exit(1)
        output = result.to_dict()
        output.pop("internal_data", None)
        print(json.dumps(output, indent=2))
    elif args.cmd == "query":
        client_secret = _prompt_secret(args.client_secret, "Enter Client Secret: ")
        try:
            rows = run_query(args.service_url, args.app_id, args.scope, args.client_id,
                             client_secret, args.sql, args.source)
        except (LoginError, CentrifyError) as e:
            print(f"[query] Error: {e}", file=sys.stderr)
            sys.exit(1)
        print(f"[query] {len(rows)} row(s)", file=sys.stderr)
        for row in rows:
            print(json.dumps(row))
    elif args.cmd == "verify-audit":
        trail = AuditTrail(args.audit_dir, os.environ.get("AUDIT_LOG_SIGNING_KEY", ""))
        total, valid = trail.verify()
        print(f"Audit log: {valid}/{total} events with valid signatures")
        sys.exit(0 if total == valid else 1)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
