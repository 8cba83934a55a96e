"""Auth backend endpoints: configuration, login and alias lookahead.

Routes (mounted at /v1/auth/<mount>):
    GET  /config           Read configuration (404 when never written)
    POST /config           Create configuration (defaults for missing fields)
    PUT  /config           Update configuration (keep stored values)
    POST /login            Authenticate {username, password, mode}
    POST /login/lookahead  Resolve the alias for {username} without credentials

The static policy list is written as `policies` (or its alias
`static_policies`) and always read back as `policies`.
"""
from __future__ import annotations
import logging
from typing import Any, Dict

from flask import Blueprint, abort, current_app, jsonify, request

from centrify_auth.core.centrify import TransportError
from centrify_auth.core.exceptions import LoginError
from centrify_auth.core.login import DEFAULT_MODE, LoginRequest, alias_name_for

bp = Blueprint("backend", __name__)

logger = logging.getLogger(__name__)


def _json_body() -> Dict[str, Any]:
    """Return the request JSON object or abort with 400."""
    body = request.get_json(silent=True)
    if body is None and not request.get_data():
        return {}
    if not isinstance(body, dict):
        abort(400, description="Request body must be a JSON object")
    return body


def _audit():
    return current_app.config["AUDIT_TRAIL"]


@bp.route("/config", methods=["GET"])
def read_config():
    """Return the stored configuration."""
    config = current_app.config["CONFIG_STORE"].load()
    if config is None:
        abort(404, description="configuration object not found")
    return jsonify({"data": config.to_response()})


@bp.route("/config", methods=["POST", "PUT"])
def write_config():
    """Create (POST) or update (PUT) the configuration."""
    data = _json_body()
    create = request.method == "POST"
    config = current_app.config["CONFIG_STORE"].write(data, create=create)
    _audit().safe_log_event(
        "config_write",
        "-",
        details={
            "operation": "create" if create else "update",
            "service_url": config.service_url,
            "fields": sorted(data.keys()),
        },
    )
    return ("", 204)


@bp.route("/login", methods=["POST"])
def login():
    """Authenticate a user and return the credential material."""
    login_request = LoginRequest.from_dict(_json_body())
    backend = current_app.config["AUTH_BACKEND"]
    username = alias_name_for(login_request.username) or "-"
    mode = login_request.mode or DEFAULT_MODE

    try:
        result = backend.login(login_request)
    except (LoginError, TransportError) as exc:
        _audit().safe_log_event(
            "login_failure",
            username,
            details={"mode": mode, "reason": exc.__class__.__name__},
            success=False,
        )
        raise

    _audit().safe_log_event(
        "login_success",
        username,
        details={
            "mode": mode,
            "platform_username": result.metadata.get("username"),
            "roles": len(result.group_aliases),
            "policies": len(result.policies),
        },
    )
    return jsonify({"auth": result.to_dict()})


@bp.route("/login/lookahead", methods=["POST"])
def login_alias_lookahead():
    """Resolve the alias name for a username without contacting the platform."""
    body = _json_body()
    username = body.get("username") or ""
    if not isinstance(username, str):
        abort(400, description="field `username` must be a string")
    alias = current_app.config["AUTH_BACKEND"].alias_lookahead(username)
    return jsonify({"auth": {"alias": {"name": alias.name}}})
