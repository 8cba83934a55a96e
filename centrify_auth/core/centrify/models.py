"""Typed shapes for Centrify platform responses.

Every response body is decoded here, once, into a small dataclass. A body
that does not match the expected shape raises DecodeError so that callers
only ever work with typed values.

Shapes:
    - Token / OAuthErrorResponse : /oauth2/token/{app_id}
    - ApiEnvelope                : every /<service>/<method> REST call
    - WhoAmI                     : /security/whoami result
    - role rows                  : /usermgmt/GetUsersRolesAndAdministrativeRights result
    - query rows                 : /redrock/query result
"""
from __future__ import annotations
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional

from .exceptions import DecodeError


def _require_dict(value: Any, what: str, endpoint: str) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise DecodeError(endpoint, f"{what} must be an object, got {type(value).__name__}")
    return value


def _require_str(payload: Dict[str, Any], key: str, endpoint: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str):
        raise DecodeError(endpoint, f"field '{key}' missing or not a string")
    return value


def _optional_str(payload: Dict[str, Any], key: str, endpoint: str) -> Optional[str]:
    value = payload.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise DecodeError(endpoint, f"field '{key}' is not a string")
    return value


@dataclass(frozen=True)
class Token:
    """Successful OAuth2 token response."""
    access_token: str
    token_type: str
    expires_in: int
    refresh_token: Optional[str] = None

    @classmethod
    def from_json(cls, payload: Any, endpoint: str) -> "Token":
        body = _require_dict(payload, "token response", endpoint)
        expires_in = body.get("expires_in")
        # bool is an int subclass; reject it explicitly
        if isinstance(expires_in, bool) or not isinstance(expires_in, int):
            raise DecodeError(endpoint, "field 'expires_in' missing or not an integer")
        if expires_in < 0:
            raise DecodeError(endpoint, "field 'expires_in' must not be negative")
        return cls(
            access_token=_require_str(body, "access_token", endpoint),
            token_type=_require_str(body, "token_type", endpoint),
            expires_in=expires_in,
            refresh_token=_optional_str(body, "refresh_token", endpoint),
        )

    @property
    def authorization_header(self) -> str:
        """Value for the Authorization header of REST calls."""
        return f"{self.token_type} {self.access_token}"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class OAuthErrorResponse:
    """OAuth2 error response (any non-200 status from the token endpoint)."""
    error: str
    description: str = ""

    @classmethod
    def from_json(cls, payload: Any, endpoint: str) -> "OAuthErrorResponse":
        body = _require_dict(payload, "error response", endpoint)
        return cls(
            error=_require_str(body, "error", endpoint),
            description=_optional_str(body, "error_description", endpoint) or "",
        )

    def __str__(self) -> str:
        if self.description:
            return f"{self.error}: {self.description}"
        return self.error


@dataclass(frozen=True)
class ApiEnvelope:
    """Generic result envelope returned by platform REST methods."""
    success: bool
    result: Any = None
    message: Optional[str] = None

    @classmethod
    def from_json(cls, payload: Any, endpoint: str) -> "ApiEnvelope":
        body = _require_dict(payload, "result envelope", endpoint)
        # The platform emits "success"; accept the capitalized form too
        success = body.get("success", body.get("Success"))
        if not isinstance(success, bool):
            raise DecodeError(endpoint, "field 'success' missing or not a boolean")
        message = body.get("Message", body.get("message"))
        if message is not None and not isinstance(message, str):
            message = str(message)
        return cls(
            success=success,
            result=body.get("Result", body.get("result")),
            message=message,
        )

    def result_map(self, endpoint: str) -> Dict[str, Any]:
        """Return the result as an object, failing decode otherwise."""
        return _require_dict(self.result, "Result", endpoint)


@dataclass(frozen=True)
class WhoAmI:
    """Identity of the principal owning the bearer token."""
    username: str
    unique_id: str

    @classmethod
    def from_result(cls, result: Dict[str, Any], endpoint: str) -> "WhoAmI":
        return cls(
            username=_require_str(result, "User", endpoint),
            unique_id=_require_str(result, "UserUuid", endpoint),
        )


@dataclass(frozen=True)
class UserInfo:
    """Resolved identity plus role memberships for one login attempt."""
    unique_id: str
    username: str
    roles: List[str] = field(default_factory=list)


def decode_result_rows(result: Dict[str, Any], endpoint: str) -> List[Dict[str, Any]]:
    """Unwrap ``Results[*].Row`` from a tabular result."""
    results = result.get("Results")
    if not isinstance(results, list):
        raise DecodeError(endpoint, "field 'Results' missing or not a list")

    rows = []
    for index, item in enumerate(results):
        wrapper = _require_dict(item, f"Results[{index}]", endpoint)
        rows.append(_require_dict(wrapper.get("Row"), f"Results[{index}].Row", endpoint))
    return rows


def decode_role_names(result: Dict[str, Any], endpoint: str) -> List[str]:
    """Extract role names in platform order."""
    names = []
    for row in decode_result_rows(result, endpoint):
        names.append(_require_str(row, "Name", endpoint))
    return names
