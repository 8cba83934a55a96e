"""Bearer-authenticated REST client for Centrify platform methods.

Handles headers, envelope decoding, and the few API methods the
auth backend needs (identity, roles, report queries).
"""
from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional

import requests

from .exceptions import ApiError, DecodeError, TransportError
from .models import ApiEnvelope, Token, WhoAmI, decode_result_rows, decode_role_names
from .oauth import DEFAULT_SOURCE, NATIVE_CLIENT_HEADER, SOURCE_HEADER

logger = logging.getLogger(__name__)

WHOAMI_METHOD = "/security/whoami"
ROLES_METHOD = "/usermgmt/GetUsersRolesAndAdministrativeRights"
QUERY_METHOD = "/redrock/query"

QUERY_PAGE_SIZE = 10000


class RestClient:
    """HTTP client for the platform's JSON REST methods.

    Usage:
        client = RestClient("https://tenant.my.centrify.com", token=token)
        me = client.whoami()
        roles = client.get_users_roles()
    """

    def __init__(
        self,
        service_url: str,
        token: Optional[Token] = None,
        *,
        source: str = DEFAULT_SOURCE,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
    ):
        """Initialize REST client.

        Args:
            service_url: Tenant base URL
            token: Bearer token used for the Authorization header
            source: Value of the source-application header
            session: Optional requests session
            timeout: Optional request timeout in seconds

        Raises:
            ValueError: If service_url is empty
        """
        if not service_url:
            raise ValueError("service_url is required to build a REST client")
        self.service_url = service_url.rstrip("/")
        self.source = source
        self._owns_session = session is None
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout
        self.headers: Dict[str, str] = {}
        if token is not None:
            self.set_token(token)

    def close(self) -> None:
        """Close the HTTP session if this client created it."""
        if self._owns_session:
            self.session.close()

    def __enter__(self) -> "RestClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def set_token(self, token: Token) -> None:
        """Authorize subsequent calls with the given token."""
        self.headers["Authorization"] = token.authorization_header

    def call_generic_map_api(self, method: str, args: Optional[Dict[str, Any]] = None) -> ApiEnvelope:
        """POST a JSON request to a platform method and decode the envelope.

        Args:
            method: API method path (e.g., "/security/whoami")
            args: JSON arguments (an empty object when None)

        Returns:
            Decoded envelope; success=false is NOT raised here

        Raises:
            TransportError: On network failure
            DecodeError: If the body is not a result envelope
        """
        url = f"{self.service_url}{method}"
        headers = {
            "Content-Type": "application/json",
            NATIVE_CLIENT_HEADER: "true",
            SOURCE_HEADER: self.source,
        }
        headers.update(self.headers)

        try:
            resp = self.session.post(url, json=args or {}, headers=headers, timeout=self.timeout)
        except requests.RequestException as exc:
            raise TransportError(url, f"request failed: {exc.__class__.__name__}") from exc

        try:
            payload = resp.json()
        except ValueError as exc:
            raise DecodeError(url, f"response body is not JSON (status {resp.status_code})") from exc

        return ApiEnvelope.from_json(payload, url)

    def _call_successful(self, method: str, args: Optional[Dict[str, Any]] = None) -> ApiEnvelope:
        envelope = self.call_generic_map_api(method, args)
        if not envelope.success:
            raise ApiError(method, envelope.message or "request was not successful")
        return envelope

    def whoami(self) -> WhoAmI:
        """Return the identity owning the current token.

        Raises:
            ApiError: If the platform reports failure
            DecodeError: If User/UserUuid are missing
            TransportError: On network failure
        """
        envelope = self._call_successful(WHOAMI_METHOD)
        return WhoAmI.from_result(envelope.result_map(WHOAMI_METHOD), WHOAMI_METHOD)

    def get_users_roles(self) -> List[str]:
        """Return the caller's role names in platform order.

        Raises:
            ApiError: If the platform reports failure
            DecodeError: If rows do not expose a Name
            TransportError: On network failure
        """
        envelope = self._call_successful(ROLES_METHOD)
        roles = decode_role_names(envelope.result_map(ROLES_METHOD), ROLES_METHOD)
        logger.debug(f"Resolved {len(roles)} role(s)")
        return roles

    def query(self, sql: str) -> List[Dict[str, Any]]:
        """Run a report query and return its rows.

        Args:
            sql: Report script (e.g., "select ID, Username from User")

        Returns:
            List of row objects
        """
        args = {
            "Script": sql,
            "Args": {
                "Caching": -1,
                "PageSize": QUERY_PAGE_SIZE,
                "Limit": QUERY_PAGE_SIZE,
            },
        }
        envelope = self._call_successful(QUERY_METHOD, args)
        return decode_result_rows(envelope.result_map(QUERY_METHOD), QUERY_METHOD)
