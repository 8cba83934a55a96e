"""OAuth2 token client for the Centrify Identity Platform.

Implements the resource owner, client credentials and refresh token grants
against ``<service_url>/oauth2/token/<app_id>``.
"""
from __future__ import annotations
import logging
from typing import Dict, Optional, Union

import requests
import requests.auth

from .exceptions import DecodeError, TransportError
from .models import OAuthErrorResponse, Token

logger = logging.getLogger(__name__)

NATIVE_CLIENT_HEADER = "X-CENTRIFY-NATIVE-CLIENT"
SOURCE_HEADER = "X-CFY-SRC"
DEFAULT_SOURCE = "vault-auth-plugin"

TokenResult = Union[Token, OAuthErrorResponse]


class OAuthClient:
    """HTTP client for the platform's OAuth2 token endpoint.

    Features:
    - Confidential client Basic auth (only when id and secret are both set)
    - Cookie persistence across calls on the same instance
    - Platform errors returned as values, transport errors raised

    Usage:
        client = OAuthClient("https://tenant.my.centrify.com", "svc", "secret")
        result = client.resource_owner("vault_io_auth", "vault_io_auth", "alice", "pw")
        if isinstance(result, OAuthErrorResponse):
            ...
    """

    def __init__(
        self,
        service_url: str,
        client_id: str = "",
        client_secret: str = "",
        *,
        source: str = DEFAULT_SOURCE,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
    ):
        """Initialize OAuth client.

        Args:
            service_url: Tenant base URL (https://<tenant>.my.centrify.com)
            client_id: Confidential client ID used for Basic auth
            client_secret: Confidential client secret used for Basic auth
            source: Value of the source-application header
            session: Optional requests session (a fresh one holds the cookie jar)
            timeout: Optional request timeout in seconds

        Raises:
            ValueError: If service_url is empty
        """
        if not service_url:
            raise ValueError("service_url is required to build an OAuth client")
        self.service_url = service_url.rstrip("/")
        self.client_id = client_id
        self.client_secret = client_secret
        self.source = source
        self._owns_session = session is None
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout
        self.headers: Dict[str, str] = {}

    def close(self) -> None:
        """Close the HTTP session if this client created it."""
        if self._owns_session:
            self.session.close()

    def __enter__(self) -> "OAuthClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def resource_owner(self, app_id: str, scope: str, username: str, password: str) -> TokenResult:
        """Request a token with the resource owner password credentials grant.

        Args:
            app_id: OAuth2 application ID
            scope: Requested scope
            username: Resource owner username
            password: Resource owner password

        Returns:
            Token on success, OAuthErrorResponse when the platform refuses

        Raises:
            TransportError: On network failure or unreadable response
        """
        args = {
            "grant_type": "password",
            "username": username,
            "password": password,
            "scope": scope,
        }
        return self._post_and_get_response(f"/oauth2/token/{app_id}", args)

    def client_credentials(self, app_id: str, scope: str) -> TokenResult:
        """Request a token with the client credentials grant."""
        args = {
            "grant_type": "client_credentials",
            "scope": scope,
        }
        return self._post_and_get_response(f"/oauth2/token/{app_id}", args)

    def refresh_token(self, app_id: str, refresh_token: str) -> TokenResult:
        """Exchange a refresh token for a new access token."""
        args = {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
        }
        return self._post_and_get_response(f"/oauth2/token/{app_id}", args)

    def _post_and_get_response(self, path: str, args: Dict[str, str]) -> TokenResult:
        url = f"{self.service_url}{path}"
        resp = self._post(url, args)

        try:
            payload = resp.json()
        except ValueError as exc:
            raise DecodeError(url, f"response body is not JSON (status {resp.status_code})") from exc

        if resp.status_code == 200:
            return Token.from_json(payload, url)

        failure = OAuthErrorResponse.from_json(payload, url)
        logger.debug(f"Token endpoint refused grant '{args['grant_type']}': status={resp.status_code} error={failure.error}")
        return failure

    def _post(self, url: str, args: Dict[str, str]) -> requests.Response:
        headers = {
            "Content-Type": "application/x-www-form-urlencoded",
            NATIVE_CLIENT_HEADER: "Yes",
            SOURCE_HEADER: self.source,
        }
        headers.update(self.headers)

        auth = None
        if self.client_id and self.client_secret:
            # bytes keep requests from latin-1 encoding non-ASCII credentials
            auth = requests.auth.HTTPBasicAuth(self.client_id.encode("utf-8"), self.client_secret.encode("utf-8"))

        try:
            return self.session.post(url, data=args, headers=headers, auth=auth, timeout=self.timeout)
        except requests.RequestException as exc:
            raise TransportError(url, f"request failed: {exc.__class__.__name__}") from exc
