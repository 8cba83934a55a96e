"""Centrify Identity Platform client library.

Architecture:
- oauth.py: OAuth2 token client (resource owner, client credentials, refresh)
- restapi.py: Bearer-authenticated REST client (whoami, roles, report queries)
- models.py: Typed response shapes and decoding
- exceptions.py: Typed exceptions for error handling

Usage:
    from centrify_auth.core.centrify import OAuthClient, RestClient, Token

    oauth = OAuthClient("https://tenant.my.centrify.com", "svc", "secret")
    result = oauth.client_credentials("vault_io_auth", "vault_io_auth")
    if isinstance(result, Token):
        rest = RestClient(oauth.service_url, token=result)
        print(rest.whoami().username)
"""
from .exceptions import (
    CentrifyError,
    TransportError,
    DecodeError,
    ApiError,
)
from .models import (
    Token,
    OAuthErrorResponse,
    ApiEnvelope,
    WhoAmI,
    UserInfo,
)
from .oauth import (
    OAuthClient,
    TokenResult,
    NATIVE_CLIENT_HEADER,
    SOURCE_HEADER,
    DEFAULT_SOURCE,
)
from .restapi import RestClient

__all__ = [
    # Clients
    "OAuthClient",
    "RestClient",
    "NATIVE_CLIENT_HEADER",
    "SOURCE_HEADER",
    "DEFAULT_SOURCE",

    # Models
    "Token",
    "TokenResult",
    "OAuthErrorResponse",
    "ApiEnvelope",
    "WhoAmI",
    "UserInfo",

    # Exceptions
    "CentrifyError",
    "TransportError",
    "DecodeError",
    "ApiError",
]
