"""Login orchestration: credentials in, authentication result out.

Each attempt runs as a small state machine:

    VALIDATING_INPUT -> ACQUIRING_TOKEN -> RESOLVING_IDENTITY -> ASSEMBLING -> DONE

Any fatal error moves the attempt to ERROR and propagates to the caller
without a partial result. Role enumeration is best-effort: its failure is
logged and the login proceeds with no roles.

The backend holds only configuration access and client factories; no
token or identity state survives an attempt.
"""
from __future__ import annotations
import enum
import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Callable, Dict, List, Optional

from .backend_config import BackendConfig, ConfigStore
from .centrify import (
    ApiError,
    CentrifyError,
    DecodeError,
    OAuthClient,
    OAuthErrorResponse,
    RestClient,
    Token,
    UserInfo,
)
from .centrify.oauth import DEFAULT_SOURCE
from .exceptions import (
    ConfigurationError,
    IdentityLookupFailure,
    InvalidMode,
    InvalidRequest,
    OAuthRejection,
    RoleLookupFailure,
)

logger = logging.getLogger(__name__)

MODE_RESOURCE_OWNER = "ro"
MODE_CLIENT_CREDENTIALS = "cc"
DEFAULT_MODE = MODE_RESOURCE_OWNER
SUPPORTED_MODES = {MODE_RESOURCE_OWNER, MODE_CLIENT_CREDENTIALS}

OAuthClientFactory = Callable[[str, str, str], OAuthClient]
RestClientFactory = Callable[[str, Token], RestClient]


class LoginState(enum.Enum):
    VALIDATING_INPUT = "validating_input"
    ACQUIRING_TOKEN = "acquiring_token"
    RESOLVING_IDENTITY = "resolving_identity"
    ASSEMBLING = "assembling"
    DONE = "done"
    ERROR = "error"


@dataclass(frozen=True)
class LoginRequest:
    username: str = ""
    password: str = ""
    mode: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LoginRequest":
        """Build from a request body, rejecting non-string fields."""
        values = {}
        for name in ("username", "password", "mode"):
            value = data.get(name)
            if value is None:
                value = ""
            if not isinstance(value, str):
                raise InvalidRequest(f"field `{name}` must be a string")
            values[name] = value
        return cls(**values)


@dataclass(frozen=True)
class Alias:
    name: str


@dataclass(frozen=True)
class LeaseOptions:
    ttl_seconds: int
    renewable: bool = False

    @property
    def ttl(self) -> timedelta:
        return timedelta(seconds=self.ttl_seconds)


@dataclass
class AuthenticationResult:
    """Credential material handed to the authorization layer."""
    display_name: str
    policies: List[str]
    metadata: Dict[str, str]
    internal_data: Dict[str, Any]
    lease: LeaseOptions
    alias: Alias
    group_aliases: List[Alias] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "display_name": self.display_name,
            "policies": list(self.policies),
            "metadata": dict(self.metadata),
            "internal_data": self.internal_data,
            "lease": {"ttl_seconds": self.lease.ttl_seconds, "renewable": self.lease.renewable},
            "alias": {"name": self.alias.name},
            "group_aliases": [{"name": a.name} for a in self.group_aliases],
        }


def alias_name_for(username: str) -> str:
    """Canonical alias name for a submitted username."""
    return username.lower()


def role_policies(roles: List[str]) -> List[str]:
    """Role names usable as policy names (spaces become underscores)."""
    return [role.replace(" ", "_") for role in roles]


class CentrifyAuthBackend:
    """Authenticate users against the Centrify platform.

    Usage:
        backend = CentrifyAuthBackend(ConfigStore(InMemoryStorage()))
        result = backend.login(LoginRequest("alice", "secret"))
        print(result.policies)
    """

    def __init__(
        self,
        config_store: ConfigStore,
        *,
        source: str = DEFAULT_SOURCE,
        timeout: Optional[float] = None,
        oauth_client_factory: Optional[OAuthClientFactory] = None,
        rest_client_factory: Optional[RestClientFactory] = None,
    ):
        """Initialize backend.

        Args:
            config_store: Accessor for the stored configuration
            source: Source-application header value for outbound calls
            timeout: Optional per-request timeout in seconds
            oauth_client_factory: (service_url, client_id, client_secret) -> OAuthClient
            rest_client_factory: (service_url, token) -> RestClient

        Clients returned by the factories are closed after each login step.
        """
        self.config_store = config_store
        self.source = source
        self.timeout = timeout
        self.oauth_client_factory = oauth_client_factory or self._default_oauth_client
        self.rest_client_factory = rest_client_factory or self._default_rest_client

    def _default_oauth_client(self, service_url: str, client_id: str, client_secret: str) -> OAuthClient:
        return OAuthClient(service_url, client_id, client_secret, source=self.source, timeout=self.timeout)

    def _default_rest_client(self, service_url: str, token: Token) -> RestClient:
        return RestClient(service_url, token=token, source=self.source, timeout=self.timeout)

    def alias_lookahead(self, username: str) -> Alias:
        """Derive the alias a login with this username would produce.

        Raises:
            InvalidRequest: If username is empty
        """
        name = alias_name_for(username or "")
        if not name:
            raise InvalidRequest("missing username")
        return Alias(name=name)

    def login(self, request: LoginRequest) -> AuthenticationResult:
        """Run one login attempt.

        Raises:
            InvalidRequest: Missing password
            InvalidMode: Mode other than "ro"/"cc"
            ConfigurationError: Backend not configured
            OAuthRejection: Token endpoint refused the grant
            IdentityLookupFailure: whoami failed
            TransportError: Network failure talking to the platform
        """
        return _LoginAttempt(self, request).run()


class _LoginAttempt:
    """State for a single login; discarded when run() returns."""

    def __init__(self, backend: CentrifyAuthBackend, request: LoginRequest):
        self.backend = backend
        self.request = request
        self.state = LoginState.VALIDATING_INPUT
        self.username = ""
        self.mode = ""
        self.config: Optional[BackendConfig] = None
        self.token: Optional[Token] = None
        self.user: Optional[UserInfo] = None

    def _enter(self, state: LoginState) -> None:
        logger.debug(f"login[{self.username or '-'}]: {self.state.value} -> {state.value}")
        self.state = state

    def run(self) -> AuthenticationResult:
        try:
            self._validate_input()
            self._enter(LoginState.ACQUIRING_TOKEN)
            self._acquire_token()
            self._enter(LoginState.RESOLVING_IDENTITY)
            self._resolve_identity()
            self._enter(LoginState.ASSEMBLING)
            result = self._assemble()
            self._enter(LoginState.DONE)
            return result
        except Exception:
            self._enter(LoginState.ERROR)
            raise

    def _validate_input(self) -> None:
        request = self.request
        if not request.password:
            raise InvalidRequest("missing password")

        self.username = alias_name_for(request.username)
        self.mode = request.mode or DEFAULT_MODE
        if self.mode not in SUPPORTED_MODES:
            raise InvalidMode(self.mode)

        config = self.backend.config_store.load()
        if config is None:
            raise ConfigurationError("backend not configured")
        config.validate()
        self.config = config

    def _acquire_token(self) -> None:
        config = self.config
        request = self.request
        if self.mode == MODE_CLIENT_CREDENTIALS:
            # Submitted credentials act as the confidential client itself
            client_id, client_secret = request.username, request.password
        else:
            client_id, client_secret = config.client_id, config.client_secret

        try:
            client = self.backend.oauth_client_factory(config.service_url, client_id, client_secret)
        except ValueError as exc:
            raise ConfigurationError(f"unable to build OAuth client: {exc}") from exc

        with client:
            if self.mode == MODE_CLIENT_CREDENTIALS:
                result = client.client_credentials(config.app_id, config.scope)
            else:
                result = client.resource_owner(config.app_id, config.scope, request.username, request.password)

        if isinstance(result, OAuthErrorResponse):
            logger.warning(f"OAuth2 grant refused for '{self.username}' (mode={self.mode}): {result.error}")
            raise OAuthRejection(result.error, result.description)
        self.token = result

    def _resolve_identity(self) -> None:
        try:
            client = self.backend.rest_client_factory(self.config.service_url, self.token)
        except ValueError as exc:
            raise ConfigurationError(f"unable to build REST client: {exc}") from exc

        with client:
            try:
                me = client.whoami()
            except (ApiError, DecodeError) as exc:
                logger.warning(f"Identity lookup failed for '{self.username}': {exc}")
                raise IdentityLookupFailure(f"unable to resolve identity: {exc}") from exc

            try:
                roles = self._lookup_roles(client)
            except RoleLookupFailure as exc:
                logger.error(f"Role lookup failed for '{self.username}', continuing with no roles: {exc}")
                roles = []

        self.user = UserInfo(unique_id=me.unique_id, username=me.username.lower(), roles=roles)

    @staticmethod
    def _lookup_roles(client: RestClient) -> List[str]:
        try:
            return client.get_users_roles()
        except CentrifyError as exc:
            raise RoleLookupFailure(str(exc)) from exc

    def _assemble(self) -> AuthenticationResult:
        config = self.config
        user = self.user
        token = self.token

        policies = list(config.policies)
        if config.roles_as_policies:
            policies.extend(role_policies(user.roles))

        result = AuthenticationResult(
            display_name=self.username,
            policies=policies,
            metadata={
                "username": user.username,
                "unique_id": user.unique_id,
            },
            internal_data={"access_token": token.to_dict()},
            lease=LeaseOptions(ttl_seconds=token.expires_in, renewable=False),
            alias=Alias(name=self.username),
            group_aliases=[Alias(name=role) for role in user.roles],
        )
        logger.info(
            f"Login succeeded for '{self.username}' (mode={self.mode}, roles={len(user.roles)}, "
            f"policies={len(policies)})"
        )
        return result
