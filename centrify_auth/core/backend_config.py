"""Backend configuration record and its storage.

The configuration is a single JSON record stored under the key ``config``
of a small key/value storage. Two storages are provided: an in-process one
(tests, single-worker demos) and a JSON file one (default).
"""
from __future__ import annotations
import json
import logging
import os
import tempfile
import threading
from dataclasses import dataclass, field, fields as dataclass_fields
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Protocol, Union
from urllib.parse import urlparse

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_KEY = "config"
DEFAULT_APP_ID = "vault_io_auth"
DEFAULT_SCOPE = "vault_io_auth"
DEFAULT_POLICIES = ("centrify",)

# dataclass field -> persisted JSON key
_STORAGE_KEYS = {
    "client_id": "clientID",
    "client_secret": "clientSecret",
    "service_url": "serviceUrl",
    "app_id": "appID",
    "scope": "scope",
    "policies": "policies",
    "roles_as_policies": "rolesAsPolicies",
}


def normalize_service_url(raw: str) -> str:
    """Force the service URL to https:// with no trailing slash.

    Args:
        raw: URL as entered (with or without scheme)

    Returns:
        Normalized URL, e.g. "https://tenant.my.centrify.com"

    Raises:
        ConfigurationError: If no host remains after normalization
    """
    value = raw.strip()
    lowered = value.lower()
    for prefix in ("http://", "https://"):
        if lowered.startswith(prefix):
            value = value[len(prefix):]
            break
    value = value.rstrip("/")
    normalized = f"https://{value}"

    parsed = urlparse(normalized)
    if not parsed.netloc or "://" in value:
        raise ConfigurationError(f"Error parsing given service_url: {raw!r}", field="service_url")
    return normalized


def parse_policies(raw: Union[str, List[str], None]) -> List[str]:
    """Accept a list or comma-separated string of policy names."""
    if raw is None:
        return []
    if isinstance(raw, str):
        items = raw.split(",")
    elif isinstance(raw, (list, tuple)):
        items = list(raw)
    else:
        raise ConfigurationError("config parameter `policies` must be a list or comma-separated string", field="policies")

    policies = []
    for item in items:
        if not isinstance(item, str):
            raise ConfigurationError("config parameter `policies` must contain strings", field="policies")
        item = item.strip()
        if item:
            policies.append(item)
    return policies


def _parse_bool(raw: Any, name: str) -> bool:
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, str) and raw.strip().lower() in {"true", "1", "yes", "false", "0", "no"}:
        return raw.strip().lower() in {"true", "1", "yes"}
    raise ConfigurationError(f"config parameter `{name}` must be a boolean", field=name)


@dataclass
class BackendConfig:
    """Connection settings for one backend mount."""
    client_id: str = ""
    client_secret: str = ""
    service_url: str = ""
    app_id: str = DEFAULT_APP_ID
    scope: str = DEFAULT_SCOPE
    policies: List[str] = field(default_factory=lambda: list(DEFAULT_POLICIES))
    roles_as_policies: bool = False

    def validate(self) -> None:
        """Check required fields.

        Raises:
            ConfigurationError: If a required field is empty
        """
        for name in ("client_id", "client_secret", "service_url"):
            if not getattr(self, name):
                raise ConfigurationError(f"config parameter `{name}` cannot be empty", field=name)

    def to_storage(self) -> Dict[str, Any]:
        """Serialize with the persisted JSON key names."""
        return {key: getattr(self, attr) for attr, key in _STORAGE_KEYS.items()}

    @classmethod
    def from_storage(cls, data: Mapping[str, Any]) -> "BackendConfig":
        """Rebuild from a persisted record.

        Raises:
            ConfigurationError: If the record is malformed
        """
        if not isinstance(data, Mapping):
            raise ConfigurationError("error reading configuration: record is not an object")
        kwargs = {}
        for attr, key in _STORAGE_KEYS.items():
            if key in data:
                kwargs[attr] = data[key]
        try:
            config = cls(**kwargs)
        except TypeError as exc:
            raise ConfigurationError(f"error reading configuration: {exc}") from exc
        config.policies = parse_policies(config.policies)
        config.roles_as_policies = _parse_bool(config.roles_as_policies, "roles_as_policies")
        return config

    def to_response(self) -> Dict[str, Any]:
        """Public field names, as accepted on write."""
        return {f.name: getattr(self, f.name) for f in dataclass_fields(self)}


def build_config(existing: Optional[BackendConfig], data: Mapping[str, Any], *, create: bool) -> BackendConfig:
    """Merge submitted fields into a configuration.

    On create, fields absent from ``data`` take their defaults; on update,
    they keep the value from ``existing``. ``static_policies`` is accepted
    as another name for ``policies``.

    Args:
        existing: Currently stored configuration (None if never written)
        data: Submitted fields (public names)
        create: True for a create operation

    Returns:
        Validated configuration with a normalized service_url

    Raises:
        ConfigurationError: On missing or invalid fields
    """
    base = BackendConfig() if (create or existing is None) else BackendConfig(**existing.to_response())

    for name in ("client_id", "client_secret", "service_url", "app_id", "scope"):
        if name in data:
            value = data[name]
            if value is None:
                value = ""
            if not isinstance(value, str):
                raise ConfigurationError(f"config parameter `{name}` must be a string", field=name)
            setattr(base, name, value.strip())

    if "policies" in data and "static_policies" in data:
        raise ConfigurationError("give either `policies` or `static_policies`, not both", field="policies")
    for name in ("policies", "static_policies"):
        if name in data:
            base.policies = parse_policies(data[name])
    if "roles_as_policies" in data:
        base.roles_as_policies = _parse_bool(data["roles_as_policies"], "roles_as_policies")

    if not base.app_id:
        base.app_id = DEFAULT_APP_ID
    if not base.scope:
        base.scope = DEFAULT_SCOPE

    base.validate()
    base.service_url = normalize_service_url(base.service_url)
    return base


# ─────────────────────────────────────────────────────────────────────────────
# Storage
# ─────────────────────────────────────────────────────────────────────────────
class Storage(Protocol):
    """Key/value storage holding JSON-compatible records."""

    def get(self, key: str) -> Optional[Dict[str, Any]]: ...

    def put(self, key: str, value: Dict[str, Any]) -> None: ...

    def delete(self, key: str) -> None: ...


class InMemoryStorage:
    """Process-local storage."""

    def __init__(self) -> None:
        self._data: Dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            raw = self._data.get(key)
        return json.loads(raw) if raw is not None else None

    def put(self, key: str, value: Dict[str, Any]) -> None:
        encoded = json.dumps(value)
        with self._lock:
            self._data[key] = encoded

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)


class JsonFileStorage:
    """Storage backed by one JSON file (last writer wins)."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._lock = threading.Lock()

    def _read_all(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except json.JSONDecodeError as exc:
            raise ConfigurationError(f"error reading configuration store {self.path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigurationError(f"configuration store {self.path} is not a JSON object")
        return data

    def _write_all(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=str(self.path.parent), prefix=".store-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(data, handle, indent=2, sort_keys=True)
            os.chmod(tmp_name, 0o600)
            os.replace(tmp_name, self.path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            return self._read_all().get(key)

    def put(self, key: str, value: Dict[str, Any]) -> None:
        with self._lock:
            data = self._read_all()
            data[key] = value
            self._write_all(data)

    def delete(self, key: str) -> None:
        with self._lock:
            data = self._read_all()
            if key in data:
                del data[key]
                self._write_all(data)


class ConfigStore:
    """Typed accessor for the configuration record."""

    def __init__(self, storage: Storage):
        self.storage = storage

    def load(self) -> Optional[BackendConfig]:
        """Return the stored configuration, or None if never written."""
        entry = self.storage.get(CONFIG_KEY)
        if entry is None:
            return None
        return BackendConfig.from_storage(entry)

    def save(self, config: BackendConfig) -> None:
        """Normalize service_url and persist the configuration."""
        config.service_url = normalize_service_url(config.service_url)
        self.storage.put(CONFIG_KEY, config.to_storage())
        logger.info(f"Stored configuration for {config.service_url} (app_id={config.app_id})")

    def write(self, data: Mapping[str, Any], *, create: bool) -> BackendConfig:
        """Merge submitted fields with the stored record and persist."""
        config = build_config(self.load(), data, create=create)
        self.save(config)
        return config

    def delete(self) -> None:
        self.storage.delete(CONFIG_KEY)
