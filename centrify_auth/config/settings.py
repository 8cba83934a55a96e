"""Settings loader with environment variable and Docker secrets integration."""
from __future__ import annotations
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_STORE_PATH = ".runtime/centrify-auth/config.json"
DEFAULT_AUDIT_DIR = ".runtime/audit"


def _load_secret_from_file(secret_name: str, env_var: str | None = None) -> str | None:
    """
    Load secret from /run/secrets (Docker secrets pattern).

    Priority:
    1. /run/secrets/{secret_name} (Docker secrets mount)
    2. Environment variable (fallback)

    Args:
        secret_name: Name of the secret file in /run/secrets
        env_var: Optional environment variable name to check as fallback

    Returns:
        Secret value or None if not found
    """
    secret_file = Path("/run/secrets") / secret_name

    if secret_file.exists() and secret_file.is_file():
        try:
            secret_value = secret_file.read_text().strip()
            if secret_value:
                logger.info(f"[settings] Loaded {secret_name} from /run/secrets")
                return secret_value
        except OSError as e:
            logger.warning(f"[settings] Failed to read /run/secrets/{secret_name}: {e}")

    if env_var:
        secret_value = os.getenv(env_var)
        if secret_value:
            return secret_value

    return None


def _parse_timeout(raw: Optional[str]) -> Optional[float]:
    """Parse CENTRIFY_REQUEST_TIMEOUT; empty means no explicit timeout."""
    if raw is None or not raw.strip():
        return None
    try:
        value = float(raw)
    except ValueError:
        raise RuntimeError(f"CENTRIFY_REQUEST_TIMEOUT must be a number of seconds, got {raw!r}")
    if value <= 0:
        raise RuntimeError("CENTRIFY_REQUEST_TIMEOUT must be positive")
    return value


@dataclass
class AppConfig:
    """Process configuration container."""
    # Mode
    demo_mode: bool

    # Configuration store
    store_backend: str = "file"
    store_path: str = DEFAULT_STORE_PATH

    # Backend mount
    mount: str = "centrify"

    # Outbound calls
    source_header: str = "vault-auth-plugin"
    request_timeout: Optional[float] = None

    # Audit
    audit_log_dir: str = DEFAULT_AUDIT_DIR
    audit_log_signing_key: str = ""

    # Logging
    log_level: str = "INFO"


def load_settings() -> AppConfig:
    """Load process settings from environment and /run/secrets."""
    demo_mode = os.environ.get("DEMO_MODE", "false").lower() == "true"

    store_backend = os.environ.get("CENTRIFY_AUTH_STORE", "file").strip().lower()
    if store_backend not in {"file", "memory"}:
        raise RuntimeError(f"CENTRIFY_AUTH_STORE must be 'file' or 'memory', got {store_backend!r}")
    store_path = os.environ.get("CENTRIFY_AUTH_STORE_PATH", DEFAULT_STORE_PATH)

    mount = os.environ.get("CENTRIFY_AUTH_MOUNT", "centrify").strip().strip("/")
    if not mount:
        raise RuntimeError("CENTRIFY_AUTH_MOUNT cannot be empty")

    source_header = os.environ.get("CENTRIFY_SOURCE_HEADER", "vault-auth-plugin").strip() or "vault-auth-plugin"
    request_timeout = _parse_timeout(os.environ.get("CENTRIFY_REQUEST_TIMEOUT"))

    audit_log_dir = os.environ.get("AUDIT_LOG_DIR", DEFAULT_AUDIT_DIR)
    audit_log_signing_key = _load_secret_from_file("audit_log_signing_key", "AUDIT_LOG_SIGNING_KEY") or ""
    if not audit_log_signing_key and demo_mode:
        audit_log_signing_key = os.environ.get("AUDIT_LOG_SIGNING_KEY_DEMO", "demo-audit-signing-key-change-in-production")
        logger.warning("[demo-mode] Using demo AUDIT_LOG_SIGNING_KEY")

    log_level = os.environ.get("LOG_LEVEL", "INFO").strip().upper() or "INFO"

    mode_label = "DEMO" if demo_mode else "PRODUCTION"
    logger.info(f"[settings] Mode={mode_label}; mount={mount}; store={store_backend}")

    return AppConfig(
        demo_mode=demo_mode,
        store_backend=store_backend,
        store_path=store_path,
        mount=mount,
        source_header=source_header,
        request_timeout=request_timeout,
        audit_log_dir=audit_log_dir,
        audit_log_signing_key=audit_log_signing_key,
        log_level=log_level,
    )
