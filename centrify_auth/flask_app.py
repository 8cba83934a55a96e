"""Flask application factory and bootstrap.

This module provides the create_app() factory function for wiring the
configuration store, the auth backend, the audit trail and the blueprints.
"""
from __future__ import annotations
import logging
from typing import Optional

from flask import Flask

from centrify_auth.config import AppConfig, load_settings
from centrify_auth.core.audit import AuditTrail
from centrify_auth.core.backend_config import ConfigStore, InMemoryStorage, JsonFileStorage, Storage
from centrify_auth.core.login import CentrifyAuthBackend


# ─────────────────────────────────────────────────────────────────────────────
# Application Factory
# ─────────────────────────────────────────────────────────────────────────────
def create_app(
    cfg: Optional[AppConfig] = None,
    *,
    storage: Optional[Storage] = None,
    backend: Optional[CentrifyAuthBackend] = None,
) -> Flask:
    """Create and configure Flask application.

    Args:
        cfg: Process settings (loaded from environment when None)
        storage: Storage for the configuration record (built from cfg when None)
        backend: Pre-built backend (tests inject client factories this way)
    """
    cfg = cfg or load_settings()
    _configure_logging(cfg)

    app = Flask(__name__)
    app.config["APP_CONFIG"] = cfg

    if storage is None:
        storage = build_storage(cfg)
    config_store = backend.config_store if backend is not None else ConfigStore(storage)
    if backend is None:
        backend = CentrifyAuthBackend(
            config_store,
            source=cfg.source_header,
            timeout=cfg.request_timeout,
        )

    app.config["CONFIG_STORE"] = config_store
    app.config["AUTH_BACKEND"] = backend
    app.config["AUDIT_TRAIL"] = AuditTrail(cfg.audit_log_dir, cfg.audit_log_signing_key, mount=cfg.mount)

    # Register blueprints
    from centrify_auth.api import backend as backend_routes, errors, health

    app.register_blueprint(health.bp)
    app.register_blueprint(backend_routes.bp, url_prefix=f"/v1/auth/{cfg.mount}")

    # Register error handlers
    errors.register_error_handlers(app)

    mode_label = "DEMO" if cfg.demo_mode else "PRODUCTION"
    app.logger.info(f"[flask_app] Mode={mode_label}; backend mounted at /v1/auth/{cfg.mount}")

    return app


def build_storage(cfg: AppConfig) -> Storage:
    """Select the configuration storage named by the settings."""
    if cfg.store_backend == "memory":
        return InMemoryStorage()
    return JsonFileStorage(cfg.store_path)


def _configure_logging(cfg: AppConfig) -> None:
    """Apply LOG_LEVEL to the package loggers."""
    level = logging.getLevelName(cfg.log_level)
    if not isinstance(level, int):
        level = logging.INFO
    logging.getLogger("centrify_auth").setLevel(level)
    if not logging.getLogger().handlers:
        logging.basicConfig(format="%(asctime)s %(levelname)s %(name)s: %(message)s")
