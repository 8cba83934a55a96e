"""Gunicorn configuration for the Centrify auth backend.

Run with:
    gunicorn -c gunicorn.conf.py

Workers share the configuration record through the JSON file store
(CENTRIFY_AUTH_STORE_PATH). The in-memory store is per process and only
makes sense with a single worker.
"""
import os

wsgi_app = "centrify_auth.flask_app:create_app()"
bind = os.environ.get("GUNICORN_BIND", "0.0.0.0:8200")
workers = int(os.environ.get("GUNICORN_WORKERS", "2"))
accesslog = "-"
errorlog = "-"


def on_starting(server):
    """Refuse a per-process store shared by several workers."""
    store = os.environ.get("CENTRIFY_AUTH_STORE", "file").strip().lower()
    if store == "memory" and workers > 1:
        server.log.warning(
            "CENTRIFY_AUTH_STORE=memory with %d workers: each worker keeps its own configuration", workers
        )


def post_fork(server, worker):
    """Called just after a worker has been forked."""
    from pathlib import Path

    secrets_dir = Path("/run/secrets")
    if secrets_dir.is_dir() and any(secrets_dir.iterdir()):
        worker.log.info("Found secrets in /run/secrets (loaded by centrify_auth.config.settings)")
    else:
        worker.log.info("No /run/secrets mount; secrets come from environment variables")
