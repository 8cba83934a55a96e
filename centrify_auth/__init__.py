"""Centrify Identity Platform auth backend.

To use the Flask app:
    from centrify_auth.flask_app import create_app

To use the login core directly:
    from centrify_auth.core.login import CentrifyAuthBackend, LoginRequest
    from centrify_auth.core.backend_config import ConfigStore, InMemoryStorage
"""
# Note: flask_app is not imported here so the core stays usable without Flask
