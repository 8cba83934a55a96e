"""Core Business Logic Module

Authentication core, independent of the HTTP surface that hosts it.

Module Structure:
    - centrify/          : OAuth2 and REST clients for the identity platform
    - backend_config.py  : Configuration record, normalization, storage
    - login.py           : Login state machine and alias lookahead
    - exceptions.py      : Login/configuration error taxonomy
    - audit.py           : Signed audit trail

Usage Pattern:
    from centrify_auth.core.backend_config import ConfigStore, JsonFileStorage
    from centrify_auth.core.login import CentrifyAuthBackend, LoginRequest

    store = ConfigStore(JsonFileStorage("config.json"))
    backend = CentrifyAuthBackend(store)
    result = backend.login(LoginRequest("alice", "secret", "ro"))
"""
