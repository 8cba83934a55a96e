"""HTTP surface for the auth backend (Flask blueprints and error handlers)."""
