"""Error handlers for the application.

Every error is rendered as JSON: {"error": <title>, "message": <detail>}.
"""
from flask import jsonify
from werkzeug.exceptions import HTTPException

from centrify_auth.core.centrify import TransportError
from centrify_auth.core.exceptions import (
    ConfigurationError,
    IdentityLookupFailure,
    InvalidRequest,
    OAuthRejection,
)

AUTH_FAILED_MESSAGE = "authentication failed"


def error_response(status: int, title: str, message: str):
    """Build a JSON error response tuple."""
    return jsonify({"error": title, "message": message}), status


def register_error_handlers(app):
    """Register error handlers with the Flask app."""

    @app.errorhandler(InvalidRequest)
    def invalid_request(error):
        """Missing password/username or unsupported mode."""
        return error_response(400, "Bad Request", str(error))

    @app.errorhandler(ConfigurationError)
    def configuration_error(error):
        """Missing or invalid backend configuration."""
        return error_response(400, "Bad Request", str(error))

    @app.errorhandler(OAuthRejection)
    def oauth_rejection(error):
        """Platform refused the grant; its message is passed through."""
        return error_response(401, "Unauthorized", str(error))

    @app.errorhandler(IdentityLookupFailure)
    def identity_failure(error):
        """Identity could not be resolved; detail stays in the logs."""
        app.logger.warning(f"Identity lookup failure: {error}")
        return error_response(401, "Unauthorized", AUTH_FAILED_MESSAGE)

    @app.errorhandler(TransportError)
    def transport_error(error):
        """Platform unreachable or unreadable; detail stays in the logs."""
        app.logger.error(f"Transport error talking to identity platform: {error}")
        return error_response(401, "Unauthorized", AUTH_FAILED_MESSAGE)

    @app.errorhandler(400)
    def bad_request(error):
        """Handle 400 Bad Request errors."""
        return error_response(400, "Bad Request", error.description or "Malformed request")

    @app.errorhandler(404)
    def not_found(error):
        """Handle 404 Not Found errors."""
        return error_response(404, "Not Found", error.description or "Resource not found")

    @app.errorhandler(405)
    def method_not_allowed(error):
        """Handle 405 Method Not Allowed errors."""
        return error_response(405, "Method Not Allowed", "Method not allowed for this path")

    @app.errorhandler(Exception)
    def handle_exception(error):
        """Handle uncaught exceptions."""
        # Pass through HTTP errors
        if isinstance(error, HTTPException):
            return error

        # ALWAYS log the error (even in production) - logs are secure
        app.logger.error(f"Unhandled exception: {error}", exc_info=True)
        return error_response(500, "Internal Server Error", "An unexpected error occurred")
