"""Error handlers for the application."""
from flask import jsonify
from werkzeug.exceptions import HTTPException

from idgateway.core.errors import GatewayError


def register_error_handlers(app):
    """Register JSON error handlers with the Flask app."""

    @app.errorhandler(GatewayError)
    def handle_gateway_error(error: GatewayError):
        """Gateway error kinds carry their own status and user-safe message."""
        if error.status >= 500:
            app.logger.error("Gateway error: %s", error.error, exc_info=error)
        return jsonify(error.to_dict()), error.status

    @app.errorhandler(HTTPException)
    def handle_http_exception(error: HTTPException):
        return jsonify({"error": error.name, "message": error.description}), error.code

    @app.errorhandler(Exception)
    def handle_exception(error):
        """Handle uncaught exceptions."""
        app.logger.error(f"Unhandled exception: {error}", exc_info=True)
        return jsonify({"error": "Internal Server Error", "message": "An unexpected error occurred"}), 500
