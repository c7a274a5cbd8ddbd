"""Error handlers mapping provisioning errors to HTTP responses."""
from flask import jsonify
from werkzeug.exceptions import HTTPException

from provisioning_gateway.core.keycloak.exceptions import (
    DependencyUnavailableError,
    ForbiddenError,
    InvalidRequestError,
    NotFoundError,
    ProtocolError,
    ProvisioningError,
    RoleAssignmentError,
    UnauthenticatedError,
    UpstreamUnavailableError,
)

# Most specific first; ProvisioningError catches anything unlisted.
STATUS_BY_ERROR = (
    (NotFoundError, 404),
    (ForbiddenError, 403),
    (UnauthenticatedError, 401),
    (InvalidRequestError, 400),
    (UpstreamUnavailableError, 502),
    (ProtocolError, 502),
    (RoleAssignmentError, 500),
    (DependencyUnavailableError, 503),
    (ProvisioningError, 500),
)


def status_for(error: ProvisioningError) -> int:
    for error_type, status in STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return status
    return 500


def error_body(error: ProvisioningError) -> dict:
    body = {
        "error": error.kind,
        "message": error.message,
        "operation": error.operation,
        "targetId": error.target_id,
    }
    if error.user_id is not None:
        body["userId"] = error.user_id
    if isinstance(error, RoleAssignmentError):
        body["role"] = error.role
        if error.cause is not None:
            body["cause"] = error.cause.kind
    return body


def register_error_handlers(app):
    """Register error handlers with the Flask app."""

    @app.errorhandler(ProvisioningError)
    def handle_provisioning_error(error):
        status = status_for(error)
        if status >= 500:
            app.logger.error(f"Provisioning failure: {error}")
        return jsonify(error_body(error)), status

    @app.errorhandler(400)
    def bad_request(error):
        return jsonify({"error": "Bad Request", "message": getattr(error, "description", str(error))}), 400

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({"error": "Not Found", "message": "Resource not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({"error": "Method Not Allowed", "message": "Method not allowed"}), 405

    @app.errorhandler(Exception)
    def handle_exception(error):
        """Handle uncaught exceptions."""
        # Pass through HTTP errors
        if isinstance(error, HTTPException):
            return error

        app.logger.error(f"Unhandled exception: {error}", exc_info=True)
        return jsonify({"error": "Internal Server Error", "message": "An unexpected error occurred"}), 500
