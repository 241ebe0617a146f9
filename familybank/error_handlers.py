from flask import Blueprint, current_app, jsonify
from flask_wtf.csrf import CSRFError

from .errors import (
    AppError,
    AuthError,
    NotFoundError,
    RecordDecodeError,
    RepositoryError,
    ValidationError,
)

error_handlers_bp = Blueprint("error_handlers", __name__)


def _error_response(message, status_code, **extra):
    body = {"status": "error", "message": message}
    body.update(extra)
    return jsonify(body), status_code


@error_handlers_bp.app_errorhandler(ValidationError)
def handle_validation_error(error):
    """Handles validation errors."""
    current_app.logger.warning(f"Validation Error: {error.message}")
    return _error_response(error.message, error.status_code)


@error_handlers_bp.app_errorhandler(NotFoundError)
def handle_not_found_error(error):
    """Handles not found errors."""
    current_app.logger.warning(f"Not Found Error: {error.message}")
    return _error_response(error.message, error.status_code)


@error_handlers_bp.app_errorhandler(AuthError)
def handle_auth_error(error):
    current_app.logger.warning(f"Auth Error: {error.message}")
    return _error_response(error.message, error.status_code, error=error.kind.value)


@error_handlers_bp.app_errorhandler(RepositoryError)
def handle_repository_error(error):
    """Handles failures talking to the database."""
    current_app.logger.error(f"Repository Error: {error.message}")
    return _error_response(error.message, error.status_code, error=error.kind.value)


@error_handlers_bp.app_errorhandler(RecordDecodeError)
def handle_record_decode_error(error):
    current_app.logger.error(f"Record Decode Error: {error.message}")
    # Stored data is broken; the details stay in the log.
    return _error_response("A stored record could not be read.", error.status_code)


@error_handlers_bp.app_errorhandler(AppError)
def handle_app_error(error):
    """Handles generic application errors."""
    current_app.logger.error(f"Application Error: {error.message}")
    return _error_response(error.message, error.status_code)


@error_handlers_bp.app_errorhandler(404)
def handle_404(e):
    """Handles generic 404 errors for routes that don't exist."""
    return _error_response("Page Not Found", 404)


@error_handlers_bp.app_errorhandler(405)
def handle_405(e):
    return _error_response("Method Not Allowed", 405)


@error_handlers_bp.app_errorhandler(500)
def handle_500(e):
    """Handles unexpected server errors."""
    current_app.logger.error(f"Internal Server Error: {e}")
    return _error_response("An unexpected error occurred.", 500)


@error_handlers_bp.app_errorhandler(CSRFError)
def handle_csrf_error(e):
    """
    Handles CSRF errors, which usually indicate a session timeout or a missing
    X-CSRFToken header. Clients get a fresh token from /auth/session.
    """
    current_app.logger.warning(f"CSRF Error: {e.description}")
    return _error_response(
        "Your session may have expired. Please try your action again.", 400
    )
