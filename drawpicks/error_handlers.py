from flask import Blueprint, current_app, jsonify
from flask_wtf.csrf import CSRFError
from google.api_core.exceptions import GoogleAPICallError

from .errors import (
    AppError,
    DuplicateResourceError,
    IntegrityError,
    NotFoundError,
    StateConflictError,
    ValidationError,
)

error_handlers_bp = Blueprint("error_handlers", __name__)


def error_response(message, status_code):
    """Build the JSON body every error shares."""
    return jsonify({"success": False, "message": message}), status_code


@error_handlers_bp.app_errorhandler(ValidationError)
def handle_validation_error(error):
    """Handles validation errors."""
    current_app.logger.warning(f"Validation Error: {error.message}")
    return error_response(error.message, error.status_code)


@error_handlers_bp.app_errorhandler(DuplicateResourceError)
def handle_duplicate_resource_error(error):
    """Handles duplicate resource errors."""
    current_app.logger.warning(f"Duplicate Resource Error: {error.message}")
    return error_response(error.message, error.status_code)


@error_handlers_bp.app_errorhandler(StateConflictError)
def handle_state_conflict_error(error):
    """Handles requests that conflict with the current state."""
    current_app.logger.warning(f"State Conflict Error: {error.message}")
    return error_response(error.message, error.status_code)


@error_handlers_bp.app_errorhandler(IntegrityError)
def handle_integrity_error(error):
    """Handles inconsistent match results."""
    current_app.logger.warning(f"Integrity Error: {error.message}")
    return error_response(error.message, error.status_code)


@error_handlers_bp.app_errorhandler(NotFoundError)
def handle_not_found_error(error):
    """Handles not found errors."""
    current_app.logger.warning(f"Not Found Error: {error.message}")
    return error_response(error.message, error.status_code)


@error_handlers_bp.app_errorhandler(AppError)
def handle_app_error(error):
    """Handles generic application errors."""
    current_app.logger.error(f"Application Error: {error.message}")
    return error_response(error.message, error.status_code)


@error_handlers_bp.app_errorhandler(404)
def handle_404(e):
    """Handles generic 404 errors for routes that don't exist."""
    return error_response("Not found.", 404)


@error_handlers_bp.app_errorhandler(500)
def handle_500(e):
    """Handles unexpected server errors."""
    current_app.logger.error(f"Internal Server Error: {e}")
    return error_response("An unexpected error occurred.", 500)


@error_handlers_bp.app_errorhandler(GoogleAPICallError)
def handle_db_error(e):
    """Handles database errors."""
    current_app.logger.error(f"Database Error: {e}")
    # Avoid exposing raw database error details to the user
    return error_response("A database error occurred. Please try again later.", 500)


@error_handlers_bp.app_errorhandler(CSRFError)
def handle_csrf_error(e):
    """Handles CSRF errors, which usually indicate an expired session."""
    current_app.logger.warning(f"CSRF Error: {e.description}")
    return error_response(
        "Your session may have expired. Please try your action again.", 400
    )
