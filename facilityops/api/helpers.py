"""
Helpers shared by the API routes: request body parsing and error rendering.
"""
from flask import jsonify, request

from facilityops.errors import LifecycleError, ValidationError
from facilityops.logging_config import get_logger

logger = get_logger(__name__)


def json_body() -> dict:
    """The request's JSON object body; an empty body counts as {}."""
    if not request.data:
        return {}
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def error_response(error: LifecycleError):
    return jsonify({'error': error.to_dict()}), error.status_code


def register_error_handlers(app):
    """Render lifecycle errors as {"error": {"kind", "message", "details"}}."""

    @app.errorhandler(LifecycleError)
    def handle_lifecycle_error(error):
        logger.info("Request rejected",
                    path=request.path,
                    kind=error.kind,
                    message=error.message)
        return error_response(error)
