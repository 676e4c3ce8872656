"""
Errors raised by work order lifecycle operations.

Each error carries a ``kind`` and an HTTP ``status_code`` so the API layer can
render it without knowing which operation raised it. ``details`` holds optional
structured data for the caller (for example the parts blocking an assignment).
"""
from typing import Any, Dict, Optional


class LifecycleError(Exception):
    kind = "error"
    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        return {
            'kind': self.kind,
            'message': self.message,
            'details': self.details,
        }


class ValidationError(LifecycleError):
    """Malformed input; raised before anything is mutated."""
    kind = "validation"
    status_code = 400


class Forbidden(LifecycleError):
    """Role or ownership violation."""
    kind = "forbidden"
    status_code = 403


class NotFound(LifecycleError):
    """Referenced record is absent or belongs to another organization."""
    kind = "not_found"
    status_code = 404


class Conflict(LifecycleError):
    """The record's current state does not allow the change (closed work order, duplicate identifier)."""
    kind = "conflict"
    status_code = 409


class PreconditionFailed(LifecycleError):
    """Assignment blocked by required parts that are not approved and arrived."""
    kind = "precondition_failed"
    status_code = 422
