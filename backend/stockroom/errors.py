# Overview: Error taxonomy shared by services and routes.

"""
Every failure the API reports maps to one of these classes. Routes catch the
ones they expect and turn them into ``{"error": ...}`` JSON with the class's
status code; see ``error_response``.

ValidationError and ConflictError live in validation.py and are re-exported
here.
"""

from flask import jsonify

from .validation import ValidationError, ConflictError


class StockroomError(Exception):
    """Base class for errors rendered as JSON responses."""
    status_code = 500

    def __init__(self, message: str, *, detail: str | None = None):
        super().__init__(message)
        self.detail = detail


class Unauthenticated(StockroomError):
    """Missing, malformed, or expired bearer token."""
    status_code = 401


class Forbidden(StockroomError):
    """Role policy violation."""
    status_code = 403

    def __init__(self, message: str = "Forbidden", *, detail: str | None = None):
        super().__init__(message, detail=detail)


class NotFound(StockroomError):
    status_code = 404


class GenerationError(StockroomError):
    """The language model response did not contain a usable SQL statement."""
    status_code = 500


class QueryFailed(StockroomError):
    """The sandboxed SQL procedure rejected or failed the generated query."""
    status_code = 500


class TimedOut(StockroomError):
    """The language model round trip exceeded its deadline."""
    status_code = 504


class StoreError(StockroomError):
    """Underlying datastore failure."""
    status_code = 500


def status_for(exc: Exception) -> int:
    if isinstance(exc, StockroomError):
        return exc.status_code
    if isinstance(exc, ConflictError):
        return 409
    if isinstance(exc, ValidationError):
        return 400
    return 500


def error_response(exc: Exception):
    """Render an error as ``({"error": ..., ["detail": ...]}, status)``."""
    body = {"error": str(exc)}
    detail = getattr(exc, "detail", None)
    if detail:
        body["detail"] = detail
    return jsonify(body), status_for(exc)


__all__ = [
    "StockroomError",
    "Unauthenticated",
    "Forbidden",
    "ValidationError",
    "ConflictError",
    "NotFound",
    "GenerationError",
    "QueryFailed",
    "TimedOut",
    "StoreError",
    "error_response",
    "status_for",
]
