# Overview: JSON error responses for the HTTP layer.

from __future__ import annotations

from flask import current_app, jsonify, request

from .errors import RollbackFailedError, StorefrontError


def error_response(e: StorefrontError):
    """Map a domain error to its JSON body and status code."""
    if isinstance(e, RollbackFailedError):
        current_app.logger.critical("Rollback failed: %s", e.details)
    elif e.http_status >= 500:
        current_app.logger.error("%s: %s", type(e).__name__, e.message)
    else:
        current_app.logger.info("Rejected (%s): %s", e.http_status, e.message)
    return jsonify(e.to_dict()), e.http_status


def internal_error(what: str):
    """Log the active exception with traceback and answer 500."""
    current_app.logger.exception("Failed to %s", what)
    return jsonify({"error": "Internal server error"}), 500


def json_body():
    payload = request.get_json(silent=True)
    return payload if payload is not None else {}
