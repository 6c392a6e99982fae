# Overview: Domain error hierarchy shared by services, stores and routes.

from __future__ import annotations


class StorefrontError(Exception):
    """Base class for every business-rule failure reported to callers."""

    http_status = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        payload = {"error": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class NotFoundError(StorefrontError):
    """Category, product, customer or order lookup miss."""

    http_status = 404


class ValidationError(StorefrontError, ValueError):
    """400-level input problem (negative price/stock, bad quantity, malformed payload)."""


class DuplicateKeyError(StorefrontError):
    """Unique column collision (customer email, category name, order number)."""

    http_status = 409


class InsufficientStockError(StorefrontError):
    """A debit would drive product stock below zero."""

    http_status = 409


class InvalidTransitionError(StorefrontError):
    """Order status change not permitted from the current state."""

    http_status = 409


class AlreadyCancelledError(StorefrontError):
    """Cancel or return attempted on an order that is already cancelled."""

    http_status = 409


class RollbackFailedError(StorefrontError):
    """
    The unit of work failed and so did its rollback.

    Storage may hold partial writes; treat as a consistency risk, never retry blindly.
    The failure that triggered the rollback is kept on ``original``.
    """

    http_status = 500

    def __init__(self, original: BaseException, rollback_error: BaseException):
        super().__init__(
            "Rollback failed after error; storage may be inconsistent",
            details={
                "original_error": f"{type(original).__name__}: {original}",
                "rollback_error": f"{type(rollback_error).__name__}: {rollback_error}",
            },
        )
        self.original = original
        self.rollback_error = rollback_error
