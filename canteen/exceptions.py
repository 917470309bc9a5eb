"""
Domain Error Taxonomy

Every error raised by the service layer derives from CanteenError and
carries the HTTP status it maps to. The API layer renders them as
{"message": ..., "data": None} (plus "errors" for validation failures);
internal detail stays in the logs.
"""

from typing import Any, Optional


class CanteenError(Exception):
    """Base class for errors that surface to API clients."""

    status_code = 500
    default_message = "Something went wrong. Please try again later."

    def __init__(
        self,
        message: Optional[str] = None,
        errors: Optional[list[Any]] = None,
    ):
        self.message = message or self.default_message
        self.errors = errors
        super().__init__(self.message)

    def to_dict(self) -> dict:
        body: dict[str, Any] = {"message": self.message, "data": None}
        if self.errors:
            body["errors"] = self.errors
        return body


# =============================================================================
# TAXONOMY
# =============================================================================

class ValidationError(CanteenError):
    status_code = 400
    default_message = "Validation error."


class NotFound(CanteenError):
    status_code = 404
    default_message = "Resource not found."


class Conflict(CanteenError):
    status_code = 409
    default_message = "Resource already exists."


class InsufficientFunds(CanteenError):
    status_code = 400
    default_message = "Insufficient funds."


class ExternalServiceError(CanteenError):
    """A payment or messaging provider call failed."""
    status_code = 500
    default_message = "External service unavailable. Please try again later."

    def __init__(
        self,
        message: Optional[str] = None,
        provider: Optional[str] = None,
        response_body: Optional[str] = None,
    ):
        super().__init__(message)
        self.provider = provider
        self.response_body = response_body


class InternalError(CanteenError):
    status_code = 500
    default_message = "Internal server error."


# =============================================================================
# DOMAIN ERRORS
# =============================================================================

class EmptyCart(NotFound):
    default_message = "Cart is empty."


class InsufficientBalance(InsufficientFunds):
    default_message = "Insufficient wallet balance."


class OrderNumberExhausted(InternalError):
    default_message = "Could not generate a unique order number."


class CancellationWindowClosed(ValidationError):
    default_message = "Order can no longer be cancelled."


class OrderAlreadyFinal(ValidationError):
    default_message = "Only placed orders can be cancelled."


class MissingMenuConfiguration(NotFound):
    default_message = "Menu configuration not found for this order."
