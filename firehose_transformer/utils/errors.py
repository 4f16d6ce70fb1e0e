"""
Error handling utilities for the transform.

Provides a small error hierarchy with error codes. Every error raised here is
fatal: the transform aborts on the first one and produces no artifact.
"""

from typing import Any, Dict, Optional


class TransformerError(Exception):
    """
    Transform error with error code and message.

    Base class for all errors surfaced by a transform run.
    """

    def __init__(self, error_code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.error_code = error_code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for CLI output."""
        return {
            "errorCode": self.error_code,
            "message": self.message,
            **self.details,
        }


class ErrorCode:
    """Standard error codes for the transform."""

    # Contract errors
    INVALID_DIRECTIVE = "INVALID_DIRECTIVE"
    MISSING_ARGUMENT = "MISSING_ARGUMENT"
    INVALID_SCHEMA = "INVALID_SCHEMA"

    # Collaborator / ordering defects
    INTERNAL_INVARIANT = "INTERNAL_INVARIANT"

    # System errors
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ContractError(TransformerError):
    """Schema violates the directive contract."""


class InvalidDirectiveError(ContractError):
    """Directive is used in a way its definition does not allow."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(ErrorCode.INVALID_DIRECTIVE, message, details)


class TransformerContractError(ContractError):
    """Directive is missing a value it requires."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(ErrorCode.MISSING_ARGUMENT, message, details)


class SchemaValidationError(ContractError):
    """Schema was rejected by the host schema engine."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(ErrorCode.INVALID_SCHEMA, message, details)


class InternalInvariantError(TransformerError):
    """
    A collaborator did not hold up its end of the contract.

    Raised when an expected upstream resource is missing or phases ran out of
    order. Never recovered from.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(ErrorCode.INTERNAL_INVARIANT, message, details)


def handle_error(error: Exception) -> Dict[str, Any]:
    """
    Convert exception to standardized error response.

    Args:
        error: Exception to handle

    Returns:
        Error dictionary for CLI output
    """
    if isinstance(error, TransformerError):
        return error.to_dict()

    return {
        "errorCode": ErrorCode.INTERNAL_ERROR,
        "message": "An unexpected error occurred during the transform.",
    }
