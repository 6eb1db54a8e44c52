"""
Custom exceptions and error codes for flagstore.

This module provides:
- Structured error codes for categorized error handling
- Custom exception classes for specific failure scenarios
- Error response schema for consistent output from integrations
"""
from enum import Enum
from typing import Optional, Dict, Any
from pydantic import BaseModel, ConfigDict


class ErrorCode(str, Enum):
    """
    Library-wide error codes for categorized error handling.

    Format: CATEGORY_SPECIFIC_ERROR
    Categories:
    - FEATURE_*: Feature definition and evaluation errors
    - SCOPE_*: Scope normalization and usage errors
    - STORAGE_*: Storage driver errors
    """

    # Feature-related errors
    FEATURE_UNDEFINED = "FEATURE_UNDEFINED"
    FEATURE_INACTIVE = "FEATURE_INACTIVE"

    # Scope-related errors
    SCOPE_UNRESOLVABLE = "SCOPE_UNRESOLVABLE"
    SCOPE_MULTIPLE = "SCOPE_MULTIPLE"

    # Storage-related errors
    STORAGE_QUERY_ERROR = "STORAGE_QUERY_ERROR"
    STORAGE_UNKNOWN_STORE = "STORAGE_UNKNOWN_STORE"

    # General errors
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ErrorResponse(BaseModel):
    """Structured error body for integrations."""
    model_config = ConfigDict(use_enum_values=True)

    error_code: ErrorCode
    message: str
    details: Optional[Dict[str, Any]] = None


class FlagStoreError(Exception):
    """
    Base exception for all flagstore errors.

    Provides structured error information for consistent error handling.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)

    def to_response(self) -> ErrorResponse:
        """Convert exception to ErrorResponse for integration output."""
        return ErrorResponse(
            error_code=self.error_code,
            message=self.message,
            details=self.details if self.details else None,
        )


# Feature-related exceptions

class UndefinedFeatureError(FlagStoreError):
    """Raised when a feature has no resolver and no stored value."""

    def __init__(self, feature: str):
        super().__init__(
            message=f"Unable to resolve unknown feature '{feature}'",
            error_code=ErrorCode.FEATURE_UNDEFINED,
            details={"feature": feature},
        )


class FeatureInactiveError(FlagStoreError):
    """Raised when a required feature is inactive."""

    def __init__(self, feature: str):
        super().__init__(
            message=f"Feature '{feature}' is currently inactive",
            error_code=ErrorCode.FEATURE_INACTIVE,
            details={"feature": feature},
        )


# Scope-related exceptions

class UnresolvableScopeError(FlagStoreError):
    """Raised when a scope cannot be turned into a stable storage key."""

    def __init__(self, scope: Any, reason: str):
        super().__init__(
            message=f"Unable to build a scope key for {type(scope).__name__}: {reason}",
            error_code=ErrorCode.SCOPE_UNRESOLVABLE,
            details={"scope_type": type(scope).__name__, "reason": reason},
        )


class MultipleScopeError(FlagStoreError):
    """Raised when single-scope values are requested for several scopes."""

    def __init__(self, scope_count: int):
        super().__init__(
            message="It is not possible to retrieve the values for multiple scopes",
            error_code=ErrorCode.SCOPE_MULTIPLE,
            details={"scope_count": scope_count},
        )


# Storage-related exceptions

class StorageError(FlagStoreError):
    """Raised when the storage backend fails."""

    def __init__(self, operation: str, reason: str, details: Dict[str, Any] = None):
        base_details = {"operation": operation, "reason": reason}
        if details:
            base_details.update(details)
        super().__init__(
            message=f"Feature storage {operation} failed: {reason}",
            error_code=ErrorCode.STORAGE_QUERY_ERROR,
            details=base_details,
        )


class UnknownStoreError(FlagStoreError):
    """Raised when a store name is missing from the configuration."""

    def __init__(self, store: str):
        super().__init__(
            message=f"Feature store '{store}' is not defined",
            error_code=ErrorCode.STORAGE_UNKNOWN_STORE,
            details={"store": store},
        )
