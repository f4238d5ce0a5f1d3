"""
Custom exceptions for the saveable engine.

Missing saves and duplicate saves are reported through return values by the
store; the exceptions below cover programmer errors and races the caller has to
know about.
"""

from typing import Optional, Dict, Any
from enum import Enum


class ErrorCode(str, Enum):
    """Standardized error codes for the application."""

    # Type registry errors
    UNKNOWN_ENTITY_TYPE = "UNKNOWN_ENTITY_TYPE"
    TYPE_REGISTRATION_CONFLICT = "TYPE_REGISTRATION_CONFLICT"
    ENTITY_NOT_PERSISTED = "ENTITY_NOT_PERSISTED"
    UNSUPPORTED_ENTITY_TYPE = "UNSUPPORTED_ENTITY_TYPE"

    # Association errors
    DUPLICATE_SAVE = "DUPLICATE_SAVE"
    COLLECTION_CYCLE = "COLLECTION_CYCLE"
    MIXED_TYPE_LIMIT_EXCEEDED = "MIXED_TYPE_LIMIT_EXCEEDED"

    # Generic errors
    NOT_FOUND = "NOT_FOUND"
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"


class SaveableException(Exception):
    """Base exception for the saveable engine."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode,
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 500
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.status_code = status_code


class UnknownEntityTypeError(SaveableException):
    """Raised when a write path meets an entity type that was never registered."""

    def __init__(self, type_name: str):
        super().__init__(
            message=f"Entity type '{type_name}' is not registered",
            error_code=ErrorCode.UNKNOWN_ENTITY_TYPE,
            details={"type": type_name},
            status_code=400
        )


class TypeRegistrationError(SaveableException):
    """Raised when an alias is already bound to a different model."""

    def __init__(self, tag: str, existing: str, requested: str):
        super().__init__(
            message=f"Tag '{tag}' is already registered for '{existing}'",
            error_code=ErrorCode.TYPE_REGISTRATION_CONFLICT,
            details={"tag": tag, "existing": existing, "requested": requested},
            status_code=500
        )


class UnsupportedEntityTypeError(SaveableException):
    """Raised when a model cannot be referenced from the saves and collections tables."""

    def __init__(self, type_name: str, reason: str):
        super().__init__(
            message=f"Entity type '{type_name}' cannot be registered: {reason}",
            error_code=ErrorCode.UNSUPPORTED_ENTITY_TYPE,
            details={"type": type_name, "reason": reason},
            status_code=500
        )


class EntityNotPersistedError(SaveableException):
    """Raised when an entity without a primary key value is referenced."""

    def __init__(self, type_name: str):
        super().__init__(
            message=f"Entity of type '{type_name}' has no identifier yet; flush it first",
            error_code=ErrorCode.ENTITY_NOT_PERSISTED,
            details={"type": type_name},
            status_code=400
        )


class DuplicateSaveError(SaveableException):
    """
    Raised when the database rejects a save because the pair already exists.
    Only reachable when a concurrent writer won the race past the existence check.
    """

    def __init__(self, saver: Any, saveable: Any):
        super().__init__(
            message="Save already exists for this saver and saveable",
            error_code=ErrorCode.DUPLICATE_SAVE,
            details={"saver": list(saver), "saveable": list(saveable)},
            status_code=409
        )


class CollectionCycleError(SaveableException):
    """Raised when re-parenting would make a collection its own ancestor."""

    def __init__(self, collection_id: int, parent_id: int):
        super().__init__(
            message=f"Collection {collection_id} cannot be nested under {parent_id}",
            error_code=ErrorCode.COLLECTION_CYCLE,
            details={"collection_id": collection_id, "parent_id": parent_id},
            status_code=400
        )


class CollectionNotFoundError(SaveableException):
    """Raised when a collection handed to the service no longer exists."""

    def __init__(self, collection_id: Optional[int]):
        super().__init__(
            message=f"Collection {collection_id} not found",
            error_code=ErrorCode.NOT_FOUND,
            details={"collection_id": collection_id},
            status_code=404
        )


class MixedTypeLimitError(SaveableException):
    """Raised when a mixed-type read would fan out over too many entity types."""

    def __init__(self, type_count: int, limit: int):
        super().__init__(
            message=f"Mixed-type query spans {type_count} entity types (limit {limit})",
            error_code=ErrorCode.MIXED_TYPE_LIMIT_EXCEEDED,
            details={"type_count": type_count, "limit": limit},
            status_code=422
        )
