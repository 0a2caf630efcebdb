"""
Domain Error Taxonomy

Every error raised by the services and repositories derives from
FoodCartError and carries the HTTP status the API layer reports.

    ValidationError        -> 400, reported to the user, never retried
    NotFoundError          -> 404
    ConflictError          -> 409 (duplicate ids, operation already running)
    RemoteUnavailableError -> 503, reported with a retry hint
    ContextError           -> 500

Author: Khalil Bannouri
Version: 1.0.0
"""

from typing import Any, Optional


class FoodCartError(Exception):
    """Base class for all domain errors."""

    status_code: int = 500
    retryable: bool = False

    def __init__(self, message: str, detail: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail


# =============================================================================
# VALIDATION
# =============================================================================

class ValidationError(FoodCartError):
    """Bad input from the caller."""
    status_code = 400


class EmptyOrderError(ValidationError):
    def __init__(self):
        super().__init__("An order must contain at least one dish.")


class NoCategoryError(ValidationError):
    def __init__(self):
        super().__init__("A dish needs at least one category.")


class UnknownCategoryError(ValidationError):
    def __init__(self, category_id: str):
        super().__init__(
            f"Category '{category_id}' does not exist, create it first.",
            detail={"category_id": category_id},
        )
        self.category_id = category_id


class ImageTooLargeError(ValidationError):
    def __init__(self, size: int, limit: int):
        super().__init__(
            f"Image is too large after compression ({size // 1024} KB, "
            f"limit {limit // 1024} KB). Please choose a smaller photo.",
            detail={"size": size, "limit": limit},
        )
        self.size = size
        self.limit = limit


class InvalidInputError(ValidationError):
    """Value is not a base64 image data URL."""


class DecodeError(ValidationError):
    """Bytes could not be decoded as an image."""


# =============================================================================
# LOOKUP / CONFLICTS
# =============================================================================

class NotFoundError(FoodCartError):
    status_code = 404

    def __init__(self, entity: str, key: Any):
        super().__init__(f"{entity} '{key}' not found", detail={"entity": entity, "key": key})
        self.entity = entity
        self.key = key


class ConflictError(FoodCartError):
    status_code = 409


class DuplicateIdError(ConflictError):
    def __init__(self, entity: str, key: Any):
        super().__init__(f"{entity} id '{key}' already exists", detail={"entity": entity, "key": key})
        self.key = key


class OperationInProgressError(ConflictError):
    def __init__(self, kind: str, key: Any):
        super().__init__(
            f"Another {kind} operation for '{key}' is still running",
            detail={"kind": kind, "key": key},
        )
        self.kind = kind
        self.key = key


# =============================================================================
# REMOTE COLLABORATORS
# =============================================================================

class RemoteUnavailableError(FoodCartError):
    """Store or storage unreachable, or access denied by its policy."""
    status_code = 503
    retryable = True


class StorageBackendError(RemoteUnavailableError):
    """Raw failure reported by a storage backend call."""


class StorageUnavailableError(RemoteUnavailableError):
    """Bucket could not be listed or created."""


class UploadError(RemoteUnavailableError):
    """Object upload was rejected or failed in transit."""


class UrlResolutionError(RemoteUnavailableError):
    """Uploaded object has no resolvable public URL."""


# =============================================================================
# LOCAL RESOURCES
# =============================================================================

class ContextError(FoodCartError):
    """A drawing surface for image re-encoding could not be acquired."""
    status_code = 500
