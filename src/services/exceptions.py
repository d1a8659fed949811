"""
Shared exceptions for service layer operations.

Services raise these; api/main.py translates each family into an HTTP status.
Every error carries a short machine-readable `code` alongside its message.
"""


class ServiceError(Exception):
    """Base class for errors surfaced to the caller as a rejected request."""

    code = "service_error"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationError(ServiceError):
    """Raised when input is well-formed but not acceptable (e.g. following yourself)."""

    code = "validation_error"


class NotFoundError(ServiceError):
    """Raised when a mutation references an entity that does not exist."""

    code = "not_found"


class ForbiddenError(ServiceError):
    """Raised when the caller mutates a resource they do not own."""

    code = "forbidden"


class ConflictError(ServiceError):
    """Raised when a mutation would duplicate a unique key. Never retried."""

    code = "conflict"


class ExternalServiceError(ServiceError):
    """Raised when an external collaborator (object store, image search) fails."""

    code = "external_service_error"


class PostNotFoundError(NotFoundError):
    """Raised when a post ID doesn't exist."""

    code = "post_not_found"

    def __init__(self, post_id: int) -> None:
        self.post_id = post_id
        super().__init__(f"Post {post_id} not found")


class UserNotFoundError(NotFoundError):
    """Raised when a user ID doesn't exist."""

    code = "user_not_found"

    def __init__(self, user_id: int) -> None:
        self.user_id = user_id
        super().__init__(f"User {user_id} not found")
