class RepositoryException(Exception):
    """Base exception for storage errors.

    `client_error` marks failures caused by the request (a missing row, a
    uniqueness clash) whose message is safe to return to the caller.
    Everything else is an internal fault and is reported opaquely.
    """

    client_error = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

class EntityNotFoundException(RepositoryException):
    """Raised when a row that a mutation depends on no longer exists."""
    client_error = True

class DuplicateEntityException(RepositoryException):
    """Raised when a write violates a uniqueness constraint (group name, membership row, review)."""
    client_error = True

class InvalidEntityDataException(RepositoryException):
    """Raised when a row cannot be written or read back in the shape its domain model needs."""

class RepositoryOperationException(RepositoryException):
    """Raised when a query or transaction fails for any other reason.
    The session has already been rolled back when this is raised."""
