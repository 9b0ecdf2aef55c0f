from fastapi import status


class ServiceException(Exception):
    """Base exception for service operation errors. Carries the HTTP status it maps to."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

class InvalidArgumentException(ServiceException):
    """Raised when input is malformed, missing or an enum value is not recognised."""
    status_code = status.HTTP_400_BAD_REQUEST

class UnauthenticatedException(ServiceException):
    """Raised when an action requires an identity and none was supplied."""
    status_code = status.HTTP_401_UNAUTHORIZED

class ForbiddenException(ServiceException):
    """Raised when the caller is identified but lacks the privilege for the action."""
    status_code = status.HTTP_403_FORBIDDEN

class NotFoundException(ServiceException):
    """Raised when an entity id does not resolve."""
    status_code = status.HTTP_404_NOT_FOUND

class ConflictException(ServiceException):
    """Raised on duplicate names, duplicate memberships, duplicate join requests and no-op role changes."""
    status_code = status.HTTP_409_CONFLICT

class UpstreamNotFoundException(ServiceException):
    """Raised when the movie metadata provider reports that a movie does not exist."""
    status_code = status.HTTP_404_NOT_FOUND

class UpstreamUnavailableException(ServiceException):
    """Raised when the movie metadata provider cannot be reached or answers with an error."""
    status_code = status.HTTP_502_BAD_GATEWAY

class InternalServiceException(ServiceException):
    """Raised when storage or a transaction fails. The message is logged, never returned."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
