class AuthException(Exception):
    """Base class for failures while registering or signing in an account."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class UserAlreadyExistsException(AuthException):
    """The username or email is already taken. Both are compared case-insensitively."""


class InvalidCredentialsException(AuthException):
    """Wrong username/password pair, or the account was deactivated.

    The two cases share one message so a caller cannot tell which usernames exist.
    """
