"""
Error taxonomy for the backoffice API.

Every fault raised inside the auth core is one of these kinds. Routers map
them to HTTP responses; nothing else is allowed to cross the service boundary.
"""


class AuthError(Exception):
    """Base class for all auth and persistence errors."""

    message = "Authentication error"

    def __init__(self, message: str = None):
        super().__init__(message or self.message)


class CredentialValidationError(AuthError):
    """Missing or malformed email/password."""

    message = "Invalid request"


class InvalidCredentialsError(AuthError):
    """Unknown email or wrong password. Callers must not be able to tell which."""

    message = "Invalid credentials"


class StoreError(AuthError):
    """Any persistence-layer fault, duplicate keys included."""

    message = "Storage error"


class TokenError(AuthError):
    message = "Invalid token"


class TokenExpiredError(TokenError):
    message = "Token has expired"


class TokenInvalidError(TokenError):
    message = "Invalid token"


class ConfigError(AuthError):
    """Required process configuration is missing or invalid. Fatal at startup."""

    message = "Invalid configuration"
