"""
User authentication service.

This module provides functionality for:
- Credential validation
- User registration
- User login and token issuance
"""
from datetime import datetime
from typing import Optional
from email_validator import validate_email, EmailNotValidError
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel

from backoffice.auth.jwt import TokenIssuer
from backoffice.auth.models import Principal
from backoffice.auth.passwords import MAX_PASSWORD_BYTES, PasswordHasher
from backoffice.auth.store import CredentialStore
from backoffice.errors import (
    AuthError, CredentialValidationError, InvalidCredentialsError, StoreError
)


# Pydantic models for request/response bodies
class Credentials(BaseModel):
    """Body of register and login requests."""
    email: str
    password: str


class UserOut(BaseModel):
    """User information returned to clients. Never carries the password hash."""
    id: int
    email: str
    role: Optional[str] = None
    created_at: Optional[datetime] = None


def validate_registration(email: str, password: str) -> None:
    """
    Check a registration pair before anything is hashed or stored.

    Raises:
        CredentialValidationError: If either value is missing or malformed
    """
    if not isinstance(email, str) or not email.strip():
        raise CredentialValidationError("Email is required")
    if not isinstance(password, str) or not password:
        raise CredentialValidationError("Password is required")
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        raise CredentialValidationError("Email is not valid")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise CredentialValidationError(
            f"Password must be at most {MAX_PASSWORD_BYTES} bytes"
        )


def validate_login(email: str, password: str) -> None:
    if not isinstance(email, str) or not email.strip():
        raise CredentialValidationError("Email is required")
    if not isinstance(password, str) or not password:
        raise CredentialValidationError("Password is required")


class AuthService:
    """
    Registration and login over a credential store.

    Stateless between calls. Every fault leaves as one of the AuthError kinds.
    """
    def __init__(self, store: CredentialStore, hasher: PasswordHasher, issuer: TokenIssuer):
        self.store = store
        self.hasher = hasher
        self.issuer = issuer

    async def register(self, email: str, password: str) -> Principal:
        """
        Register a new principal with no role.

        Issues exactly one insert; a duplicate email is rejected by the store.

        Returns:
            The stored principal

        Raises:
            CredentialValidationError: If the pair is malformed
            StoreError: If the store rejects the insert or fails
        """
        validate_registration(email, password)
        try:
            password_hash = await run_in_threadpool(self.hasher.hash, password)
            return await self.store.insert(
                Principal(email=email, password_hash=password_hash)
            )
        except AuthError:
            raise
        except Exception as e:
            raise StoreError("Registration failed") from e

    async def login(self, email: str, password: str) -> str:
        """
        Verify a credential pair and issue a token.

        An unknown email and a wrong password fail identically, and both
        perform one password verification.

        Returns:
            Signed bearer token bound to the principal's id

        Raises:
            CredentialValidationError: If the pair is missing
            InvalidCredentialsError: If the email is unknown or the password is wrong
            StoreError: If the lookup fails
        """
        validate_login(email, password)
        try:
            principal = await self.store.find_by_email(email)
        except AuthError:
            raise
        except Exception as e:
            raise StoreError("Login failed") from e

        # bcrypt runs off the event loop
        if principal is None:
            await run_in_threadpool(self.hasher.verify_dummy, password)
            raise InvalidCredentialsError()
        if not await run_in_threadpool(self.hasher.verify, password, principal.password_hash):
            raise InvalidCredentialsError()

        try:
            return self.issuer.issue(principal.id)
        except Exception as e:
            raise StoreError("Login failed") from e

    def authenticate(self, token: str) -> int:
        """
        Resolve a bearer token to a principal id.

        Raises:
            TokenExpiredError: If the token has expired
            TokenInvalidError: If the token is tampered with or malformed
        """
        return self.issuer.verify(token)
