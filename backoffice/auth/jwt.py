"""
JWT token handling for authentication.

This module provides functionality for:
- Issuing signed, time-bounded bearer tokens
- Verifying bearer tokens
"""
import time
from datetime import timedelta
from typing import Optional
import jwt
from jwt.exceptions import ExpiredSignatureError, PyJWTError
from fastapi import Request
from fastapi.security import HTTPBearer

from backoffice.errors import ConfigError, TokenExpiredError, TokenInvalidError

# JWT Configuration
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 60

# Authentication scheme: "Authorization: Bearer <token>"
bearer_scheme = HTTPBearer(auto_error=False)


class TokenIssuer:
    """
    Issues and verifies bearer tokens bound to a principal id.

    Tokens are stateless: validity is the signature plus the embedded expiry.
    There is no refresh and no revocation; a new login is required after expiry.

    Args:
        secret_key: HMAC signing secret
        ttl: Default token lifetime

    Raises:
        ConfigError: If the secret is missing or empty
    """
    def __init__(
        self,
        secret_key: str,
        ttl: timedelta = timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES),
        algorithm: str = ALGORITHM,
    ):
        if not secret_key or not secret_key.strip():
            raise ConfigError("JWT signing secret is not configured")
        self.secret_key = secret_key
        self.ttl = ttl
        self.algorithm = algorithm

    def issue(self, principal_id: int, ttl: Optional[timedelta] = None) -> str:
        """
        Create a signed token for a principal.

        Args:
            principal_id: Identifier of the authenticated principal
            ttl: Lifetime of the token, defaults to the issuer's ttl

        Returns:
            Encoded JWT string
        """
        if ttl is None:
            ttl = self.ttl
        now = time.time()
        payload = {
            "sub": str(principal_id),
            "iat": int(now),
            "exp": int(now + ttl.total_seconds()),
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def verify(self, token: str) -> int:
        """
        Verify a token and return the principal id it is bound to.

        The signature is checked before the expiry, so a tampered token is
        always reported as invalid, never as expired.

        Raises:
            TokenExpiredError: If the current time is at or past the expiry
            TokenInvalidError: If the signature or encoding is bad
        """
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"require": ["exp", "sub"]},
            )
        except ExpiredSignatureError:
            raise TokenExpiredError()
        except PyJWTError:
            raise TokenInvalidError()

        # PyJWT accepts exp == now; an expiry instant is already expired here
        if time.time() >= payload["exp"]:
            raise TokenExpiredError()

        try:
            return int(payload["sub"])
        except (ValueError, TypeError):
            raise TokenInvalidError()


def get_token_issuer(request: Request) -> TokenIssuer:
    """FastAPI dependency returning the issuer built at startup."""
    return request.app.state.token_issuer
