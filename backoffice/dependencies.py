"""Dependency wiring for routes."""
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials

from backoffice.auth.jwt import TokenIssuer, bearer_scheme, get_token_issuer
from backoffice.auth.models import User
from backoffice.auth.passwords import PasswordHasher
from backoffice.auth.store import CredentialStore
from backoffice.auth.users import AuthService
from backoffice.database.models import Service
from backoffice.database.store import RecordStore, SqlAlchemyRecordStore
from backoffice.errors import TokenInvalidError


@asynccontextmanager
async def _records(request: Request, model) -> AsyncIterator[RecordStore]:
    memory_stores = getattr(request.app.state, "memory_stores", None)
    if memory_stores is not None:
        yield memory_stores[model.__tablename__]
        return
    async with request.app.state.session_factory() as db:
        yield SqlAlchemyRecordStore(db, model)


async def get_user_records(request: Request) -> AsyncIterator[RecordStore]:
    """Request-scoped store over the users table."""
    async with _records(request, User) as records:
        yield records


async def get_service_records(request: Request) -> AsyncIterator[RecordStore]:
    """Request-scoped store over the services table."""
    async with _records(request, Service) as records:
        yield records


def get_password_hasher(request: Request) -> PasswordHasher:
    return request.app.state.password_hasher


def get_auth_service(
    records: RecordStore = Depends(get_user_records),
    hasher: PasswordHasher = Depends(get_password_hasher),
    issuer: TokenIssuer = Depends(get_token_issuer),
) -> AuthService:
    return AuthService(CredentialStore(records), hasher, issuer)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    auth: AuthService = Depends(get_auth_service),
) -> int:
    """
    FastAPI dependency resolving the bearer token to a principal id.

    Raises:
        TokenInvalidError: If no bearer credential is present or it is invalid
        TokenExpiredError: If the token has expired
    """
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise TokenInvalidError("Not authenticated")
    return auth.authenticate(credentials.credentials)
