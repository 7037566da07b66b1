"""
Authentication router.

This module provides FastAPI router for authentication endpoints:
- User registration
- User login
- Current user lookup from the bearer token
"""
from datetime import timedelta
from fastapi import APIRouter, Depends, FastAPI, status
from fastapi.responses import JSONResponse

from backoffice.base_microservice import BaseMicroservice, Settings
from backoffice.auth.jwt import TokenIssuer
from backoffice.auth.passwords import PasswordHasher
from backoffice.auth.users import AuthService, Credentials, UserOut
from backoffice.database.store import RecordStore
from backoffice.dependencies import get_auth_service, get_current_user, get_user_records
from backoffice.errors import (
    AuthError, CredentialValidationError, InvalidCredentialsError
)

# Create router
router = APIRouter(tags=["auth"])

# Create service instance
base_service = BaseMicroservice("auth")

INVALID_CREDENTIALS_MESSAGE = "Invalid credentials"


async def start_auth_service(app: FastAPI, settings: Settings):
    """
    Build the token issuer and password hasher for the app.

    Raises:
        ConfigError: If the signing secret is unusable
    """
    app.state.token_issuer = TokenIssuer(
        settings.jwt_secret_key,
        ttl=timedelta(minutes=settings.access_token_expire_minutes),
    )
    app.state.password_hasher = PasswordHasher(rounds=settings.bcrypt_rounds)
    base_service.log_event("service.startup", {
        "service": "auth",
        "token_ttl_minutes": settings.access_token_expire_minutes,
    })


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register_user(
    credentials: Credentials,
    auth: AuthService = Depends(get_auth_service)
):
    """
    Register a new user.

    Returns 201 with a message; no token and no password material.
    Store failures, duplicate emails included, are a generic 500.
    """
    try:
        principal = await auth.register(credentials.email, credentials.password)
    except CredentialValidationError as e:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": str(e)}
        )
    except AuthError as e:
        base_service.log_error(e, context="User registration")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Registration failed"}
        )

    base_service.log_event("user.registered", {"id": principal.id})
    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content={"message": "User registered successfully"}
    )


@router.post("/login")
async def login(
    credentials: Credentials,
    auth: AuthService = Depends(get_auth_service)
):
    """
    Authenticate a user and return a bearer token.

    Unknown email and wrong password share one response.
    """
    try:
        token = await auth.login(credentials.email, credentials.password)
    except CredentialValidationError as e:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": str(e)}
        )
    except InvalidCredentialsError:
        base_service.log_event("user.login.failed")
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"message": INVALID_CREDENTIALS_MESSAGE}
        )
    except AuthError as e:
        base_service.log_error(e, context="User login")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Login failed"}
        )

    base_service.log_event("user.login")
    return {"token": token}


@router.get("/me")
async def get_current_user_info(
    user_id: int = Depends(get_current_user),
    records: RecordStore = Depends(get_user_records)
):
    """
    Get information about the user the bearer token was issued to.
    """
    try:
        record = await records.find(user_id)
    except Exception as e:
        base_service.log_error(e, context="Get current user")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Failed to get user information"}
        )

    if record is None:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"error": "User not found"}
        )
    return UserOut.model_validate(record).model_dump(mode="json")
