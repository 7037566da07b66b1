from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import os
from contextlib import asynccontextmanager

from backoffice.base_microservice import BaseMicroservice, Settings
from backoffice.auth.router import router as auth_router, start_auth_service
from backoffice.database.router import (
    router as database_router, start_database_service, stop_database_service
)
from backoffice.errors import TokenError

API_VERSION = "0.1.0"

# Create shared base service instance
base_service = BaseMicroservice("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for FastAPI.

    Configuration is loaded before anything else. A ConfigError (or a store
    that cannot be reached) propagates and aborts startup, so the process
    never serves a request half-configured.
    """
    settings = Settings.from_env()
    app.state.settings = settings

    await start_database_service(app, settings)
    try:
        await start_auth_service(app, settings)
    except Exception as e:
        base_service.log_error(e, context="Service startup")
        await stop_database_service(app)
        raise
    base_service.log_event("service.startup", {"service": "main", "version": API_VERSION})

    yield

    await stop_database_service(app)
    base_service.log_event("service.shutdown", {"service": "main"})


# Create main FastAPI app with lifespan
app = FastAPI(
    title="Backoffice API",
    description="Administrative backend: authentication and CRUD for users and services",
    version=API_VERSION,
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(TokenError)
async def token_error_handler(request: Request, exc: TokenError):
    """Missing, invalid or expired bearer credentials."""
    return JSONResponse(
        status_code=401,
        content={"message": str(exc)},
        headers={"WWW-Authenticate": "Bearer"},
    )


# Include routers with prefixes
app.include_router(auth_router, prefix="/api/auth", tags=["auth"])
app.include_router(database_router, prefix="/api", tags=["database"])


@app.get("/", tags=["root"])
async def root():
    """Root endpoint returning API information."""
    return base_service.mcp_response(
        message="Backoffice API",
        data={
            "name": "Backoffice API",
            "version": API_VERSION,
            "services": ["auth", "users", "services"],
        }
    )


@app.get("/health", tags=["health"])
async def health_check():
    """Overall system health check."""
    return base_service.mcp_response(
        message="System health",
        data={
            "services": {
                "auth": "online",
                "database": "online"
            }
        }
    )


# For running directly with uvicorn
if __name__ == "__main__":
    import uvicorn
    uvicorn.run("backoffice.main:app", host="0.0.0.0", port=8000, reload=True)
