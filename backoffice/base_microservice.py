import os
import logging
from fastapi.responses import JSONResponse
from typing import Any, Dict, Optional
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError

from backoffice.errors import ConfigError

# Setup logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(message)s",
)
logger = logging.getLogger("backoffice")

Base = declarative_base()


class Settings(BaseModel):
    """
    Process configuration.

    The signing secret and the store connection string are mandatory; the
    service refuses to start without them.
    """
    jwt_secret_key: str = Field(..., min_length=1)
    database_url: str = Field(..., min_length=1)
    access_token_expire_minutes: int = Field(60, ge=0)
    bcrypt_rounds: int = Field(12, ge=4, le=31)

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "Settings":
        """
        Build settings from environment variables.

        Raises:
            ConfigError: If a required variable is missing/empty or a value is invalid
        """
        env = os.environ if environ is None else environ
        values: Dict[str, Any] = {}

        missing = [
            name for name in ("JWT_SECRET_KEY", "DATABASE_URL")
            if not env.get(name, "").strip()
        ]
        if missing:
            raise ConfigError(f"Missing required configuration: {', '.join(missing)}")

        values["jwt_secret_key"] = env["JWT_SECRET_KEY"]
        values["database_url"] = env["DATABASE_URL"].strip()
        if env.get("ACCESS_TOKEN_EXPIRE_MINUTES"):
            values["access_token_expire_minutes"] = env["ACCESS_TOKEN_EXPIRE_MINUTES"]
        if env.get("BCRYPT_ROUNDS"):
            values["bcrypt_rounds"] = env["BCRYPT_ROUNDS"]

        try:
            return cls(**values)
        except PydanticValidationError as e:
            fields = ", ".join(str(err["loc"][0]).upper() for err in e.errors())
            raise ConfigError(f"Invalid configuration: {fields}") from e


def create_engine(database_url: str) -> AsyncEngine:
    return create_async_engine(database_url, echo=False)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    """Session factory handing out one session per request."""
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


async def create_tables(engine: AsyncEngine) -> None:
    """Create every table registered on Base that does not exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


class MCPResponse(JSONResponse):
    """
    Standard MCP protocol response for informational endpoints.
    """
    def __init__(self, data: Any = None, message: str = "success", status: str = "ok", **kwargs):
        content = {
            "status": status,
            "message": message,
            "data": data,
        }
        super().__init__(content=content, **kwargs)


class BaseMicroservice:
    """
    Base class for all services. Provides:
    - Event/error logging
    - MCP protocol response
    """
    def __init__(self, name: str = "core"):
        self.name = name
        self.logger = logger

    def mcp_response(self, data: Any = None, message: str = "success", status: str = "ok"):
        """
        Return a standard MCP protocol response.
        """
        return MCPResponse(data=data, message=message, status=status)

    def log_event(self, event: str, details: Dict[str, Any] = None):
        self.logger.info(f"EVENT: {event} | Service: {self.name} | Details: {details}")

    def log_error(self, error: Exception, context: str = ""):
        self.logger.error(
            f"ERROR: {error.__class__.__name__}: {str(error)} | Service: {self.name} | Context: {context}"
        )
