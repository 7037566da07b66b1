from fastapi import APIRouter, Depends, FastAPI, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

from backoffice.base_microservice import (
    BaseMicroservice, Settings, create_engine, create_session_factory, create_tables
)
from backoffice.auth.users import UserOut
from backoffice.database.store import InMemoryRecordStore, RecordStore
from backoffice.dependencies import get_current_user, get_service_records, get_user_records
from backoffice.errors import StoreError

# Every CRUD route requires a bearer token
router = APIRouter(dependencies=[Depends(get_current_user)])
db_service = BaseMicroservice("database")

MEMORY_URL_PREFIX = "memory://"


class UserUpdate(BaseModel):
    """Fields of a user that CRUD may change. Credentials are not among them."""
    role: Optional[str] = None


class ServiceCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)


class ServiceUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)


class ServiceOut(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    price: Optional[float] = None
    created_at: Optional[datetime] = None


async def start_database_service(app: FastAPI, settings: Settings):
    """
    Connect the record stores.

    A `memory://` URL keeps every record in process memory; anything else is
    handed to SQLAlchemy and the tables are created if missing.
    """
    if settings.database_url.startswith(MEMORY_URL_PREFIX):
        app.state.engine = None
        app.state.session_factory = None
        app.state.memory_stores = {
            "users": InMemoryRecordStore(unique_fields=("email",)),
            "services": InMemoryRecordStore(),
        }
        db_service.log_event("service.startup", {"service": "database", "backend": "memory"})
        return

    # Tables must be registered on Base before create_all
    from backoffice.auth.models import User  # noqa: F401
    from backoffice.database.models import Service  # noqa: F401

    engine = create_engine(settings.database_url)
    try:
        await create_tables(engine)
    except Exception as e:
        db_service.log_error(e, context="Database service startup")
        await engine.dispose()
        raise StoreError("Could not connect to the database") from e
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    app.state.memory_stores = None
    db_service.log_event("service.startup", {"service": "database", "backend": engine.dialect.name})


async def stop_database_service(app: FastAPI):
    engine = getattr(app.state, "engine", None)
    if engine is not None:
        await engine.dispose()
    db_service.log_event("service.shutdown", {"service": "database"})


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


# --- Users ---

@router.get("/users")
async def get_users(records: RecordStore = Depends(get_user_records)):
    """List all users."""
    try:
        users = await records.find_all()
    except Exception as e:
        db_service.log_error(e, context="Failed to get users")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to get users")
    return [UserOut.model_validate(user).model_dump(mode="json") for user in users]


@router.get("/users/{user_id}")
async def get_user(user_id: int, records: RecordStore = Depends(get_user_records)):
    """Get a specific user by id."""
    try:
        user = await records.find(user_id)
    except Exception as e:
        db_service.log_error(e, context=f"Failed to get user: {user_id}")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to get user")

    if user is None:
        return _error(status.HTTP_404_NOT_FOUND, f"User {user_id} not found")
    return UserOut.model_validate(user).model_dump(mode="json")


@router.put("/users/{user_id}")
async def update_user(
    user_id: int,
    update_data: UserUpdate,
    records: RecordStore = Depends(get_user_records)
):
    """Update the non-credential fields of a user."""
    try:
        user = await records.update(user_id, update_data.model_dump(exclude_unset=True))
    except Exception as e:
        db_service.log_error(e, context=f"Failed to update user: {user_id}")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to update user")

    if user is None:
        return _error(status.HTTP_404_NOT_FOUND, f"User {user_id} not found")
    db_service.log_event("user.updated", {
        "id": user_id,
        "fields_updated": list(update_data.model_dump(exclude_unset=True).keys())
    })
    return UserOut.model_validate(user).model_dump(mode="json")


@router.delete("/users/{user_id}")
async def delete_user(user_id: int, records: RecordStore = Depends(get_user_records)):
    """Delete a user."""
    try:
        deleted = await records.delete(user_id)
    except Exception as e:
        db_service.log_error(e, context=f"Failed to delete user: {user_id}")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to delete user")

    if not deleted:
        return _error(status.HTTP_404_NOT_FOUND, f"User {user_id} not found")
    db_service.log_event("user.deleted", {"id": user_id})
    return {"message": f"User {user_id} deleted successfully"}


# --- Services ---

@router.get("/services")
async def get_services(records: RecordStore = Depends(get_service_records)):
    """List all services."""
    try:
        services = await records.find_all()
    except Exception as e:
        db_service.log_error(e, context="Failed to get services")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to get services")
    return [ServiceOut.model_validate(service).model_dump(mode="json") for service in services]


@router.get("/services/{service_id}")
async def get_service(service_id: int, records: RecordStore = Depends(get_service_records)):
    """Get a specific service by id."""
    try:
        service = await records.find(service_id)
    except Exception as e:
        db_service.log_error(e, context=f"Failed to get service: {service_id}")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to get service")

    if service is None:
        return _error(status.HTTP_404_NOT_FOUND, f"Service {service_id} not found")
    return ServiceOut.model_validate(service).model_dump(mode="json")


@router.post("/services", status_code=status.HTTP_201_CREATED)
async def create_service(
    service_data: ServiceCreate,
    records: RecordStore = Depends(get_service_records)
):
    """Create a new service."""
    try:
        service = await records.insert(service_data.model_dump())
    except Exception as e:
        db_service.log_error(e, context=f"Failed to create service: {service_data.name}")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to create service")

    db_service.log_event("service.created", {"id": service["id"], "name": service["name"]})
    return ServiceOut.model_validate(service).model_dump(mode="json")


@router.put("/services/{service_id}")
async def update_service(
    service_id: int,
    update_data: ServiceUpdate,
    records: RecordStore = Depends(get_service_records)
):
    """Update an existing service."""
    update_values = update_data.model_dump(exclude_unset=True)
    # name is NOT NULL; an explicit null means "leave it"
    if update_values.get("name", "") is None:
        del update_values["name"]
    try:
        service = await records.update(service_id, update_values)
    except Exception as e:
        db_service.log_error(e, context=f"Failed to update service: {service_id}")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to update service")

    if service is None:
        return _error(status.HTTP_404_NOT_FOUND, f"Service {service_id} not found")
    db_service.log_event("service.updated", {"id": service_id, "fields_updated": list(update_values)})
    return ServiceOut.model_validate(service).model_dump(mode="json")


@router.delete("/services/{service_id}")
async def delete_service(service_id: int, records: RecordStore = Depends(get_service_records)):
    """Delete a service."""
    try:
        deleted = await records.delete(service_id)
    except Exception as e:
        db_service.log_error(e, context=f"Failed to delete service: {service_id}")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to delete service")

    if not deleted:
        return _error(status.HTTP_404_NOT_FOUND, f"Service {service_id} not found")
    db_service.log_event("service.deleted", {"id": service_id})
    return {"message": f"Service {service_id} deleted successfully"}
