"""
Record storage.

This module provides the persistence collaborator used by every router:
- RecordStore: find/insert/update/delete keyed by identifier
- SqlAlchemyRecordStore: backed by an async SQLAlchemy session
- InMemoryRecordStore: process-local dict, used by tests and local runs

Every storage fault leaves this module as a StoreError.
"""
import itertools
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.errors import StoreError

Record = Dict[str, Any]


class RecordStore(ABC):
    """Persistence interface over one record kind."""

    @abstractmethod
    async def find(self, record_id: int) -> Optional[Record]:
        ...

    @abstractmethod
    async def find_all(self) -> List[Record]:
        ...

    @abstractmethod
    async def find_one_by(self, field: str, value: Any) -> Optional[Record]:
        ...

    @abstractmethod
    async def insert(self, values: Record) -> Record:
        """Insert a record and return it with its store-assigned fields."""

    @abstractmethod
    async def update(self, record_id: int, values: Record) -> Optional[Record]:
        """Apply values to a record. Returns None if the record does not exist."""

    @abstractmethod
    async def delete(self, record_id: int) -> bool:
        """Delete a record. Returns False if the record does not exist."""


class SqlAlchemyRecordStore(RecordStore):
    """
    RecordStore over a declarative model.

    Args:
        db: Request-scoped async session
        model: Declarative model class with an integer `id` primary key
    """
    def __init__(self, db: AsyncSession, model):
        self.db = db
        self.model = model

    def _to_dict(self, obj) -> Record:
        return {column.name: getattr(obj, column.name) for column in self.model.__table__.columns}

    async def _get(self, record_id: int):
        result = await self.db.execute(
            select(self.model).where(self.model.id == record_id)
        )
        return result.scalar_one_or_none()

    async def find(self, record_id: int) -> Optional[Record]:
        try:
            obj = await self._get(record_id)
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to read {self.model.__tablename__}") from e
        return self._to_dict(obj) if obj is not None else None

    async def find_all(self) -> List[Record]:
        try:
            result = await self.db.execute(select(self.model).order_by(self.model.id))
            rows = result.scalars().all()
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to read {self.model.__tablename__}") from e
        return [self._to_dict(row) for row in rows]

    async def find_one_by(self, field: str, value: Any) -> Optional[Record]:
        try:
            result = await self.db.execute(
                select(self.model).where(getattr(self.model, field) == value)
            )
            obj = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to read {self.model.__tablename__}") from e
        return self._to_dict(obj) if obj is not None else None

    async def insert(self, values: Record) -> Record:
        obj = self.model(**values)
        try:
            self.db.add(obj)
            await self.db.commit()
            await self.db.refresh(obj)
        except IntegrityError as e:
            await self.db.rollback()
            raise StoreError(f"Constraint violated on {self.model.__tablename__}") from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StoreError(f"Failed to write {self.model.__tablename__}") from e
        return self._to_dict(obj)

    async def update(self, record_id: int, values: Record) -> Optional[Record]:
        try:
            obj = await self._get(record_id)
            if obj is None:
                return None
            for key, value in values.items():
                setattr(obj, key, value)
            await self.db.commit()
            await self.db.refresh(obj)
        except IntegrityError as e:
            await self.db.rollback()
            raise StoreError(f"Constraint violated on {self.model.__tablename__}") from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StoreError(f"Failed to write {self.model.__tablename__}") from e
        return self._to_dict(obj)

    async def delete(self, record_id: int) -> bool:
        try:
            obj = await self._get(record_id)
            if obj is None:
                return False
            await self.db.delete(obj)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StoreError(f"Failed to delete from {self.model.__tablename__}") from e
        return True


class InMemoryRecordStore(RecordStore):
    """
    Dict-backed RecordStore.

    Assigns incrementing integer ids and a `created_at` timestamp, and
    enforces uniqueness on `unique_fields` the way a unique index would.
    """
    def __init__(self, unique_fields: Iterable[str] = ()):
        self.unique_fields = tuple(unique_fields)
        self.records: Dict[int, Record] = {}
        self._ids = itertools.count(1)

    def _check_unique(self, values: Record, exclude_id: Optional[int] = None) -> None:
        for field in self.unique_fields:
            if field not in values:
                continue
            for record_id, record in self.records.items():
                if record_id != exclude_id and record.get(field) == values[field]:
                    raise StoreError(f"Duplicate value for unique field '{field}'")

    async def find(self, record_id: int) -> Optional[Record]:
        record = self.records.get(record_id)
        return dict(record) if record is not None else None

    async def find_all(self) -> List[Record]:
        return [dict(self.records[record_id]) for record_id in sorted(self.records)]

    async def find_one_by(self, field: str, value: Any) -> Optional[Record]:
        for record in self.records.values():
            if record.get(field) == value:
                return dict(record)
        return None

    async def insert(self, values: Record) -> Record:
        self._check_unique(values)
        record_id = next(self._ids)
        record = {"created_at": datetime.utcnow(), **values, "id": record_id}
        self.records[record_id] = record
        return dict(record)

    async def update(self, record_id: int, values: Record) -> Optional[Record]:
        record = self.records.get(record_id)
        if record is None:
            return None
        self._check_unique(values, exclude_id=record_id)
        record.update({k: v for k, v in values.items() if k != "id"})
        return dict(record)

    async def delete(self, record_id: int) -> bool:
        return self.records.pop(record_id, None) is not None
