"""
Authentication models for the backoffice API.

This module defines:
- The SQLAlchemy User table
- The Principal value passed between the auth components
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional
from sqlalchemy import Column, Integer, String, DateTime
from backoffice.base_microservice import Base


class User(Base):
    """User record; one row per registered principal."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    # Unique index is the only guard against duplicate registrations
    email = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    role = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)


@dataclass(frozen=True)
class Principal:
    """A registered identity as seen by the auth core."""
    email: str
    password_hash: str
    role: Optional[str] = None
    id: Optional[int] = None

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Principal":
        return cls(
            id=record["id"],
            email=record["email"],
            password_hash=record["password_hash"],
            role=record.get("role"),
        )

    def to_record(self) -> Dict[str, Any]:
        """Column values for insertion. The id is left to the store."""
        return {
            "email": self.email,
            "password_hash": self.password_hash,
            "role": self.role,
        }

    def __repr__(self) -> str:
        return f"Principal(id={self.id!r}, email={self.email!r}, role={self.role!r})"
