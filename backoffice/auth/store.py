"""
Credential storage.

The auth core only needs two operations from persistence: look a principal up
by email and insert a new one. Email uniqueness is the store's job.
"""
from typing import Optional

from backoffice.auth.models import Principal
from backoffice.database.store import RecordStore


class CredentialStore:
    """Principal persistence on top of the `users` record store."""

    def __init__(self, records: RecordStore):
        self.records = records

    async def find_by_email(self, email: str) -> Optional[Principal]:
        record = await self.records.find_one_by("email", email)
        if record is None:
            return None
        return Principal.from_record(record)

    async def insert(self, principal: Principal) -> Principal:
        """
        Insert a principal and return it with its assigned id.

        Raises:
            StoreError: On duplicate email or any storage fault
        """
        record = await self.records.insert(principal.to_record())
        return Principal.from_record(record)
