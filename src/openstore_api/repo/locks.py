"""Repository for revision lock rows."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import delete
from sqlalchemy.orm import Session

from openstore_api.db.models import LockRecord


class LockRepository:
    def delete_expired(self, *, name: str, now: datetime, session: Session) -> int:
        stmt = delete(LockRecord).where(
            LockRecord.name == name,
            LockRecord.expire < now,
        )
        return session.execute(stmt).rowcount or 0

    def insert(self, record: LockRecord, *, session: Session) -> None:
        session.add(record)
        session.flush()

    def delete(self, lock_id: str, *, session: Session) -> int:
        stmt = delete(LockRecord).where(LockRecord.id == lock_id)
        return session.execute(stmt).rowcount or 0
