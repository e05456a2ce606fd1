"""Repository for store accounts."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from openstore_api.db.models import UserRecord


class UserRepository:
    def get_by_apikey(self, apikey: str, *, session: Session) -> UserRecord | None:
        stmt = select(UserRecord).where(UserRecord.apikey == apikey)
        return session.execute(stmt).scalars().first()

    def get(self, user_id: str, *, session: Session) -> UserRecord | None:
        return session.get(UserRecord, user_id)
