"""Repository for packages and their revision ledger."""

from __future__ import annotations

from typing import Iterable

from sqlalchemy import select, update
from sqlalchemy.orm import Session, selectinload

from openstore_api.db.models import PackageRecord, RevisionRecord


class PackageRepository:
    def get(
        self,
        package_id: str,
        *,
        session: Session,
        published_only: bool = False,
    ) -> PackageRecord | None:
        stmt = (
            select(PackageRecord)
            .where(PackageRecord.id == package_id)
            .options(selectinload(PackageRecord.revisions))
        )
        if published_only:
            stmt = stmt.where(PackageRecord.published.is_(True))
        return session.execute(stmt).scalars().first()

    def list(
        self,
        *,
        session: Session,
        ids: Iterable[str] | None = None,
        published_only: bool = False,
    ) -> list[PackageRecord]:
        stmt = select(PackageRecord).options(selectinload(PackageRecord.revisions))
        if ids is not None:
            stmt = stmt.where(PackageRecord.id.in_(list(ids)))
        if published_only:
            stmt = stmt.where(PackageRecord.published.is_(True))
        stmt = stmt.order_by(PackageRecord.id)
        return list(session.execute(stmt).scalars().all())

    def save(self, package: PackageRecord, *, session: Session) -> None:
        session.add(package)

    def increment_download(
        self,
        *,
        package_id: str,
        revision: int,
        session: Session,
    ) -> int:
        stmt = (
            update(RevisionRecord)
            .where(
                RevisionRecord.package_id == package_id,
                RevisionRecord.revision == revision,
            )
            .values(downloads=RevisionRecord.downloads + 1)
        )
        return session.execute(stmt).rowcount or 0
