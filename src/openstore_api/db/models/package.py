"""ORM models for store packages and their revision ledger."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PackageRecord(Base):
    """Aggregate root for a published app; owns its revision ledger."""

    __tablename__ = "packages"
    __table_args__ = (
        Index("ix_packages_maintainer", "maintainer"),
        Index("ix_packages_published", "published"),
    )

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    tagline: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    changelog: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    author: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    framework: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    version: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    manifest: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    types: Mapped[list[str]] = mapped_column(JSON, default=list)
    languages: Mapped[list[str]] = mapped_column(JSON, default=list)
    icon: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)

    maintainer: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    maintainer_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    published: Mapped[bool] = mapped_column(Boolean, default=False)
    locked: Mapped[bool] = mapped_column(Boolean, default=False)

    architectures: Mapped[list[str]] = mapped_column(JSON, default=list)
    channels: Mapped[list[str]] = mapped_column(JSON, default=list)
    channel_architectures: Mapped[list[str]] = mapped_column(JSON, default=list)
    device_compatibilities: Mapped[list[str]] = mapped_column(JSON, default=list)

    created_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    published_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    revisions: Mapped[list["RevisionRecord"]] = relationship(
        "RevisionRecord",
        back_populates="package",
        cascade="all, delete-orphan",
        order_by="RevisionRecord.revision",
    )


class RevisionRecord(Base):
    """One immutable click artifact of a package for a channel and architecture."""

    __tablename__ = "package_revisions"
    __table_args__ = (
        UniqueConstraint("package_id", "revision", name="uq_package_revision_number"),
        UniqueConstraint(
            "package_id",
            "version",
            "channel",
            "architecture",
            name="uq_package_revision_version_channel_arch",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    package_id: Mapped[str] = mapped_column(
        String(255),
        ForeignKey("packages.id", ondelete="CASCADE"),
        index=True,
    )
    revision: Mapped[int] = mapped_column(Integer, nullable=False)
    version: Mapped[str] = mapped_column(String(128), nullable=False)
    channel: Mapped[str] = mapped_column(String(32), nullable=False)
    architecture: Mapped[str] = mapped_column(String(128), nullable=False)
    framework: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    download_url: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    download_sha512: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    permissions: Mapped[list[str]] = mapped_column(JSON, default=list)
    filesize: Mapped[int] = mapped_column(Integer, default=0)
    download_size: Mapped[int] = mapped_column(Integer, default=0)
    downloads: Mapped[int] = mapped_column(Integer, default=0)
    created_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    package: Mapped[PackageRecord] = relationship("PackageRecord", back_populates="revisions")
