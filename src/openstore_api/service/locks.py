"""Named, TTL-bounded mutual exclusion backed by a unique database column.

Workers that share one database serialize ledger mutations for a package by
holding ``revision-{package_id}``. Acquisition purges an expired row for the
name before inserting its own, so a crashed holder blocks others for at most
one TTL. This is best-effort exclusion for human-rate upload traffic; there
are no fencing tokens.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import AsyncIterator, Awaitable, Callable
from uuid import uuid4

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from openstore_api.config.settings import StoreSettings, get_settings
from openstore_api.db.models import LockRecord
from openstore_api.db.session import SessionFactory, run_in_session
from openstore_api.errors import LockReleaseError, LockTimeoutError
from openstore_api.repo.locks import LockRepository

LOGGER = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]
Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def revision_lock_name(package_id: str) -> str:
    return f"revision-{package_id}"


@dataclass(frozen=True)
class RetryPolicy:
    """How long a lock lives and how hard ``acquire`` tries to get it."""

    max_attempts: int = 100
    wait_seconds: float = 0.5
    ttl_seconds: float = 30.0

    @classmethod
    def from_settings(cls, settings: StoreSettings) -> RetryPolicy:
        return cls(
            max_attempts=settings.lock_max_retries,
            wait_seconds=settings.lock_wait_seconds,
            ttl_seconds=settings.lock_timeout_seconds,
        )


@dataclass(frozen=True)
class LockLease:
    id: str
    name: str
    expire: datetime
    inserted: datetime
    attempts: int


class LockManager:
    def __init__(
        self,
        *,
        policy: RetryPolicy | None = None,
        session_factory: SessionFactory | None = None,
        repo: LockRepository | None = None,
        sleep: Sleep | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._policy = policy or RetryPolicy.from_settings(get_settings())
        self._session_factory = session_factory
        self._repo = repo or LockRepository()
        self._sleep = sleep or asyncio.sleep
        self._clock = clock or _utcnow

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    async def acquire(self, name: str) -> LockLease:
        """Insert the lock row for ``name``, waiting while another holder has it.

        Raises :class:`LockTimeoutError` once the retry budget is spent.
        """

        for attempt in range(1, self._policy.max_attempts + 1):
            lease = self._try_insert(name, attempt)
            if lease is not None:
                LOGGER.debug("Lock %s acquired (attempt %s)", name, attempt)
                return lease
            remaining = self._policy.max_attempts - attempt
            LOGGER.debug("Lock %s exists, going to wait (retries: %s)", name, remaining)
            if remaining:
                await self._sleep(self._policy.wait_seconds)

        LOGGER.warning(
            "Gave up acquiring lock %s after %s attempts",
            name,
            self._policy.max_attempts,
        )
        raise LockTimeoutError(name, self._policy.max_attempts)

    async def release(self, lease: LockLease | None) -> None:
        """Delete the lease's row; failures are logged and never raised."""

        if lease is None:
            return
        try:
            self._delete(lease)
        except (LockReleaseError, SQLAlchemyError):
            LOGGER.error("Failed to release lock %s", lease.name, exc_info=True)

    @asynccontextmanager
    async def hold(self, name: str) -> AsyncIterator[LockLease]:
        lease = await self.acquire(name)
        try:
            yield lease
        finally:
            await self.release(lease)

    def _try_insert(self, name: str, attempt: int) -> LockLease | None:
        now = self._clock()

        def _purge(session: Session) -> int:
            return self._repo.delete_expired(name=name, now=now, session=session)

        purged = run_in_session(_purge, self._session_factory)
        if purged:
            LOGGER.info("Removed %s expired lock(s) for %s", purged, name)

        record = LockRecord(
            id=str(uuid4()),
            name=name,
            expire=now + timedelta(seconds=self._policy.ttl_seconds),
            inserted=now,
        )
        try:
            run_in_session(
                lambda session: self._repo.insert(record, session=session),
                self._session_factory,
            )
        except IntegrityError:
            return None
        return LockLease(
            id=record.id,
            name=name,
            expire=record.expire,
            inserted=record.inserted,
            attempts=attempt,
        )

    def _delete(self, lease: LockLease) -> None:
        deleted = run_in_session(
            lambda session: self._repo.delete(lease.id, session=session),
            self._session_factory,
        )
        if not deleted:
            raise LockReleaseError(f"Lock {lease.name} expired or was removed before release")


__all__ = [
    "LockLease",
    "LockManager",
    "RetryPolicy",
    "revision_lock_name",
]
