from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from openstore_api.clicks import ClickPackageInfo
from openstore_api.config.settings import StoreSettings
from openstore_api.db import models  # noqa: F401
from openstore_api.db.base import Base
from openstore_api.db.models import PackageRecord, RevisionRecord, UserRecord
from openstore_api.security import ROLE_ADMIN, ROLE_COMMUNITY, ROLE_TRUSTED, Actor
from openstore_api.service.ingest import RevisionIngestor
from openstore_api.service.locks import LockLease, LockManager, RetryPolicy
from openstore_api.service.revisions import RevisionService, RevisionUpload

FRAMEWORK = "ubuntu-sdk-16.04"


class RecordingSleep:
    """Stand-in for ``asyncio.sleep`` that only yields to the loop."""

    def __init__(self) -> None:
        self.calls: List[float] = []
        self.hooks: List[Callable[[], Any]] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        if self.hooks:
            hook = self.hooks.pop(0)
            result = hook()
            if asyncio.iscoroutine(result):
                await result
        await asyncio.sleep(0)


class CountingLockManager(LockManager):
    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.acquired: List[str] = []
        self.released: List[Optional[LockLease]] = []

    async def acquire(self, name: str) -> LockLease:
        lease = await super().acquire(name)
        self.acquired.append(name)
        return lease

    async def release(self, lease: Optional[LockLease]) -> None:
        self.released.append(lease)
        await super().release(lease)


class FakeParser:
    """Return pre-registered parse results keyed by upload path."""

    def __init__(self) -> None:
        self.results: Dict[str, ClickPackageInfo] = {}
        self.calls: List[Path] = []

    def register(self, path: Path, **fields: Any) -> ClickPackageInfo:
        fields.setdefault("framework", FRAMEWORK)
        info = ClickPackageInfo(**fields)
        self.results[str(path)] = info
        return info

    def __call__(self, path: Path) -> ClickPackageInfo:
        self.calls.append(Path(path))
        return self.results[str(path)]


class FakeReviewer:
    def __init__(self) -> None:
        self.calls: List[Path] = []
        self.error: Optional[Exception] = None

    async def review(self, path: Path) -> None:
        self.calls.append(Path(path))
        # Give concurrent uploads a chance to interleave while the lock is held.
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error


class FakeSearchIndex:
    def __init__(self) -> None:
        self.documents: List[Dict[str, Any]] = []

    def upsert(self, document: Dict[str, Any]) -> None:
        self.documents.append(document)


@pytest.fixture()
def settings(tmp_path: Path) -> StoreSettings:
    return StoreSettings(
        database_url=f"sqlite:///{(tmp_path / 'store.db').as_posix()}",
        server_host="https://open-store.test",
        data_dir=tmp_path / "clicks",
        icon_dir=tmp_path / "icons",
        upload_dir=tmp_path / "uploads",
    )


@pytest.fixture()
def engine(settings: StoreSettings):
    engine = create_engine(settings.database_url, connect_args={"check_same_thread": False})
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture()
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture()
def policy() -> RetryPolicy:
    return RetryPolicy(max_attempts=5, wait_seconds=0.5, ttl_seconds=30.0)


@pytest.fixture()
def lock_manager(policy: RetryPolicy, session_factory, sleep: RecordingSleep) -> CountingLockManager:
    return CountingLockManager(policy=policy, session_factory=session_factory, sleep=sleep)


@pytest.fixture()
def parser() -> FakeParser:
    return FakeParser()


@pytest.fixture()
def reviewer() -> FakeReviewer:
    return FakeReviewer()


@pytest.fixture()
def search_index() -> FakeSearchIndex:
    return FakeSearchIndex()


@pytest.fixture()
def ingestor(settings: StoreSettings, parser: FakeParser) -> RevisionIngestor:
    return RevisionIngestor(settings=settings, parser=parser)


@pytest.fixture()
def service(
    settings: StoreSettings,
    session_factory,
    lock_manager: CountingLockManager,
    ingestor: RevisionIngestor,
    reviewer: FakeReviewer,
    search_index: FakeSearchIndex,
) -> RevisionService:
    return RevisionService(
        settings=settings,
        session_factory=session_factory,
        lock_manager=lock_manager,
        ingestor=ingestor,
        reviewer=reviewer,
        search_index=search_index,
    )


@pytest.fixture()
def make_upload(tmp_path: Path) -> Callable[..., Path]:
    counter = {"value": 0}

    def _make(content: bytes = b"click-bytes") -> Path:
        counter["value"] += 1
        upload_dir = tmp_path / "uploads"
        upload_dir.mkdir(parents=True, exist_ok=True)
        path = upload_dir / f"upload-{counter['value']}.click"
        path.write_bytes(content)
        return path

    return _make


@pytest.fixture()
def make_revision() -> Callable[..., RevisionRecord]:
    def _make(
        revision: int,
        version: str,
        channel: str,
        architecture: str,
        *,
        framework: Optional[str] = FRAMEWORK,
        permissions: Optional[List[str]] = None,
        download_url: Optional[str] = "/srv/clicks/file.click",
        downloads: int = 0,
    ) -> RevisionRecord:
        return RevisionRecord(
            revision=revision,
            version=version,
            channel=channel,
            architecture=architecture,
            framework=framework,
            download_url=download_url,
            download_sha512="sha",
            permissions=list(permissions or []),
            filesize=10,
            download_size=2048,
            downloads=downloads,
        )

    return _make


@pytest.fixture()
def make_package() -> Callable[..., PackageRecord]:
    def _make(package_id: str = "openstore-test.openstore-team", **fields: Any) -> PackageRecord:
        revisions = fields.pop("revisions", [])
        fields.setdefault("architectures", [])
        fields.setdefault("channels", [])
        fields.setdefault("channel_architectures", [])
        fields.setdefault("device_compatibilities", [])
        fields.setdefault("types", [])
        fields.setdefault("languages", [])
        fields.setdefault("published", False)
        fields.setdefault("locked", False)
        package = PackageRecord(id=package_id, **fields)
        for revision in revisions:
            package.revisions.append(revision)
        return package

    return _make


@pytest.fixture()
def store_package(session_factory):
    def _store(package: PackageRecord) -> PackageRecord:
        with session_factory() as session:
            session.add(package)
            session.commit()
        return package

    return _store


@pytest.fixture()
def load_package(session_factory):
    from openstore_api.repo.packages import PackageRepository

    repo = PackageRepository()

    def _load(package_id: str) -> Optional[PackageRecord]:
        with session_factory() as session:
            return repo.get(package_id, session=session)

    return _load


@pytest.fixture()
def maintainer() -> Actor:
    return Actor(id="maintainer-1", username="maintainer", role=ROLE_COMMUNITY)


@pytest.fixture()
def trusted_user() -> Actor:
    return Actor(id="trusted-1", username="trusted", role=ROLE_TRUSTED)


@pytest.fixture()
def admin() -> Actor:
    return Actor(id="admin-1", username="admin", role=ROLE_ADMIN)


@pytest.fixture()
def store_user(session_factory):
    def _store(actor: Actor, apikey: str) -> UserRecord:
        user = UserRecord(id=actor.id, username=actor.username, role=actor.role, apikey=apikey)
        with session_factory() as session:
            session.add(user)
            session.commit()
        return user

    return _store


def upload_for(path: Path, channel: str = "xenial", changelog: Optional[str] = None, filename: Optional[str] = None) -> RevisionUpload:
    return RevisionUpload(path=path, filename=filename or path.name, channel=channel, changelog=changelog)


@pytest.fixture()
def make_revision_upload() -> Callable[..., RevisionUpload]:
    return upload_for
