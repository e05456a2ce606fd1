"""Upload, download and lookup operations over package revisions."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from openstore_api.clicks import ClickReviewer
from openstore_api.config.settings import StoreSettings, get_settings
from openstore_api.db.models import PackageRecord
from openstore_api.db.session import SessionFactory, run_in_session
from openstore_api.domain.compatibility import update_calculated_properties
from openstore_api.domain.constants import (
    ARCH_ALL,
    ARCHITECTURES,
    CHANNELS,
    CLICK_EXTENSION,
    DEFAULT_CHANNEL,
    Architecture,
)
from openstore_api.domain.resolver import get_latest_revision
from openstore_api.errors import (
    APP_LOCKED,
    APP_NOT_FOUND,
    DOWNLOAD_NOT_FOUND_FOR_CHANNEL,
    INVALID_ARCH,
    PERMISSION_DENIED,
    UPLOAD_FAILED,
    AuthorizationError,
    BadRequestError,
    NotFoundError,
    StoreError,
    StoreValidationError,
    ValidationKind,
)
from openstore_api.repo.packages import PackageRepository
from openstore_api.security import Actor
from openstore_api.storage import remove_quietly

from .ingest import RevisionIngestor
from .locks import LockLease, LockManager, revision_lock_name
from .search import PackageSearchIndex, search_document
from .serializer import download_url, serialize_package

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class RevisionUpload:
    """A click spooled to local disk by the HTTP layer."""

    path: Optional[Path]
    filename: Optional[str]
    channel: Optional[str]
    changelog: Optional[str] = None


@dataclass(frozen=True)
class DownloadTarget:
    package_id: str
    path: Path
    filename: str
    revision: int
    index: int


class RevisionService:
    def __init__(
        self,
        *,
        settings: StoreSettings | None = None,
        session_factory: SessionFactory | None = None,
        lock_manager: LockManager | None = None,
        ingestor: RevisionIngestor | None = None,
        reviewer: ClickReviewer | None = None,
        search_index: PackageSearchIndex | None = None,
        repo: PackageRepository | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._session_factory = session_factory
        self._locks = lock_manager or LockManager(session_factory=session_factory)
        self._ingestor = ingestor or RevisionIngestor(settings=self._settings)
        self._reviewer = reviewer or ClickReviewer(self._settings)
        self._search_index = search_index
        self._repo = repo or PackageRepository()

    @property
    def settings(self) -> StoreSettings:
        return self._settings

    async def upload_revision(self, package_id: str, upload: RevisionUpload, actor: Actor) -> Dict[str, Any]:
        """Validate ``upload`` and append it to the package ledger.

        The revision lock is held from before the package is loaded until the
        ledger is committed, and released on every exit path.
        """

        if upload.path is None:
            raise StoreValidationError(ValidationKind.NO_FILE)
        channel = (upload.channel or "").lower()
        if channel not in CHANNELS:
            remove_quietly(upload.path)
            raise StoreValidationError(ValidationKind.INVALID_CHANNEL)

        lease: LockLease | None = None
        stored: List[str] = []
        try:
            lease = await self._locks.acquire(revision_lock_name(package_id))
            run_in_session(
                lambda session: self._check_access(package_id, actor, session),
                self._session_factory,
            )

            if not (upload.filename or "").endswith(CLICK_EXTENSION):
                raise StoreValidationError(ValidationKind.BAD_FILE)

            if not actor.is_admin and not actor.is_trusted:
                await self._reviewer.review(upload.path)

            def _ingest(session: Session) -> tuple[Dict[str, Any], Optional[Dict[str, Any]]]:
                package = self._load(package_id, session)
                revision = self._ingestor.create_revision_from_click(
                    package,
                    upload.path,
                    channel,
                    upload.changelog,
                )
                if revision.download_url:
                    stored.append(revision.download_url)
                update_calculated_properties(package)
                self._repo.save(package, session=session)
                session.flush()
                document = search_document(package) if package.published else None
                return serialize_package(package, settings=self._settings), document

            try:
                payload, document = run_in_session(_ingest, self._session_factory)
            except Exception:
                # Nothing was committed, so the copied artifact belongs to no revision
                for path in stored:
                    remove_quietly(path)
                raise
        except StoreError:
            raise
        except Exception as exc:
            LOGGER.exception("Error updating package %s", package_id)
            raise StoreError(UPLOAD_FAILED) from exc
        finally:
            await self._locks.release(lease)
            remove_quietly(upload.path)

        if document is not None and self._search_index is not None:
            try:
                self._search_index.upsert(document)
            except Exception:
                LOGGER.exception("Failed to update search index for %s", package_id)
        return payload

    def download_revision(
        self,
        package_id: str,
        channel: Optional[str],
        architecture: Optional[str],
        version: Optional[str] = None,
    ) -> DownloadTarget:
        channel = (channel or DEFAULT_CHANNEL).lower()
        if channel not in CHANNELS:
            raise StoreValidationError(ValidationKind.INVALID_CHANNEL)
        architecture = (architecture or Architecture.ARMHF.value).lower()
        if architecture not in ARCHITECTURES:
            raise BadRequestError(INVALID_ARCH)
        if version == "latest":
            version = None

        def _resolve(session: Session) -> DownloadTarget:
            package = self._repo.get(package_id, session=session, published_only=True)
            if package is None:
                raise NotFoundError(APP_NOT_FOUND)
            match = get_latest_revision(package, channel, architecture, version=version)
            if not match.found or not match.revision.download_url:
                raise NotFoundError(DOWNLOAD_NOT_FOUND_FOR_CHANNEL)
            return DownloadTarget(
                package_id=package.id,
                path=Path(match.revision.download_url),
                filename=f"{package.id}_{match.revision.version}_{architecture}.click",
                revision=match.revision.revision,
                index=match.index,
            )

        target = run_in_session(_resolve, self._session_factory)
        if not target.path.is_file():
            LOGGER.warning("Revision file %s of %s is missing on disk", target.path, package_id)
            raise NotFoundError(DOWNLOAD_NOT_FOUND_FOR_CHANNEL)
        return target

    def increment_download(self, target: DownloadTarget) -> None:
        """Count one download; runs without the revision lock."""

        try:
            updated = run_in_session(
                lambda session: self._repo.increment_download(
                    package_id=target.package_id,
                    revision=target.revision,
                    session=session,
                ),
                self._session_factory,
            )
        except Exception:
            LOGGER.exception("Failed to count download of %s revision %s", target.package_id, target.revision)
            return
        if not updated:
            LOGGER.warning(
                "Download counter for %s revision %s (position %s) not found",
                target.package_id,
                target.revision,
                target.index,
            )

    def revisions_by_version(
        self,
        apps: Iterable[str],
        *,
        channel: Optional[str] = None,
        architecture: Optional[str] = None,
        frameworks: Optional[Iterable[str]] = None,
    ) -> List[Dict[str, Any]]:
        """Report installed vs latest revisions for ``id@version[@channel]`` tokens."""

        requested: Dict[str, tuple[str, Optional[str]]] = {}
        for token in apps:
            parts = token.split("@")
            if len(parts) < 2 or not parts[0] or parts[0] in requested:
                continue
            requested[parts[0]] = (parts[1], parts[2] if len(parts) > 2 else None)
        if not requested:
            return []

        default = (channel or "").lower()
        if default not in CHANNELS:
            default = DEFAULT_CHANNEL
        architecture = (architecture or "").lower()
        if architecture not in ARCHITECTURES:
            architecture = Architecture.ARMHF.value
        framework_list = [framework for framework in frameworks or [] if framework]

        def _report(session: Session) -> List[Dict[str, Any]]:
            packages = self._repo.list(session=session, ids=requested.keys(), published_only=True)
            results: List[Dict[str, Any]] = []
            for package in packages:
                if framework_list and package.framework not in framework_list:
                    continue
                architectures = package.architectures or []
                if architecture not in architectures and ARCH_ALL not in architectures:
                    continue

                version, package_channel = requested[package.id]
                package_channel = package_channel or default
                current = next(
                    (
                        revision
                        for revision in package.revisions
                        if revision.version == version
                        and revision.channel == package_channel
                        and revision.architecture in (architecture, ARCH_ALL)
                    ),
                    None,
                )
                latest = get_latest_revision(package, package_channel, architecture)
                if not latest.found or not latest.revision.download_url:
                    continue
                results.append(
                    {
                        "id": package.id,
                        "version": version,
                        "revision": current.revision if current else 0,
                        "latest_version": latest.revision.version,
                        "latest_revision": latest.revision.revision,
                        "download_url": download_url(
                            package,
                            package_channel,
                            architecture,
                            settings=self._settings,
                        ),
                    }
                )
            return results

        return run_in_session(_report, self._session_factory)

    def _load(self, package_id: str, session: Session) -> PackageRecord:
        package = self._repo.get(package_id, session=session)
        if package is None:
            raise NotFoundError(APP_NOT_FOUND)
        return package

    def _check_access(self, package_id: str, actor: Actor, session: Session) -> None:
        package = self._load(package_id, session)
        if not actor.can_manage(package.maintainer):
            raise AuthorizationError(PERMISSION_DENIED)
        if not actor.is_admin and package.locked:
            raise AuthorizationError(APP_LOCKED)


__all__ = ["DownloadTarget", "RevisionService", "RevisionUpload"]
