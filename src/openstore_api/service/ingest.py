"""Turn an uploaded click into a new revision of a package.

:meth:`RevisionIngestor.create_revision_from_click` only mutates the package
object it is given. The caller must hold ``revision-{package.id}`` and is
responsible for rebuilding the compatibility index and committing the
session afterwards, so a rejected upload never persists anything.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

from openstore_api.clicks import ClickPackageInfo, ClickParseError, parse_click_package
from openstore_api.config.settings import StoreSettings, get_settings
from openstore_api.db.models import PackageRecord, RevisionRecord
from openstore_api.domain.constants import ARCH_ALL, DEFAULT_CHANNEL, ICON_EXTENSIONS
from openstore_api.domain.resolver import find_exact_revision, next_revision, revisions_for_group
from openstore_api.errors import StoreValidationError, ValidationKind
from openstore_api.sanitize import sanitize
from openstore_api.storage import (
    click_file_path,
    copy_into_place,
    icon_file_path,
    remove_quietly,
    sha512_checksum,
)

LOGGER = logging.getLogger(__name__)

ClickParser = Callable[[Path], ClickPackageInfo]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def update_from_click(package: PackageRecord, info: ClickPackageInfo) -> None:
    """Refresh manifest-derived presentation fields from a parsed click.

    ``name``, ``description`` and ``tagline`` are only filled when empty so
    edits made through the store are kept.
    """

    package.manifest = {
        "architecture": info.architecture,
        "description": info.description,
        "framework": info.framework,
        "hooks": {app.name: app.hook_payload() for app in info.apps},
        "maintainer": info.maintainer,
        "name": info.name,
        "title": info.title,
        "version": info.version,
    }
    package.author = info.maintainer
    package.types = list(info.types)
    package.version = info.version
    package.languages = list(info.languages)
    package.framework = info.framework

    package.name = package.name or info.title
    package.description = package.description or sanitize(info.description)
    package.tagline = package.tagline or sanitize(info.description)


def transition_architectures(current: list[str], architecture: str) -> list[str]:
    """Return the advertised architecture set after adding ``architecture``.

    ``all`` and specific architectures never coexist: adding one kind
    replaces the other, otherwise architectures accumulate.
    """

    if ARCH_ALL in current and architecture != ARCH_ALL:
        return [architecture]
    if ARCH_ALL not in current and architecture == ARCH_ALL:
        return [ARCH_ALL]
    if architecture not in current:
        return [*current, architecture]
    return list(current)


def _check_group(package: PackageRecord, info: ClickPackageInfo, channel: str) -> None:
    group = revisions_for_group(package, info.version, channel)
    if not group:
        return

    architectures = {revision.architecture for revision in group}
    if info.architecture == ARCH_ALL and ARCH_ALL not in architectures:
        raise StoreValidationError(ValidationKind.NO_ALL)
    if info.architecture != ARCH_ALL and ARCH_ALL in architectures:
        raise StoreValidationError(ValidationKind.NO_NON_ALL)

    first = group[0]
    if info.framework != first.framework:
        raise StoreValidationError(ValidationKind.MISMATCHED_FRAMEWORK)

    granted = set(first.permissions or [])
    if granted and not set(info.permissions).issubset(granted):
        raise StoreValidationError(ValidationKind.MISMATCHED_PERMISSIONS)


class RevisionIngestor:
    def __init__(
        self,
        *,
        settings: StoreSettings | None = None,
        parser: ClickParser | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._parser = parser or parse_click_package
        self._clock = clock or _utcnow

    def parse(self, file_path: Path) -> ClickPackageInfo:
        try:
            info = self._parser(file_path)
        except ClickParseError as exc:
            LOGGER.info("Rejecting unreadable click %s: %s", file_path, exc)
            raise StoreValidationError(ValidationKind.MALFORMED_MANIFEST) from exc
        if not info.name or not info.version or not info.architecture:
            remove_quietly(info.icon)
            raise StoreValidationError(ValidationKind.MALFORMED_MANIFEST)
        return info

    def create_revision_from_click(
        self,
        package: PackageRecord,
        file_path: Path | str,
        channel: str,
        changelog: Optional[str] = None,
    ) -> RevisionRecord:
        file_path = Path(file_path)
        info = self.parse(file_path)
        try:
            return self._ingest(package, info, file_path, channel, changelog)
        finally:
            remove_quietly(info.icon)

    def _ingest(
        self,
        package: PackageRecord,
        info: ClickPackageInfo,
        file_path: Path,
        channel: str,
        changelog: Optional[str],
    ) -> RevisionRecord:
        if info.name != package.id:
            raise StoreValidationError(ValidationKind.WRONG_PACKAGE)
        if find_exact_revision(package, info.version, channel, info.architecture) is not None:
            raise StoreValidationError(ValidationKind.EXISTING_VERSION)
        _check_group(package, info, channel)

        # Secondary channels only contribute binaries, never presentation data.
        refresh_metadata = channel == DEFAULT_CHANNEL or not package.revisions
        if refresh_metadata:
            update_from_click(package, info)

        download_sha512 = sha512_checksum(file_path)
        download_size = file_path.stat().st_size
        target = click_file_path(
            self._settings.data_dir,
            package.id,
            channel,
            info.architecture,
            info.version,
        )
        try:
            copy_into_place(file_path, target, overwrite=False)
        except FileExistsError as exc:
            LOGGER.warning("Refusing to overwrite existing artifact %s for %s", target, package.id)
            raise StoreValidationError(ValidationKind.EXISTING_VERSION) from exc
        remove_quietly(file_path)

        now = self._clock()
        revision = RevisionRecord(
            revision=next_revision(package),
            version=info.version,
            channel=channel,
            architecture=info.architecture,
            framework=info.framework,
            download_url=str(target),
            download_sha512=download_sha512,
            permissions=list(info.permissions),
            filesize=info.installed_size,
            download_size=download_size,
            downloads=0,
            created_date=now,
        )
        package.revisions.append(revision)
        package.updated_date = now

        if refresh_metadata and info.icon:
            try:
                self._replace_icon(package, Path(info.icon))
            except OSError:
                remove_quietly(target)
                raise

        if changelog:
            note = changelog.strip()
            combined = f"{note}\n\n{package.changelog}" if package.changelog else note
            package.changelog = sanitize(combined)

        channels = list(package.channels or [])
        if channel not in channels:
            package.channels = [*channels, channel]

        package.architectures = transition_architectures(
            list(package.architectures or []),
            info.architecture,
        )

        LOGGER.info(
            "Added revision %s of %s (%s, %s, %s)",
            revision.revision,
            package.id,
            info.version,
            channel,
            info.architecture,
        )
        return revision

    def _replace_icon(self, package: PackageRecord, icon: Path) -> None:
        ext = icon.suffix.lower()
        if ext not in ICON_EXTENSIONS:
            LOGGER.debug("Ignoring icon %s with unsupported extension", icon.name)
            return
        target = icon_file_path(self._settings.icon_dir, package.id, ext)
        copy_into_place(icon, target)
        package.icon = str(target)


__all__ = [
    "ClickParser",
    "RevisionIngestor",
    "transition_architectures",
    "update_from_click",
]
