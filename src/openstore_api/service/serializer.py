"""Public JSON representation of a package and its downloads."""

from __future__ import annotations

from datetime import datetime
from pathlib import PurePath
from typing import Any, Dict, List, Optional

from openstore_api.config.settings import StoreSettings, get_settings
from openstore_api.db.models import PackageRecord, RevisionRecord
from openstore_api.domain.constants import ARCH_ALL, ARCHITECTURES, CHANNELS, DEFAULT_CHANNEL
from openstore_api.domain.resolver import get_latest_revision

DEFAULT_VERSION = "0.0.0"


def _to_bytes(filesize: Optional[int]) -> int:
    return (filesize or 0) * 1024


def _isoformat(value: Optional[datetime]) -> str:
    return value.isoformat() if value else ""


def _base_url(settings: StoreSettings) -> str:
    return settings.server_host.rstrip("/")


def default_channel(package: PackageRecord) -> str:
    channels = package.channels or []
    if DEFAULT_CHANNEL not in channels and channels:
        return channels[0]
    return DEFAULT_CHANNEL


def download_url(
    package: PackageRecord,
    channel: str,
    architecture: str,
    version: Optional[str] = None,
    *,
    settings: StoreSettings | None = None,
) -> str:
    settings = settings or get_settings()
    url = f"{_base_url(settings)}/api/v3/apps/{package.id}/download/{channel}/{architecture}"
    if version:
        url = f"{url}/{version}"
    return url


def icon_url(package: PackageRecord, *, settings: StoreSettings | None = None) -> str:
    settings = settings or get_settings()
    ext = PurePath(package.icon).suffix if package.icon else ".png"
    match = get_latest_revision(package, default_channel(package))
    version = match.revision.version if match.found else DEFAULT_VERSION
    return f"{_base_url(settings)}/icons/{package.id}/{package.id}-{version}{ext}"


def _revision_payload(revision: RevisionRecord) -> Dict[str, Any]:
    return {
        "revision": revision.revision,
        "version": revision.version,
        "channel": revision.channel,
        "architecture": revision.architecture,
        "framework": revision.framework or "",
        "download_sha512": revision.download_sha512 or "",
        "permissions": list(revision.permissions or []),
        "filesize": _to_bytes(revision.filesize),
        "download_size": revision.download_size or 0,
        "downloads": revision.downloads or 0,
        "created_date": _isoformat(revision.created_date),
    }


def _clean_languages(languages: Optional[List[str]]) -> List[str]:
    # Some parsers report the full locale directory instead of the language code
    return [language.split("/")[-1] for language in sorted(languages or [])]


def _downloads(
    package: PackageRecord,
    architecture: str,
    settings: StoreSettings,
) -> List[Dict[str, Any]]:
    downloads: List[Dict[str, Any]] = []
    for channel in CHANNELS:
        for arch in package.architectures or []:
            if arch not in ARCHITECTURES:
                continue
            match = get_latest_revision(package, channel, arch, detect_all=False)
            if not match.found or not match.revision.download_url:
                continue
            payload = _revision_payload(match.revision)
            if "," in (match.revision.architecture or ""):
                payload["architecture"] = arch
            payload["download_url"] = download_url(package, channel, arch, settings=settings)
            downloads.append(payload)

    # Clients older than API v4 pick the last entry, so the requested architecture goes last
    downloads.sort(key=lambda item: item["architecture"] == architecture)
    return downloads


def serialize_package(
    package: PackageRecord,
    architecture: str = "armhf",
    api_version: int = 4,
    *,
    settings: StoreSettings | None = None,
) -> Dict[str, Any]:
    settings = settings or get_settings()
    architectures = list(package.architectures or [])

    latest = get_latest_revision(
        package,
        default_channel(package),
        architecture if architecture in architectures else None,
    )
    latest_revision = latest.revision if latest.found else None

    revisions = []
    for revision in package.revisions or []:
        payload = _revision_payload(revision)
        payload["download_url"] = (
            download_url(package, revision.channel, revision.architecture, revision.version, settings=settings)
            if revision.download_url
            else None
        )
        revisions.append(payload)

    downloads = _downloads(package, architecture, settings)
    if api_version == 3:
        downloads = [
            item for item in downloads if item["architecture"] in (architecture, ARCH_ALL)
        ]

    return {
        "id": package.id,
        "name": package.name or "",
        "tagline": package.tagline or "",
        "description": package.description or "",
        "changelog": package.changelog or "",
        "author": package.author or "",
        "framework": package.framework or "",
        "architecture": ",".join(architectures),
        "architectures": architectures,
        "channels": list(package.channels or [DEFAULT_CHANNEL]),
        "channel_architectures": list(package.channel_architectures or []),
        "device_compatibilities": list(package.device_compatibilities or []),
        "icon": icon_url(package, settings=settings),
        "languages": _clean_languages(package.languages),
        "types": list(package.types or []),
        "manifest": package.manifest or {},
        "maintainer": package.maintainer,
        "maintainer_name": package.maintainer_name,
        "published": bool(package.published),
        "locked": bool(package.locked),
        "published_date": _isoformat(package.published_date),
        "updated_date": _isoformat(package.updated_date),
        "version": latest_revision.version if latest_revision else "",
        "filesize": _to_bytes(latest_revision.filesize if latest_revision else 0),
        "revisions": revisions,
        "downloads": downloads,
        "latestDownloads": sum(item["downloads"] for item in downloads),
        "totalDownloads": sum(revision.downloads or 0 for revision in package.revisions or []),
    }


__all__ = ["default_channel", "download_url", "icon_url", "serialize_package"]
