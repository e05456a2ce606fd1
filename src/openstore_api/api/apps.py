"""Public endpoints for downloading published revisions."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse
from starlette.background import BackgroundTask

from openstore_api.service.revisions import RevisionService

from .deps import get_revision_service

router = APIRouter(prefix="/api/v3/apps", tags=["apps"])

CLICK_MEDIA_TYPE = "application/vnd.debian.binary-package"


def _download(
    service: RevisionService,
    package_id: str,
    channel: str,
    arch: str,
    version: Optional[str],
) -> FileResponse:
    target = service.download_revision(package_id, channel, arch, version)
    return FileResponse(
        target.path,
        media_type=CLICK_MEDIA_TYPE,
        filename=target.filename,
        background=BackgroundTask(service.increment_download, target),
    )


@router.get("/{package_id}/download/{channel}/{arch}")
def download_latest(
    package_id: str,
    channel: str,
    arch: str,
    service: RevisionService = Depends(get_revision_service),
) -> FileResponse:
    return _download(service, package_id, channel, arch, None)


@router.get("/{package_id}/download/{channel}/{arch}/{version}")
def download_version(
    package_id: str,
    channel: str,
    arch: str,
    version: str,
    service: RevisionService = Depends(get_revision_service),
) -> FileResponse:
    return _download(service, package_id, channel, arch, version)
