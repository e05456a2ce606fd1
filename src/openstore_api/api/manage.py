"""Maintainer endpoints for publishing new revisions."""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile

from openstore_api.http.errors import success_payload
from openstore_api.security import Actor, require_actor
from openstore_api.service.revisions import RevisionService, RevisionUpload
from openstore_api.storage import remove_quietly

from .deps import get_revision_service

LOGGER = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v3/manage", tags=["manage"])

_CHUNK_SIZE = 1024 * 1024


async def _spool_upload(file: UploadFile, upload_dir: Path) -> Path:
    upload_dir.mkdir(parents=True, exist_ok=True)
    handle, name = tempfile.mkstemp(prefix="revision-upload-", suffix=".click", dir=upload_dir)
    path = Path(name)
    try:
        with os.fdopen(handle, "wb") as target:
            while True:
                chunk = await file.read(_CHUNK_SIZE)
                if not chunk:
                    break
                target.write(chunk)
    except Exception:
        remove_quietly(path)
        raise
    return path


@router.post("/{package_id}/revision")
async def create_revision(
    package_id: str,
    file: Optional[UploadFile] = File(default=None),
    channel: Optional[str] = Form(default=None),
    changelog: Optional[str] = Form(default=None),
    actor: Actor = Depends(require_actor),
    service: RevisionService = Depends(get_revision_service),
) -> dict[str, Any]:
    path: Optional[Path] = None
    if file is not None and file.filename:
        path = await _spool_upload(file, service.settings.upload_dir)
        LOGGER.debug("Spooled upload for %s to %s", package_id, path)

    upload = RevisionUpload(
        path=path,
        filename=file.filename if file is not None else None,
        channel=channel,
        changelog=changelog,
    )
    payload = await service.upload_revision(package_id, upload, actor)
    return success_payload(payload)
