"""Update checks: installed revisions against the latest available ones."""

from __future__ import annotations

from typing import Any, List, Optional, Union

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from openstore_api.http.errors import success_payload
from openstore_api.service.revisions import RevisionService

from .deps import get_revision_service

router = APIRouter(prefix="/api/v3/revisions", tags=["revisions"])


def _as_list(value: Union[str, List[str], None]) -> List[str]:
    if value is None:
        return []
    items = value.split(",") if isinstance(value, str) else value
    return [item.strip() for item in items if item and item.strip()]


class RevisionsQuery(BaseModel):
    apps: Union[str, List[str], None] = None
    channel: Optional[str] = None
    architecture: Optional[str] = None
    frameworks: Union[str, List[str], None] = Field(default=None)


def _report(service: RevisionService, query: RevisionsQuery) -> dict[str, Any]:
    data = service.revisions_by_version(
        _as_list(query.apps),
        channel=query.channel,
        architecture=query.architecture,
        frameworks=_as_list(query.frameworks),
    )
    return success_payload(data)


@router.get("")
def revisions_by_version(
    apps: Optional[str] = Query(default=None),
    channel: Optional[str] = Query(default=None),
    architecture: Optional[str] = Query(default=None),
    frameworks: Optional[str] = Query(default=None),
    service: RevisionService = Depends(get_revision_service),
) -> dict[str, Any]:
    query = RevisionsQuery(apps=apps, channel=channel, architecture=architecture, frameworks=frameworks)
    return _report(service, query)


@router.post("")
def revisions_by_version_post(
    query: RevisionsQuery,
    service: RevisionService = Depends(get_revision_service),
) -> dict[str, Any]:
    return _report(service, query)
