"""Search index collaborator fed with the derived listing fields of a package."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Protocol

from openstore_api.db.models import PackageRecord

SEARCH_PROPERTIES = (
    "id",
    "name",
    "architectures",
    "author",
    "channels",
    "channel_architectures",
    "device_compatibilities",
    "description",
    "framework",
    "icon",
    "published_date",
    "tagline",
    "types",
    "updated_date",
    "version",
)


class PackageSearchIndex(Protocol):
    def upsert(self, document: Dict[str, Any]) -> None: ...


def search_document(package: PackageRecord) -> Dict[str, Any]:
    document: Dict[str, Any] = {}
    for prop in SEARCH_PROPERTIES:
        value = getattr(package, prop, None)
        if isinstance(value, datetime):
            value = value.isoformat()
        document[prop] = value if value else None
    document["search_name"] = package.name
    return document


__all__ = ["PackageSearchIndex", "SEARCH_PROPERTIES", "search_document"]
