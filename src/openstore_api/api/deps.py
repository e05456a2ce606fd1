"""FastAPI dependency providers for the store routers."""

from __future__ import annotations

from functools import lru_cache

from openstore_api.service.revisions import RevisionService


@lru_cache(maxsize=1)
def get_revision_service() -> RevisionService:
    return RevisionService()


__all__ = ["get_revision_service"]
