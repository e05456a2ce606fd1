"""Service layer for revision locking, ingestion and delivery."""

from .ingest import RevisionIngestor, update_from_click
from .locks import LockLease, LockManager, RetryPolicy, revision_lock_name
from .revisions import DownloadTarget, RevisionService, RevisionUpload
from .search import PackageSearchIndex, search_document
from .serializer import download_url, icon_url, serialize_package

__all__ = [
    "DownloadTarget",
    "LockLease",
    "LockManager",
    "PackageSearchIndex",
    "RetryPolicy",
    "RevisionIngestor",
    "RevisionService",
    "RevisionUpload",
    "download_url",
    "icon_url",
    "revision_lock_name",
    "search_document",
    "serialize_package",
    "update_from_click",
]
