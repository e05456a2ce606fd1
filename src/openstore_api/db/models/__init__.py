"""Database model package."""

from .lock import LockRecord
from .package import PackageRecord, RevisionRecord
from .user import UserRecord

__all__ = [
    "LockRecord",
    "PackageRecord",
    "RevisionRecord",
    "UserRecord",
]
