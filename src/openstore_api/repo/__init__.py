"""Persistence helpers grouped per aggregate."""

from .locks import LockRepository
from .packages import PackageRepository
from .users import UserRepository

__all__ = ["LockRepository", "PackageRepository", "UserRepository"]
