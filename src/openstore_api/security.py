"""API key authentication for store maintainers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Security
from fastapi.security.api_key import APIKeyHeader, APIKeyQuery

from openstore_api.db.session import run_in_session
from openstore_api.errors import AuthenticationError
from openstore_api.repo.users import UserRepository

ROLE_ADMIN = "admin"
ROLE_TRUSTED = "trusted"
ROLE_COMMUNITY = "community"

apikey_query = APIKeyQuery(name="apikey", auto_error=False)
apikey_header = APIKeyHeader(name="X-API-Key", auto_error=False)

_user_repo = UserRepository()


@dataclass(frozen=True)
class Actor:
    id: str
    username: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    @property
    def is_trusted(self) -> bool:
        return self.role == ROLE_TRUSTED

    def can_manage(self, maintainer: Optional[str]) -> bool:
        return self.is_admin or (maintainer is not None and maintainer == self.id)


def resolve_actor(apikey: str) -> Optional[Actor]:
    def _resolve(session) -> Optional[Actor]:
        user = _user_repo.get_by_apikey(apikey, session=session)
        if user is None:
            return None
        return Actor(id=user.id, username=user.username, role=user.role or ROLE_COMMUNITY)

    return run_in_session(_resolve)


def require_actor(
    query_key: Optional[str] = Security(apikey_query),
    header_key: Optional[str] = Security(apikey_header),
) -> Actor:
    apikey = query_key or header_key
    if not apikey:
        raise AuthenticationError()
    actor = resolve_actor(apikey)
    if actor is None:
        raise AuthenticationError()
    return actor


__all__ = [
    "Actor",
    "ROLE_ADMIN",
    "ROLE_COMMUNITY",
    "ROLE_TRUSTED",
    "require_actor",
    "resolve_actor",
]
