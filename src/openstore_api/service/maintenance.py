"""Offline maintenance over the package catalogue."""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.orm import Session

from openstore_api.db.session import SessionFactory, run_in_session
from openstore_api.domain.compatibility import update_calculated_properties
from openstore_api.repo.packages import PackageRepository

LOGGER = logging.getLogger(__name__)


def update_calculated(
    package_id: Optional[str] = None,
    *,
    session_factory: SessionFactory | None = None,
    repo: PackageRepository | None = None,
) -> list[str]:
    """Rebuild the compatibility index of one package, or of every package.

    Returns the ids that were saved.
    """

    repo = repo or PackageRepository()

    def _update(session: Session) -> list[str]:
        ids = [package_id] if package_id else None
        packages = repo.list(session=session, ids=ids)
        for package in packages:
            LOGGER.info("Recalculating %s", package.id)
            update_calculated_properties(package)
            repo.save(package, session=session)
        return [package.id for package in packages]

    return run_in_session(_update, session_factory)


__all__ = ["update_calculated"]
