"""Lock-free lookups over a package's revision ledger.

Every function here only reads the objects it is given, so callers may use it
from any number of concurrent requests without holding the revision lock.
The package argument is anything exposing ``architectures`` and ``revisions``
(normally a :class:`~openstore_api.db.models.PackageRecord`).
"""

from __future__ import annotations

import logging
from functools import reduce
from typing import Any, Iterable, NamedTuple, Optional

from .constants import ARCH_ALL

LOGGER = logging.getLogger(__name__)


class RevisionMatch(NamedTuple):
    revision: Optional[Any]
    index: int

    @property
    def found(self) -> bool:
        return self.revision is not None


NO_MATCH = RevisionMatch(None, -1)


def next_revision(package: Any) -> int:
    """Return the revision number the next appended revision must use."""

    numbers = [revision.revision for revision in (package.revisions or [])]
    return max(numbers, default=0) + 1


def _architecture_matches(candidate: str | None, architecture: str | None) -> bool:
    if candidate and "," in candidate:
        # Legacy multi-arch clicks store "armhf,arm64"
        return architecture is not None and architecture in candidate
    return candidate == architecture


def get_latest_revision(
    package: Any,
    channel: str,
    architecture: str | None = None,
    *,
    detect_all: bool = True,
    frameworks: Iterable[str] | None = None,
    version: str | None = None,
) -> RevisionMatch:
    """Find the highest-numbered revision matching the given filters.

    When the package advertises ``all`` and ``detect_all`` is set, the requested
    architecture is replaced with ``all`` so architecture independent packages
    always resolve through their generic revisions. An empty ``architecture``
    disables architecture filtering altogether.

    Returns the matched revision and its position in ``package.revisions`` or
    ``(None, -1)`` when nothing matches.
    """

    effective_arch = architecture
    if detect_all and ARCH_ALL in (package.architectures or []):
        effective_arch = ARCH_ALL
    framework_set = set(frameworks) if frameworks is not None else None

    def _matches(candidate: Any) -> bool:
        if candidate.channel != channel:
            return False
        if architecture and not _architecture_matches(candidate.architecture, effective_arch):
            return False
        if framework_set is not None and candidate.framework not in framework_set:
            return False
        if version and candidate.version != version:
            return False
        return True

    def _step(best: RevisionMatch, item: tuple[int, Any]) -> RevisionMatch:
        index, candidate = item
        if not _matches(candidate):
            return best
        if best.revision is None or candidate.revision > best.revision.revision:
            return RevisionMatch(candidate, index)
        if candidate.revision == best.revision.revision:
            LOGGER.warning(
                "Package %s has duplicate revision number %s (positions %s and %s)",
                getattr(package, "id", "?"),
                candidate.revision,
                best.index,
                index,
            )
        return best

    return reduce(_step, enumerate(package.revisions or []), NO_MATCH)


def revisions_for_group(package: Any, version: str, channel: str) -> list[Any]:
    """Return existing revisions sharing ``(version, channel)`` in ledger order."""

    return [
        revision
        for revision in (package.revisions or [])
        if revision.version == version and revision.channel == channel
    ]


def find_exact_revision(
    package: Any,
    version: str,
    channel: str,
    architecture: str,
) -> Optional[Any]:
    return next(
        (
            revision
            for revision in (package.revisions or [])
            if revision.version == version
            and revision.channel == channel
            and revision.architecture == architecture
        ),
        None,
    )


__all__ = [
    "NO_MATCH",
    "RevisionMatch",
    "find_exact_revision",
    "get_latest_revision",
    "next_revision",
    "revisions_for_group",
]
