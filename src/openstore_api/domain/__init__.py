"""Pure revision-ledger logic: constants, resolution and derived indexes."""

from .compatibility import update_calculated_properties
from .constants import (
    ARCH_ALL,
    ARCHITECTURES,
    CHANNELS,
    DEFAULT_CHANNEL,
    Architecture,
    Channel,
)
from .resolver import NO_MATCH, RevisionMatch, get_latest_revision, next_revision

__all__ = [
    "ARCH_ALL",
    "ARCHITECTURES",
    "CHANNELS",
    "DEFAULT_CHANNEL",
    "NO_MATCH",
    "Architecture",
    "Channel",
    "RevisionMatch",
    "get_latest_revision",
    "next_revision",
    "update_calculated_properties",
]
