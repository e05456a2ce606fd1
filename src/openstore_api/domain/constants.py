"""Channel, architecture and artifact constants for the revision ledger."""

from __future__ import annotations

from enum import Enum


class Channel(str, Enum):
    XENIAL = "xenial"
    FOCAL = "focal"


class Architecture(str, Enum):
    ALL = "all"
    ARMHF = "armhf"
    AMD64 = "amd64"
    ARM64 = "arm64"


DEFAULT_CHANNEL = Channel.XENIAL.value
ARCH_ALL = Architecture.ALL.value

CHANNELS: tuple[str, ...] = tuple(channel.value for channel in Channel)
ARCHITECTURES: tuple[str, ...] = tuple(arch.value for arch in Architecture)

ICON_EXTENSIONS = frozenset({".png", ".jpg", ".jpeg", ".svg"})
CLICK_EXTENSION = ".click"
