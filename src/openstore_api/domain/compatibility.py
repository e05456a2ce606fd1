"""Derived channel/architecture/framework lookup fields for listing filters."""

from __future__ import annotations

from typing import Any

from .resolver import get_latest_revision


def channel_architecture_token(channel: str, architecture: str) -> str:
    return f"{channel}:{architecture}"


def device_compatibility_token(channel: str, architecture: str, framework: str | None) -> str:
    return f"{channel}:{architecture}:{framework or ''}"


def calculate_channel_architectures(package: Any) -> list[str]:
    tokens: list[str] = []
    for channel in package.channels or []:
        for architecture in package.architectures or []:
            match = get_latest_revision(package, channel, architecture, detect_all=False)
            if match.found:
                tokens.append(channel_architecture_token(channel, architecture))
    return tokens


def calculate_device_compatibilities(package: Any) -> list[str]:
    tokens: dict[str, None] = {}
    for revision in package.revisions or []:
        if revision.download_url:
            token = device_compatibility_token(
                revision.channel,
                revision.architecture,
                revision.framework,
            )
            tokens.setdefault(token, None)
    return list(tokens)


def update_calculated_properties(package: Any) -> None:
    """Recompute ``channel_architectures`` and ``device_compatibilities``.

    Must be called by whoever changes the ledger, the channel set or the
    architecture set; nothing triggers it implicitly. Lists are reassigned
    rather than mutated so the ORM notices the change.
    """

    package.channel_architectures = calculate_channel_architectures(package)
    package.device_compatibilities = calculate_device_compatibilities(package)


__all__ = [
    "calculate_channel_architectures",
    "calculate_device_compatibilities",
    "channel_architecture_token",
    "device_compatibility_token",
    "update_calculated_properties",
]
