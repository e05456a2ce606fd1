"""Storage helpers for click artifacts and package icons."""

from __future__ import annotations

import hashlib
import logging
import os
import shutil
from pathlib import Path
from urllib.parse import quote

LOGGER = logging.getLogger(__name__)


def _encode_component(value: str) -> str:
    """Percent-encode everything outside ``[A-Za-z0-9._~+-]``.

    The encoding is reversible, so distinct versions never share a file name.
    """

    return quote(value, safe="+")


def click_file_path(data_dir: Path, package_id: str, channel: str, architecture: str, version: str) -> Path:
    filename = "-".join(
        _encode_component(part) for part in (package_id, channel, architecture, version)
    )
    return Path(data_dir) / f"{filename}.click"


def icon_file_path(icon_dir: Path, package_id: str, ext: str) -> Path:
    return Path(icon_dir) / f"{_encode_component(package_id)}{ext.lower()}"


def ensure_writable_dir(path: Path | str) -> Path:
    """Create ``path`` if needed and raise :class:`PermissionError` unless it is writable."""

    path = Path(path)
    if path.exists() and not path.is_dir():
        raise NotADirectoryError(f"{path} exists and is not a directory")
    path.mkdir(parents=True, exist_ok=True)
    if not os.access(path, os.W_OK | os.X_OK):
        raise PermissionError(f"{path} is not writable")
    return path


def sha512_checksum(path: Path) -> str:
    digest = hashlib.sha512()
    with Path(path).open("rb") as handle:
        for chunk in iter(lambda: handle.read(1024 * 1024), b""):
            digest.update(chunk)
    return digest.hexdigest()


def copy_into_place(source: Path, target: Path, *, overwrite: bool = True) -> Path:
    """Copy ``source`` to ``target``.

    With ``overwrite=False`` the target is created exclusively and
    :class:`FileExistsError` is raised when it is already there.
    """

    target = Path(target)
    target.parent.mkdir(parents=True, exist_ok=True)
    if overwrite:
        shutil.copyfile(source, target)
        return target
    with Path(source).open("rb") as src, target.open("xb") as dst:
        shutil.copyfileobj(src, dst, 1024 * 1024)
    return target


def remove_quietly(path: Path | str | None) -> None:
    if not path:
        return
    try:
        Path(path).unlink()
    except FileNotFoundError:
        pass
    except OSError:
        LOGGER.warning("Failed to remove temporary file %s", path, exc_info=True)


__all__ = [
    "click_file_path",
    "copy_into_place",
    "ensure_writable_dir",
    "icon_file_path",
    "remove_quietly",
    "sha512_checksum",
]
