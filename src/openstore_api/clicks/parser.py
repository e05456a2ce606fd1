"""Read manifest, hook and icon data out of a click package.

A click is an ``ar`` container holding ``debian-binary``, ``control.tar.*``
and ``data.tar.*`` members. The control tarball carries the JSON manifest and
the Debian control stanza; hook files referenced by the manifest (apparmor
profiles, desktop entries, content hub declarations) live in the data tarball.
"""

from __future__ import annotations

import configparser
import io
import json
import logging
import re
import tarfile
import tempfile
from pathlib import Path, PurePosixPath
from typing import Any, Dict, Iterable, List, Optional

import arpy
from pydantic import ValidationError

from .models import ClickApp, ClickPackageInfo

LOGGER = logging.getLogger(__name__)

_LOCALE_PATTERN = re.compile(r"(?:^|/)share/locale/([^/]+)/LC_MESSAGES/[^/]+\.mo$")
_MAINTAINER_PATTERN = re.compile(r"^\s*(?P<name>.*?)\s*<(?P<email>[^>]+)>\s*$")
_WEBAPP_LAUNCHERS = ("webapp-container", "ubuntu-html5-app-launcher")


class ClickParseError(Exception):
    """Raised when an upload is not a readable click package."""


def _normalize_member(name: str) -> str:
    while name.startswith("./"):
        name = name[2:]
    return name.lstrip("/")


class _Tarball:
    def __init__(self, payload: bytes) -> None:
        self._tar = tarfile.open(fileobj=io.BytesIO(payload), mode="r:*")
        self._members = {
            _normalize_member(member.name): member
            for member in self._tar.getmembers()
            if member.isfile()
        }

    def names(self) -> Iterable[str]:
        return self._members.keys()

    def read(self, name: str) -> Optional[bytes]:
        member = self._members.get(_normalize_member(name))
        if member is None:
            return None
        handle = self._tar.extractfile(member)
        if handle is None:
            return None
        with handle:
            return handle.read()

    def close(self) -> None:
        self._tar.close()


def _read_members(path: Path) -> Dict[str, bytes]:
    members: Dict[str, bytes] = {}
    with arpy.Archive(str(path)) as archive:
        archive.read_all_headers()
        for raw_name, data in archive.archived_files.items():
            name = raw_name.decode("utf-8", "replace").rstrip("/")
            if name.startswith("control.tar") or name.startswith("data.tar"):
                members[name.split(".tar", 1)[0]] = data.read()
    return members


def _parse_control(payload: Optional[bytes]) -> Dict[str, str]:
    fields: Dict[str, str] = {}
    if not payload:
        return fields
    for line in payload.decode("utf-8", "replace").splitlines():
        if ":" not in line or line.startswith((" ", "\t")):
            continue
        key, value = line.split(":", 1)
        fields[key.strip().lower()] = value.strip()
    return fields


def _parse_ini(payload: bytes, section: str) -> Dict[str, str]:
    parser = configparser.ConfigParser(interpolation=None, strict=False)
    parser.optionxform = str  # type: ignore[assignment]
    try:
        parser.read_string(payload.decode("utf-8", "replace"))
    except configparser.Error:
        LOGGER.debug("Ignoring unreadable ini hook", exc_info=True)
        return {}
    if not parser.has_section(section):
        return {}
    return dict(parser.items(section))


def _load_json(payload: Optional[bytes]) -> Any:
    if not payload:
        return None
    try:
        return json.loads(payload.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        LOGGER.debug("Ignoring unreadable json hook", exc_info=True)
        return None


def _app_type(hooks: Dict[str, Any], desktop: Dict[str, str]) -> str:
    if "scope" in hooks:
        return "scope"
    if "push-helper" in hooks and "desktop" not in hooks:
        return "push"
    exec_line = desktop.get("Exec", "")
    if any(launcher in exec_line for launcher in _WEBAPP_LAUNCHERS):
        return "webapp"
    return "app"


def _parse_apps(manifest_hooks: Dict[str, Any], data: _Tarball) -> List[ClickApp]:
    apps: List[ClickApp] = []
    for app_name, hooks in manifest_hooks.items():
        if not isinstance(hooks, dict):
            continue

        apparmor = hooks.get("apparmor")
        apparmor_data = _load_json(data.read(apparmor)) if isinstance(apparmor, str) else None

        desktop_path = hooks.get("desktop")
        desktop: Dict[str, str] = {}
        if isinstance(desktop_path, str):
            payload = data.read(desktop_path)
            if payload:
                desktop = _parse_ini(payload, "Desktop Entry")

        content_hub = hooks.get("content-hub")
        urls = hooks.get("urls")
        push_helper = hooks.get("push-helper")
        scope = hooks.get("scope")
        scope_ini: Dict[str, str] = {}
        if isinstance(scope, str):
            for name in data.names():
                if name.startswith(scope.rstrip("/") + "/") and name.endswith(".ini"):
                    scope_ini = _parse_ini(data.read(name) or b"", "ScopeConfig")
                    break

        apps.append(
            ClickApp(
                name=app_name,
                type=_app_type(hooks, desktop),
                apparmor=apparmor_data if isinstance(apparmor_data, dict) else {},
                desktop=desktop,
                content_hub=_load_json(data.read(content_hub)) or {} if isinstance(content_hub, str) else {},
                url_dispatcher=_load_json(data.read(urls)) or [] if isinstance(urls, str) else [],
                push_helper=_load_json(data.read(push_helper)) or {} if isinstance(push_helper, str) else {},
                scope_ini=scope_ini,
            )
        )
    return apps


def _collect_permissions(apps: Iterable[ClickApp]) -> List[str]:
    permissions: Dict[str, None] = {}
    for app in apps:
        groups = app.apparmor.get("policy_groups") or []
        if isinstance(groups, list):
            for group in groups:
                if isinstance(group, str):
                    permissions.setdefault(group, None)
    return list(permissions)


def _collect_languages(data: _Tarball) -> List[str]:
    languages: Dict[str, None] = {}
    for name in data.names():
        match = _LOCALE_PATTERN.search(name)
        if match:
            languages.setdefault(match.group(1), None)
    return sorted(languages)


def _extract_icon(apps: Iterable[ClickApp], data: _Tarball) -> Optional[str]:
    for app in apps:
        icon = app.desktop.get("Icon")
        if not icon:
            continue
        payload = data.read(icon)
        if payload is None:
            continue
        suffix = PurePosixPath(icon).suffix
        with tempfile.NamedTemporaryFile(prefix="click-icon-", suffix=suffix, delete=False) as handle:
            handle.write(payload)
            return handle.name
    return None


def _installed_size(manifest: Dict[str, Any], control: Dict[str, str]) -> int:
    raw = manifest.get("installed-size") or control.get("installed-size") or 0
    try:
        return int(raw)
    except (TypeError, ValueError):
        return 0


def parse_click_package(path: Path | str, *, extract_icon: bool = True) -> ClickPackageInfo:
    """Parse ``path`` into a :class:`ClickPackageInfo`.

    Missing manifest fields are left as ``None``; deciding whether that is
    acceptable is up to the caller. Raises :class:`ClickParseError` when the
    archive or its manifest cannot be read at all.
    """

    path = Path(path)
    try:
        members = _read_members(path)
    except (arpy.ArchiveFormatError, arpy.ArchiveAccessError, OSError) as exc:
        raise ClickParseError(f"Unable to read click archive {path.name}: {exc}") from exc

    if "control" not in members:
        raise ClickParseError(f"Click archive {path.name} has no control tarball")

    try:
        control_tar = _Tarball(members["control"])
        data_tar = _Tarball(members.get("data") or _empty_tarball())
    except tarfile.TarError as exc:
        raise ClickParseError(f"Click archive {path.name} has a corrupt tarball: {exc}") from exc

    try:
        manifest = _load_json(control_tar.read("manifest"))
        if not isinstance(manifest, dict):
            raise ClickParseError(f"Click archive {path.name} has no readable manifest")
        control = _parse_control(control_tar.read("control"))

        hooks = manifest.get("hooks") if isinstance(manifest.get("hooks"), dict) else {}
        apps = _parse_apps(hooks, data_tar)

        architecture = manifest.get("architecture")
        if isinstance(architecture, list):
            architecture = ",".join(str(item) for item in architecture)

        maintainer = manifest.get("maintainer")
        maintainer_email = None
        if isinstance(maintainer, str):
            match = _MAINTAINER_PATTERN.match(maintainer)
            if match:
                maintainer, maintainer_email = match.group("name"), match.group("email")

        info = ClickPackageInfo(
            name=manifest.get("name"),
            version=manifest.get("version"),
            architecture=architecture,
            framework=manifest.get("framework"),
            title=manifest.get("title"),
            description=manifest.get("description"),
            maintainer=maintainer,
            maintainer_email=maintainer_email,
            permissions=_collect_permissions(apps),
            installed_size=_installed_size(manifest, control),
            apps=apps,
            types=list(dict.fromkeys(app.type for app in apps)),
            languages=_collect_languages(data_tar),
        )
        # The caller owns the temp icon only once parsing has succeeded
        if extract_icon:
            info.icon = _extract_icon(apps, data_tar)
    except ValidationError as exc:
        raise ClickParseError(f"Click archive {path.name} has an invalid manifest: {exc}") from exc
    finally:
        control_tar.close()
        data_tar.close()

    LOGGER.debug(
        "Parsed click %s: %s %s (%s)",
        path.name,
        info.name,
        info.version,
        info.architecture,
    )
    return info


def _empty_tarball() -> bytes:
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w"):
        pass
    return buffer.getvalue()


__all__ = ["ClickParseError", "parse_click_package"]
