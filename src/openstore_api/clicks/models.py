from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ClickApp(BaseModel):
    """One hook entry of a click manifest with its resolved hook files."""

    name: str
    type: str = "app"
    apparmor: Dict[str, Any] = Field(default_factory=dict)
    desktop: Dict[str, str] = Field(default_factory=dict)
    content_hub: Dict[str, Any] = Field(default_factory=dict, alias="contentHub")
    url_dispatcher: List[Dict[str, Any]] = Field(default_factory=list, alias="urlDispatcher")
    push_helper: Dict[str, Any] = Field(default_factory=dict, alias="pushHelper")
    scope_ini: Dict[str, str] = Field(default_factory=dict, alias="scopeIni")

    model_config = {"populate_by_name": True}

    def hook_payload(self) -> Dict[str, Any]:
        hook: Dict[str, Any] = {}
        if self.apparmor:
            hook["apparmor"] = self.apparmor
        if self.desktop:
            hook["desktop"] = self.desktop
        if self.content_hub:
            hook["content-hub"] = self.content_hub
        if self.url_dispatcher:
            hook["urls"] = self.url_dispatcher
        if self.push_helper:
            hook["push-helper"] = self.push_helper
        if self.scope_ini:
            hook["scope"] = self.scope_ini
        return hook


class ClickPackageInfo(BaseModel):
    """Metadata extracted from a click archive.

    ``icon`` is a path to a temporary copy of the package icon, owned by the
    caller once returned. ``installed_size`` is in KiB as reported by the
    click control data.
    """

    name: Optional[str] = None
    version: Optional[str] = None
    architecture: Optional[str] = None
    framework: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    maintainer: Optional[str] = None
    maintainer_email: Optional[str] = Field(default=None, alias="maintainerEmail")
    permissions: List[str] = Field(default_factory=list)
    icon: Optional[str] = None
    installed_size: int = Field(default=0, alias="installedSize")
    apps: List[ClickApp] = Field(default_factory=list)
    types: List[str] = Field(default_factory=list)
    languages: List[str] = Field(default_factory=list)

    model_config = {"populate_by_name": True}


__all__ = ["ClickApp", "ClickPackageInfo"]
