"""Click package parsing and automated review."""

from .models import ClickApp, ClickPackageInfo
from .parser import ClickParseError, parse_click_package
from .review import ClickReviewer, parse_review

__all__ = [
    "ClickApp",
    "ClickPackageInfo",
    "ClickParseError",
    "ClickReviewer",
    "parse_click_package",
    "parse_review",
]
