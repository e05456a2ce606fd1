"""Run ``click-review`` over an upload and interpret its JSON report."""

from __future__ import annotations

import asyncio
import json
import logging
import os
import shlex
from pathlib import Path
from typing import Any, Dict, Optional, Union

from openstore_api.config.settings import StoreSettings, get_settings
from openstore_api.errors import StoreValidationError, ValidationKind

LOGGER = logging.getLogger(__name__)

ReviewOutcome = Union[bool, str]

_NEEDS_REVIEW_MARKER = "(NEEDS REVIEW)"


def parse_review(report: Dict[str, Any]) -> ReviewOutcome:
    """Return ``False`` when clean, the offending text, or ``True`` when flagged without one.

    The report nests ``check group -> level -> check -> {text, manual_review}``.
    The last flagged check wins.
    """

    outcome: ReviewOutcome = False
    for group in report.values():
        if not isinstance(group, dict):
            continue
        for level in group.values():
            if not isinstance(level, dict):
                continue
            for label in level.values():
                if not isinstance(label, dict) or not label.get("manual_review"):
                    continue
                text = str(label.get("text", ""))
                if "OK" not in text:
                    outcome = text.replace(_NEEDS_REVIEW_MARKER, "").strip()
                else:
                    outcome = True
    return outcome


class ClickReviewer:
    def __init__(self, settings: StoreSettings | None = None) -> None:
        self._settings = settings or get_settings()

    async def run(self, path: Path | str) -> ReviewOutcome:
        """Run the review tool and return its verdict; failures and timeouts count as flagged."""

        command = [*shlex.split(self._settings.clickreview_command), "--json", str(path)]
        env = dict(os.environ)
        if self._settings.clickreview_pythonpath:
            env["PYTHONPATH"] = self._settings.clickreview_pythonpath

        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=env,
            )
        except OSError:
            LOGGER.error("Unable to start click-review (%s)", command[0], exc_info=True)
            return True

        timeout = self._settings.clickreview_timeout_seconds
        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            LOGGER.error("click-review did not finish within %ss for %s", timeout, path)
            process.kill()
            await process.wait()
            return True

        report = self._decode(stdout)

        if process.returncode != 0:
            LOGGER.error("Error processing package for review: exit code %s", process.returncode)
            if stderr:
                LOGGER.error(stderr.decode("utf-8", "replace"))
            if report is None:
                return True
            # A failing run with nothing flagged manually still blocks the upload.
            return parse_review(report) or True

        if report is None:
            LOGGER.error("click-review produced unreadable output for %s", path)
            return True
        return parse_review(report)

    async def review(self, path: Path | str) -> None:
        """Raise :class:`StoreValidationError` unless the package passes review."""

        outcome = await self.run(path)
        if not outcome:
            return
        if outcome is True:
            detail = "please check your app using the click-review command"
        else:
            detail = f"Error: {outcome}"
        raise StoreValidationError(ValidationKind.NEEDS_MANUAL_REVIEW, detail)

    @staticmethod
    def _decode(stdout: bytes) -> Optional[Dict[str, Any]]:
        try:
            report = json.loads(stdout.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            return None
        return report if isinstance(report, dict) else None


__all__ = ["ClickReviewer", "ReviewOutcome", "parse_review"]
