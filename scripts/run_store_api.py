"""Launch the store API after checking its storage layout."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Final

import uvicorn

DEFAULT_LOG_LEVEL: Final[str] = "info"

LOGGER = logging.getLogger("openstore_api.launcher")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the store API.")
    parser.add_argument("--host", default=None, help="Bind address (overrides settings/env).")
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port to bind to (overrides settings/env).",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable uvicorn auto-reload (overrides settings/env).",
    )
    parser.add_argument(
        "--log-level",
        choices=["critical", "error", "warning", "info", "debug", "trace"],
        default=None,
        help="Log level for store and uvicorn output (overrides settings/env).",
    )
    parser.add_argument(
        "--check",
        action="store_true",
        help="Validate configuration and storage directories, then exit.",
    )
    return parser.parse_args()


def prepare_storage(store_settings) -> None:
    """Create the click, icon and upload directories or exit with the reason."""

    from openstore_api.storage import ensure_writable_dir

    for label, path in (
        ("data_dir", store_settings.data_dir),
        ("icon_dir", store_settings.icon_dir),
        ("upload_dir", store_settings.upload_dir),
    ):
        try:
            ensure_writable_dir(path)
        except OSError as exc:
            raise SystemExit(f"Store API failed to start: {label} {path} is unusable ({exc}).") from exc
        LOGGER.info("Using %s %s", label, path)


def main() -> None:
    args = parse_args()

    repo_root = Path(__file__).resolve().parents[1]
    sys.path.insert(0, str(repo_root / "src"))

    # Import after sys.path is adjusted
    from openstore_api.config.settings import get_api_settings, get_settings

    api_settings = get_api_settings()
    store_settings = get_settings()

    host = args.host or api_settings.host
    port = args.port or api_settings.port
    reload = args.reload or api_settings.reload
    log_level = (args.log_level or api_settings.log_level or DEFAULT_LOG_LEVEL).lower()
    root_level = logging.DEBUG if log_level == "trace" else getattr(logging, log_level.upper(), logging.INFO)

    logging.basicConfig(level=root_level, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    for logger_name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logging.getLogger(logger_name).setLevel(root_level)

    if store_settings.config_path:
        LOGGER.info("Loaded store settings from %s", store_settings.config_path)
    LOGGER.info("Serving downloads as %s", store_settings.server_host)
    prepare_storage(store_settings)
    if args.check:
        return

    uvicorn.run(
        "openstore_api.app:app",
        host=host,
        port=port,
        reload=reload,
        log_level=log_level if log_level != "trace" else "debug",
        log_config=None,
    )


if __name__ == "__main__":
    main()
