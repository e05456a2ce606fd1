"""Store configuration loading and validation."""

from __future__ import annotations

import json
import os
import tempfile
from functools import lru_cache
from pathlib import Path
from typing import Any, ClassVar, Dict, Iterable, Literal

import yaml
from pydantic import Field, PositiveFloat, PositiveInt
from pydantic_settings import BaseSettings, SettingsConfigDict

PROJECT_ROOT = Path(__file__).resolve().parents[3]
DEFAULT_DB_PATH = PROJECT_ROOT / "var" / "data" / "openstore.db"

DEFAULT_CONFIG_LOCATIONS: tuple[Path, ...] = (
    Path("/etc/openstore/api.yaml"),
    Path("/etc/openstore/api.yml"),
    Path("./config/api.yaml"),
    Path("./config/api.yml"),
)


class ApiSettings(BaseSettings):
    """Process/runtime settings for the store API server."""

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_prefix="OPENSTORE_API_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    host: str = Field(default="127.0.0.1", description="Bind address for the store API.")
    port: PositiveInt = Field(default=8080, description="Port for the store API.")
    reload: bool = Field(default=False, description="Enable uvicorn auto-reload (dev only).")
    log_level: Literal["critical", "error", "warning", "info", "debug", "trace"] = Field(
        default="info",
        description="Log level for store API / uvicorn.",
    )


class StoreSettings(BaseSettings):
    """Validated settings for revision storage, locking and review."""

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_prefix="OPENSTORE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    database_url: str | None = Field(
        default=None,
        description="SQLAlchemy database URL; defaults to a local SQLite file.",
    )
    server_host: str = Field(
        default="http://localhost:8080",
        description="Public base URL used when building download and icon links.",
    )

    # File layout
    data_dir: Path = Field(
        default=Path("./var/data/clicks"),
        description="Directory holding canonical click artifacts.",
    )
    icon_dir: Path = Field(
        default=Path("./var/data/icons"),
        description="Directory holding canonical package icons.",
    )
    upload_dir: Path = Field(
        default_factory=lambda: Path(tempfile.gettempdir()),
        description="Directory where multipart uploads are spooled before ingestion.",
    )

    # Revision locks
    lock_timeout_seconds: PositiveFloat = Field(
        default=30.0,
        description="Lifetime of a revision lock before other workers may purge it.",
    )
    lock_wait_seconds: PositiveFloat = Field(
        default=0.5,
        description="Delay between lock acquisition attempts.",
    )
    lock_max_retries: PositiveInt = Field(
        default=100,
        description="Maximum lock acquisition attempts before giving up.",
    )

    # Automated review
    clickreview_command: str = Field(
        default="click-review",
        description="Executable used for automated click review.",
    )
    clickreview_pythonpath: str | None = Field(
        default=None,
        description="PYTHONPATH handed to the review executable.",
    )
    clickreview_timeout_seconds: PositiveFloat = Field(
        default=20.0,
        description="Seconds click-review may run before the upload is flagged for manual review.",
    )

    config_path: Path | None = Field(
        default=None,
        description="Resolved path to the on-disk config that seeded the settings.",
        exclude=True,
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[StoreSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            cls._yaml_settings_source,
            file_secret_settings,
        )

    @staticmethod
    def _yaml_settings_source(settings_cls: type[StoreSettings] | None = None) -> Dict[str, Any]:
        for path in StoreSettings._resolve_candidate_paths():
            data = StoreSettings._load_file(path)
            if data is not None:
                data.setdefault("config_path", path)
                return data
        return {}

    @staticmethod
    def _resolve_candidate_paths() -> Iterable[Path]:
        explicit = os.getenv("OPENSTORE_CONFIG_FILE")
        if explicit:
            yield Path(explicit).expanduser()
        yield from DEFAULT_CONFIG_LOCATIONS

    @staticmethod
    def _load_file(path: Path) -> Dict[str, Any] | None:
        if not path.is_file():
            return None
        suffix = path.suffix.lower()
        try:
            with path.open("r", encoding="utf-8") as handle:
                if suffix in {".yaml", ".yml"}:
                    raw = yaml.safe_load(handle)
                elif suffix == ".json":
                    raw = json.load(handle)
                else:
                    return None
        except OSError as exc:
            raise RuntimeError(f"Failed to read store config file {path}") from exc
        except (yaml.YAMLError, json.JSONDecodeError) as exc:
            raise ValueError(f"Invalid store config file {path}") from exc

        if raw is None:
            return {}
        if not isinstance(raw, dict):
            raise ValueError(f"Store config file {path} must contain a mapping at top level.")
        return raw

    def resolved_database_url(self) -> str:
        if self.database_url:
            return self.database_url
        DEFAULT_DB_PATH.parent.mkdir(parents=True, exist_ok=True)
        return f"sqlite:///{DEFAULT_DB_PATH.as_posix()}"


@lru_cache()
def get_settings() -> StoreSettings:
    """Return memoized store settings."""

    settings = StoreSettings()
    # Ensure path fields are absolute for downstream use
    settings.data_dir = settings.data_dir.expanduser().resolve()
    settings.icon_dir = settings.icon_dir.expanduser().resolve()
    settings.upload_dir = settings.upload_dir.expanduser().resolve()
    return settings


@lru_cache()
def get_api_settings() -> ApiSettings:
    """Return memoized API process settings."""

    return ApiSettings()
