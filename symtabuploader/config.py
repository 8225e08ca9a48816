"""Configuration from environment and CLI overrides (no hardcoded secrets)."""

import logging
from pathlib import Path
from typing import Any, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

log = logging.getLogger(__name__)

# Mapping files and symbol files go to different endpoints
MAPPING_UPLOAD_URL = "http://bugly.qq.com/upload/map"
SYMBOL_UPLOAD_URL = "http://bugly.qq.com/upload/symbol"

# One record of a log file: <file> --> <sha-1>[ --> <extra info>]
SYMBOL_LOG_FILE_NAME = "BuglySymbolLog.txt"
UPLOAD_LOG_FILE_NAME = "BuglyUploadLog.txt"
LOG_RECORD_MAXIMUM_NUMBER = 200
LOG_RECORD_SEPARATOR = " --> "


class Settings(BaseSettings):
    """Uploader settings from env (BUGLY_APP_ID, BUGLY_APP_KEY, ...)."""

    model_config = SettingsConfigDict(env_prefix="BUGLY_", extra="ignore")

    # Bugly platform credentials
    app_id: Optional[str] = None
    app_key: Optional[str] = None

    # Switches: execute=False makes the whole run a no-op, upload=False only skips the network
    execute: bool = True
    upload: bool = True

    # Where symbol files and the two record logs are written (project dir when unset)
    output_dir: Optional[Path] = None

    mapping_upload_url: str = MAPPING_UPLOAD_URL
    symbol_upload_url: str = SYMBOL_UPLOAD_URL
    http_timeout: float = 30.0

    # External symbol tool (buglySymbolAndroid.jar)
    symtab_tool_jar: Optional[Path] = None
    java_executable: str = "java"
    symtab_tool_timeout: float = 600.0

    # Logging (empty log_file = stderr only; level DEBUG|INFO|WARNING|ERROR)
    log_level: str = "INFO"
    log_file: str = ""

    @field_validator("app_id", "app_key", "output_dir", "symtab_tool_jar", mode="before")
    @classmethod
    def _empty_as_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value


def get_settings(**overrides: Any) -> Settings:
    """Return settings from env; non-None keyword overrides (e.g. CLI options) win."""
    return Settings(**{k: v for k, v in overrides.items() if v is not None})


def resolve_output_dir(output_dir: Optional[Path], project_dir: Path) -> Optional[Path]:
    """
    Absolute output directory, created if missing. A directory that cannot be created
    as given is retried relative to project_dir. Returns None when unset or not creatable.
    """
    if output_dir is None:
        return None
    candidate = Path(output_dir)
    if not candidate.exists():
        try:
            candidate.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            log.debug("Could not create output dir %s: %s", candidate, e)
            candidate = Path(project_dir) / output_dir
            try:
                candidate.mkdir(parents=True, exist_ok=True)
            except OSError as e2:
                log.warning("Could not create output dir %s: %s", candidate, e2)
                return None
    return candidate.absolute()


def get_log_dir(output_dir: Optional[Path], project_dir: Path) -> Path:
    """Directory holding both record logs: the resolved output dir, else the project dir."""
    return output_dir if output_dir is not None else Path(project_dir).absolute()


def get_symbol_log_path(log_dir: Path) -> Path:
    """Path to the symbol-generation log (binary -> generated symbol file)."""
    return Path(log_dir) / SYMBOL_LOG_FILE_NAME


def get_upload_log_path(log_dir: Path) -> Path:
    """Path to the upload log (files already uploaded with this content)."""
    return Path(log_dir) / UPLOAD_LOG_FILE_NAME
