# Config
"""
Configuration for the inventory sheet sync.

Values are read from the environment (and a local .env file) once, the first
time get_settings() is called.
"""

import os
import re
from datetime import date, timedelta, tzinfo
from pathlib import Path
from typing import List, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from inventory_sync.utils.errors import ConfigurationError, MissingConfigurationError

load_dotenv()

PLATFORMS = ("linux", "windows")
# Tokens firmware writes into empty SMBIOS serial fields are included
DEFAULT_PLACEHOLDER_SERIALS = (
    "NONE,NA,N/A,NULL,UNKNOWN,-,"
    "NOT SPECIFIED,TO BE FILLED BY O.E.M.,DEFAULT STRING,SYSTEM SERIAL NUMBER"
)


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    """Read an environment variable, dropping stray quote characters."""
    value = os.getenv(name)
    if value is None:
        return default
    return value.replace('"', "").replace("'", "")


def _env_flag(name: str, default: bool) -> bool:
    value = _env(name)
    if value is None:
        return default
    return value.strip().lower() != "false"


def parse_retention(value: str) -> timedelta:
    """Parse a retention string like '30d', '2m' or '1y'."""
    match = re.fullmatch(r"(\d+)([dmy])", value.strip())
    if not match:
        raise ConfigurationError(
            f"Invalid log retention '{value}'", {"expected": "<number>d|m|y"}
        )
    days_per_unit = {"d": 1, "m": 30, "y": 365}
    return timedelta(days=int(match.group(1)) * days_per_unit[match.group(2)])


class Settings(BaseModel):
    model_config = ConfigDict(validate_default=True)

    # Google Sheets
    credentials_file: Path = Field(
        default_factory=lambda: Path(_env("GOOGLE_CREDENTIALS_FILE", "./credentials.json"))
    )
    spreadsheet_id: Optional[str] = Field(default_factory=lambda: _env("SPREADSHEET_ID"))
    worksheet_name: str = Field(default_factory=lambda: _env("WORKSHEET_NAME", "Inventory"))

    # Report files
    directory_path: Path = Field(default_factory=lambda: Path(_env("DIRECTORY_PATH", "./sources")))
    file_pattern: str = Field(default_factory=lambda: _env("FILE_PATTERN", r"\.txt$"))

    # Batch behaviour
    continue_on_error: bool = Field(default_factory=lambda: _env_flag("CONTINUE_ON_ERROR", True))
    platform: str = Field(default_factory=lambda: _env("PLATFORM", "linux"))
    rules_file: Optional[Path] = Field(
        default_factory=lambda: Path(_env("RULES_FILE")) if _env("RULES_FILE") else None
    )
    timezone: str = Field(default_factory=lambda: _env("TIMEZONE", "Asia/Jakarta"))
    placeholder_serials: List[str] = Field(
        default_factory=lambda: _env("PLACEHOLDER_SERIALS", DEFAULT_PLACEHOLDER_SERIALS)
    )
    highlight_color: Tuple[float, float, float] = Field(
        default_factory=lambda: _env("HIGHLIGHT_COLOR", "1,0.8,0.6")
    )

    # Logging
    log_level: str = Field(default_factory=lambda: _env("LOG_LEVEL", "INFO").upper())
    log_dir: Path = Field(default_factory=lambda: Path(_env("LOG_DIR", "./logs")))
    log_to_file: bool = Field(default_factory=lambda: _env_flag("LOG_FILE", True))
    log_file_prefix: str = Field(default_factory=lambda: _env("LOG_FILE_PREFIX", "inventory-sync"))
    log_max_files: str = Field(default_factory=lambda: _env("LOG_MAX_FILES", "30d"))
    dev_mode: bool = Field(default_factory=lambda: _env_flag("DEV_MODE", False))

    @field_validator("platform")
    @classmethod
    def validate_platform(cls, v: str) -> str:
        """Only the bundled platform profiles are accepted."""
        v = v.strip().lower()
        if v not in PLATFORMS:
            raise ValueError(f"platform must be one of {', '.join(PLATFORMS)}")
        return v

    @field_validator("placeholder_serials", mode="before")
    @classmethod
    def split_placeholders(cls, v):
        if isinstance(v, str):
            return [item.strip().upper() for item in v.split(",") if item.strip()]
        return [str(item).strip().upper() for item in v]

    @field_validator("highlight_color", mode="before")
    @classmethod
    def parse_color(cls, v):
        if isinstance(v, str):
            v = [part.strip() for part in v.split(",")]
        return tuple(float(part) for part in v)

    @field_validator("highlight_color")
    @classmethod
    def validate_color(cls, v: Tuple[float, float, float]) -> Tuple[float, float, float]:
        if any(channel < 0 or channel > 1 for channel in v):
            raise ValueError("highlight_color channels must be between 0 and 1")
        return v

    @field_validator("log_max_files")
    @classmethod
    def validate_retention(cls, v: str) -> str:
        try:
            parse_retention(v)
        except ConfigurationError as e:
            raise ValueError(e.message)
        return v

    @property
    def log_retention(self) -> timedelta:
        return parse_retention(self.log_max_files)

    @property
    def tz(self) -> tzinfo:
        """Zone used to stamp processed-at times."""
        try:
            return ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            raise ConfigurationError(f"Unknown timezone '{self.timezone}'")

    @property
    def file_regex(self) -> "re.Pattern[str]":
        return re.compile(self.file_pattern, re.IGNORECASE)

    def require_spreadsheet_id(self) -> str:
        """Return the spreadsheet id or fail when it is not configured."""
        if not self.spreadsheet_id:
            raise MissingConfigurationError("SPREADSHEET_ID")
        return self.spreadsheet_id

    def get_log_file_path(self) -> Optional[Path]:
        """Daily log file path, creating the log directory on demand."""
        if not self.log_to_file:
            return None
        self.log_dir.mkdir(parents=True, exist_ok=True)
        return self.log_dir / f"{self.log_file_prefix}-{date.today().isoformat()}.log"


# Singleton instance
_settings = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        try:
            _settings = Settings()
        except ValidationError as e:
            raise ConfigurationError("Invalid configuration", {"errors": e.errors()}) from e
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    global _settings
    _settings = None
