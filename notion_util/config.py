"""
Configuration management for notion-util.

The configuration is stored as a TOML file, by default
``~/.notion-util/config.toml`` (override with NOTION_UTIL_CONFIG).
It names the workspace, which database each collection kind addresses,
and the fixed pages new content is inserted under.  When no file exists
the built-in defaults are used.

The Notion token is never stored in the file; it is read from the
environment variable named by ``token_env``.
"""

import os
import tomllib
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Any, Optional

import tomli_w

from .errors import ConfigError


CONFIG_FILENAME = "config.toml"
CONFIG_VERSION = 1

BOOK = "BOOK"
DRAFT = "DRAFT"
NOTE = "NOTE"
PEOPLE = "PRM"

DEFAULT_WORKSPACE_URL = "https://www.notion.so/kekefam/"


@dataclass
class KindConfig:
    """Where a collection kind lives and which date property it stamps."""
    url: str
    date_property: Optional[str] = None
    date_code: Optional[str] = None


def _default_kinds() -> dict[str, KindConfig]:
    base = DEFAULT_WORKSPACE_URL
    return {
        BOOK: KindConfig(
            base + "4044898e951546df9fadbbba4d98c10f?v=59575ce5af824944a6bc7bd95a14704e",
            date_property="Read at",
            date_code="fz`,",
        ),
        DRAFT: KindConfig(
            base + "0131e73ca2b147cc802692d60fd4a56d?v=4d82e5866a4c426fa788b1b72b46dff6",
        ),
        NOTE: KindConfig(
            base + "80f1b4ba615949faa9625bc42c5fb531?v=c1d00e9c432347c189b0055c24722312",
        ),
        PEOPLE: KindConfig(
            base + "6a3eb7d328bc4e328a9babb598d44d0e?v=6415bd5b087143808dcc7d16a96710ee",
            date_property="Met at",
            date_code="87:u",
        ),
    }


@dataclass
class Parents:
    """Fixed insertion points for new content."""
    memo: str = "34b815a1-89e7-4fb0-9e24-89d01a62a6d7"
    drafts: str = "02c93613-79e4-4964-9d28-59dbf5c3e3e8"
    # Collection id of the daily notes database; resolved from the NOTE
    # kind when unset
    daily_notes: Optional[str] = None


@dataclass
class Config:
    """Complete notion-util configuration."""
    path: Optional[Path] = None
    version: int = CONFIG_VERSION
    workspace_url: str = DEFAULT_WORKSPACE_URL
    api_url: str = "https://www.notion.so/api/v3"
    token_env: str = "NOTION_TOKEN"
    utc_offset_hours: float = 9
    time_zone: str = "Asia/Seoul"
    kinds: dict[str, KindConfig] = field(default_factory=_default_kinds)
    parents: Parents = field(default_factory=Parents)
    today_retries: int = 3
    today_retry_delay: float = 0.5

    @property
    def utc_offset(self) -> timedelta:
        return timedelta(hours=self.utc_offset_hours)

    def kind(self, name: str) -> KindConfig:
        try:
            return self.kinds[name]
        except KeyError:
            raise ConfigError(
                f"Unknown collection kind: {name!r}. Configured: {sorted(self.kinds)}"
            ) from None

    def token(self) -> str:
        """Read the Notion token from the configured environment variable."""
        token = os.environ.get(self.token_env)
        if not token:
            raise ConfigError(f"Set {self.token_env} to your Notion token_v2")
        return token


def get_config_path() -> Path:
    """Config file location, respecting NOTION_UTIL_CONFIG."""
    override = os.environ.get("NOTION_UTIL_CONFIG")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".notion-util" / CONFIG_FILENAME


def load_config(path: Path) -> Config:
    """
    Load configuration from a TOML file.

    Kinds named in the file replace the defaults of the same name;
    other default kinds are kept.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ConfigError: If the file is invalid
    """
    if not path.exists():
        raise FileNotFoundError(f"Config not found: {path}")

    with open(path, "rb") as f:
        try:
            data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Invalid config {path}: {e}") from e

    version = data.get("config", {}).get("version", 1)
    if version > CONFIG_VERSION:
        raise ConfigError(f"Config version {version} is newer than supported ({CONFIG_VERSION})")

    notion = data.get("notion", {})
    time_section = data.get("time", {})
    today_section = data.get("today", {})

    kinds = _default_kinds()
    for name, section in data.get("kinds", {}).items():
        if "url" not in section:
            raise ConfigError(f"kinds.{name} is missing 'url'")
        kinds[name] = KindConfig(
            url=section["url"],
            date_property=section.get("date_property"),
            date_code=section.get("date_code"),
        )

    defaults = Config()
    parents_section = data.get("parents", {})
    parents = Parents(
        memo=parents_section.get("memo", defaults.parents.memo),
        drafts=parents_section.get("drafts", defaults.parents.drafts),
        daily_notes=parents_section.get("daily_notes"),
    )

    return Config(
        path=path,
        version=version,
        workspace_url=notion.get("workspace_url", defaults.workspace_url),
        api_url=notion.get("api_url", defaults.api_url),
        token_env=notion.get("token_env", defaults.token_env),
        utc_offset_hours=time_section.get("utc_offset_hours", defaults.utc_offset_hours),
        time_zone=time_section.get("time_zone", defaults.time_zone),
        kinds=kinds,
        parents=parents,
        today_retries=today_section.get("retries", defaults.today_retries),
        today_retry_delay=today_section.get("retry_delay", defaults.today_retry_delay),
    )


def save_config(config: Config, path: Optional[Path] = None) -> Path:
    """
    Save configuration as TOML.

    Creates the directory if it doesn't exist.
    """
    path = path or config.path or get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    def kind_to_dict(k: KindConfig) -> dict[str, Any]:
        d: dict[str, Any] = {"url": k.url}
        if k.date_property:
            d["date_property"] = k.date_property
        if k.date_code:
            d["date_code"] = k.date_code
        return d

    parents: dict[str, Any] = {
        "memo": config.parents.memo,
        "drafts": config.parents.drafts,
    }
    if config.parents.daily_notes:
        parents["daily_notes"] = config.parents.daily_notes

    data = {
        "config": {"version": config.version},
        "notion": {
            "workspace_url": config.workspace_url,
            "api_url": config.api_url,
            "token_env": config.token_env,
        },
        "time": {
            "utc_offset_hours": config.utc_offset_hours,
            "time_zone": config.time_zone,
        },
        "today": {
            "retries": config.today_retries,
            "retry_delay": config.today_retry_delay,
        },
        "kinds": {name: kind_to_dict(k) for name, k in config.kinds.items()},
        "parents": parents,
    }

    with open(path, "wb") as f:
        tomli_w.dump(data, f)
    config.path = path
    return path


def load_or_default_config(path: Optional[Path] = None) -> Config:
    """
    Load the config file if it exists, else the built-in defaults.

    This is the main entry point for config management.
    """
    path = path or get_config_path()
    if path.exists():
        return load_config(path)
    return Config()
