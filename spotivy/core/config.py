"""Run configuration: JSON file, then environment, then command line."""

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from spotivy.core.models import ConfigError, Intent, SyncOptions

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = Path("config.json")
DEFAULT_OUTPUT = "tracks"

ENV_OVERRIDES = {
    "SPOTIFY_USERNAME": ("spotify", "username"),
    "SPOTIFY_CLIENT_ID": ("spotify", "client_id"),
    "SPOTIFY_CLIENT_SECRET": ("spotify", "client_secret"),
    "YOUTUBE_API_KEY": ("youtube", "api_key"),
}


@dataclass
class Config:
    username: str
    spotify_client_id: str
    spotify_client_secret: str
    youtube_api_key: str
    output: Path = Path(DEFAULT_OUTPUT)
    intent: Intent = Intent.VIDEO
    debug: bool = False
    log_file: Path | None = None

    def sync_options(self) -> SyncOptions:
        return SyncOptions(output_root=self.output, intent=self.intent)


def load_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        logger.debug(f"No config file at {path}, using environment only")
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ConfigError(f"Config file {path} is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain an object")
    return data


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigError(f"Config '{name}' must be an object")
    return section


def parse_intent(value: str) -> Intent:
    try:
        return Intent(str(value).lower())
    except ValueError:
        raise ConfigError(f"Unknown format '{value}', expected 'video' or 'audio'")


def load_config(path: Path = DEFAULT_CONFIG_FILE, *, output: str | None = None,
                fmt: str | None = None, audio: bool = False, debug: bool = False,
                environ: dict[str, str] | None = None) -> Config:
    """Build the run configuration. Command line values win over file values."""
    env = os.environ if environ is None else environ
    data = load_file(Path(path))
    sections = {"spotify": dict(_section(data, "spotify")),
                "youtube": dict(_section(data, "youtube"))}

    for var, (section, key) in ENV_OVERRIDES.items():
        if env.get(var):
            sections[section][key] = env[var]

    values = {
        "username": sections["spotify"].get("username"),
        "spotify_client_id": sections["spotify"].get("client_id"),
        "spotify_client_secret": sections["spotify"].get("client_secret"),
        "youtube_api_key": sections["youtube"].get("api_key"),
    }
    missing = [name for name, value in values.items() if not value]
    if missing:
        raise ConfigError(f"Missing config: {', '.join(missing)}")

    intent = parse_intent(fmt or data.get("format") or Intent.VIDEO.value)
    if audio:
        intent = Intent.AUDIO

    file_debug = data.get("debug", False)
    if not isinstance(file_debug, bool):
        raise ConfigError(f"Config 'debug' must be true or false, got {file_debug!r}")

    log_file = data.get("log_file")
    return Config(
        output=Path(output or data.get("output") or DEFAULT_OUTPUT),
        intent=intent,
        debug=debug or file_debug,
        log_file=Path(log_file) if log_file else None,
        **values,
    )
