from __future__ import annotations
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from hackbot.errors import ConfigError
from shared.log import get_logger
from shared.utils import is_valid_nick, is_ws_url

logger = get_logger(__name__)

DEFAULT_KEEPALIVE_INTERVAL = 60.0


@dataclass(frozen=True)
class BotConfig:
    server: str = ""
    channel: str = ""
    nick: str = ""
    password: str = ""
    keepalive_interval: float = DEFAULT_KEEPALIVE_INTERVAL
    case_sensitive: bool = False
    log_level: str = "INFO"

    def validate(self) -> 'BotConfig':
        """Return self if usable, otherwise raise ConfigError naming the problem"""
        for name in ("server", "channel", "nick", "password", "log_level"):
            if not isinstance(getattr(self, name), str):
                raise ConfigError(f"'{name}' must be a string")
        if not isinstance(self.case_sensitive, bool):
            raise ConfigError("'case_sensitive' must be true or false")
        missing = [name for name in ("server", "channel", "nick") if not getattr(self, name)]
        if missing:
            raise ConfigError(f"Missing required settings: {', '.join(missing)}")
        if not is_ws_url(self.server):
            raise ConfigError(f"Server must be a ws:// or wss:// URL: {self.server}")
        if not is_valid_nick(self.nick):
            raise ConfigError(f"Invalid nick: {self.nick!r}")
        if self.keepalive_interval <= 0:
            raise ConfigError("keepalive_interval must be positive")
        return self

    def __repr__(self) -> str:
        # Keep the channel password out of logs
        shown = "***" if self.password else "''"
        return (f"BotConfig(server={self.server!r}, channel={self.channel!r}, nick={self.nick!r}, "
                f"password={shown}, keepalive_interval={self.keepalive_interval}, "
                f"case_sensitive={self.case_sensitive})")


def load_config_file(path: Path) -> Dict[str, Any]:
    """Read a YAML mapping of BotConfig fields. Unknown keys are ignored with a warning."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")

    known = {f.name for f in fields(BotConfig)}
    for key in sorted(set(data) - known):
        logger.warning("Ignoring unknown config key %r in %s", key, path)
    return {k: v for k, v in data.items() if k in known}


def load_config(config_path: Optional[Path] = None, **overrides: Any) -> BotConfig:
    """
    Build a validated BotConfig.

    Values come from the optional YAML file first; any override that is not
    None (CLI flags, which typer already resolved against HACK_* variables)
    replaces the file value.
    """
    config = BotConfig()
    if config_path is not None:
        file_values = load_config_file(config_path)
        try:
            config = replace(config, **file_values)
        except TypeError as e:
            raise ConfigError(f"Bad config file {config_path}: {e}") from e

    given = {k: v for k, v in overrides.items() if v is not None}
    config = replace(config, **given)

    try:
        config = replace(
            config,
            password=config.password or "",
            keepalive_interval=float(config.keepalive_interval),
        )
    except (TypeError, ValueError) as e:
        raise ConfigError(f"keepalive_interval must be a number: {config.keepalive_interval!r}") from e

    return config.validate()
