from __future__ import annotations

import os
import re
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigError

DEFAULT_ALLOWED_ORIGINS: list[str] = [
    "http://localhost",
    "https://localhost",
    "chrome-extension://*",
]

_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")


def _default_search_paths(env: Mapping[str, str]) -> list[Path]:
    return [
        Path("./configs/config.yaml"),
        Path("./config.yaml"),
        Path(env.get("HOME", "")) / ".config" / "mcp-browser" / "config.yaml",
    ]


def _parse_leading_int(raw: str) -> int | None:
    match = _LEADING_INT_RE.match(raw or "")
    if match is None:
        return None
    return int(match.group(1))


@dataclass
class ServerConfig:
    name: str = "Browser Automation Server"
    version: str = "1.0.0"


@dataclass
class WebSocketConfig:
    host: str = "localhost"
    port: int = 8765
    reconnect_ms: int = 5000
    ping_interval: int = 30
    allowed_origins: list[str] = field(default_factory=lambda: list(DEFAULT_ALLOWED_ORIGINS))


@dataclass
class BrowserSettings:
    default_timeout: int = 30000
    max_tabs: int = 100


@dataclass
class LoggingConfig:
    level: str = "info"
    format: str = "json"


def _apply_section(section: Any, raw: Any, label: str) -> None:
    """Overlay keys present in ``raw`` onto a section dataclass, keeping defaults otherwise."""
    if raw is None:
        return
    if not isinstance(raw, dict):
        raise ConfigError(f"config section '{label}' must be a mapping")
    for f in fields(section):
        if f.name not in raw:
            continue
        value = raw[f.name]
        current = getattr(section, f.name)
        if isinstance(current, bool) or not isinstance(current, (int, str, list)):
            setattr(section, f.name, value)
        elif isinstance(current, int):
            try:
                setattr(section, f.name, int(value))
            except (TypeError, ValueError) as exc:
                raise ConfigError(f"{label}.{f.name}: expected an integer, got {value!r}") from exc
        elif isinstance(current, list):
            if not isinstance(value, list):
                raise ConfigError(f"{label}.{f.name}: expected a list")
            setattr(section, f.name, [str(v) for v in value])
        else:
            setattr(section, f.name, "" if value is None else str(value))


@dataclass
class BridgeConfig:
    server: ServerConfig = field(default_factory=ServerConfig)
    websocket: WebSocketConfig = field(default_factory=WebSocketConfig)
    browser: BrowserSettings = field(default_factory=BrowserSettings)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    source: str | None = None

    @classmethod
    def find_config_file(cls, env: Mapping[str, str] | None = None) -> Path | None:
        env = os.environ if env is None else env
        explicit = env.get("MCP_BROWSER_CONFIG")
        if explicit:
            return Path(explicit).expanduser()
        for candidate in _default_search_paths(env):
            if candidate.is_file():
                return candidate
        return None

    @classmethod
    def from_yaml(cls, path: Path) -> BridgeConfig:
        cfg = cls()
        try:
            raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except OSError as exc:
            raise ConfigError(f"cannot read config file {path}: {exc}") from exc
        except yaml.YAMLError as exc:
            raise ConfigError(f"cannot parse config file {path}: {exc}") from exc
        if not isinstance(raw, dict):
            raise ConfigError(f"config file {path} must contain a mapping")
        _apply_section(cfg.server, raw.get("server"), "server")
        _apply_section(cfg.websocket, raw.get("websocket"), "websocket")
        _apply_section(cfg.browser, raw.get("browser"), "browser")
        _apply_section(cfg.logging, raw.get("logging"), "logging")
        cfg.source = str(path)
        return cfg

    @classmethod
    def load(cls, env: Mapping[str, str] | None = None) -> BridgeConfig:
        """Defaults, then the YAML file (if any), then environment overrides."""
        env = os.environ if env is None else env
        path = cls.find_config_file(env)
        cfg = cls.from_yaml(path) if path is not None else cls()

        host = env.get("MCP_BROWSER_WS_HOST")
        if host:
            cfg.websocket.host = host
        port_raw = env.get("MCP_BROWSER_WS_PORT")
        if port_raw:
            port = _parse_leading_int(port_raw)
            if port is not None:
                cfg.websocket.port = port
        return cfg

    @property
    def request_timeout(self) -> float:
        """Ceiling on a single extension round-trip, in seconds."""
        return max(0.0, self.websocket.reconnect_ms / 1000.0)
