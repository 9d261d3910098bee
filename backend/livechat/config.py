"""LiveChat relay configuration.

Loads settings from a single YAML file:
  * livechat.settings.yaml  (path overridable via LIVECHAT_SETTINGS)

The PORT environment variable, when set, overrides ``server.port`` so the
relay can be dropped onto hosts that assign the port at launch.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field

from livechat.chat.engine import DEFAULT_ROOM_NAME
from livechat.chat.history import API_HISTORY_SIZE, JOIN_HISTORY_SIZE, MAX_HISTORY

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

SETTINGS_FILE = Path("livechat.settings.yaml")
SETTINGS_ENV_VAR = "LIVECHAT_SETTINGS"
PORT_ENV_VAR = "PORT"


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        logger.warning("Config file not found: %s", path)
        return {}
    with path.open(encoding="utf-8") as fh:
        return yaml.safe_load(fh) or {}


# ---------------------------------------------------------------------------
# Settings models
# ---------------------------------------------------------------------------


class ServerSettings(BaseModel):
    host:            str       = "0.0.0.0"
    port:            int       = 3000
    allowed_origins: List[str] = Field(default_factory=lambda: ["*"])
    static_dir:      str       = "public"


class LoggingSettings(BaseModel):
    level: str = "info"


class RoomSettings(BaseModel):
    """Room display name and history sizes."""
    name:         str = DEFAULT_ROOM_NAME
    max_history:  int = Field(default=MAX_HISTORY, ge=1)
    join_history: int = Field(default=JOIN_HISTORY_SIZE, ge=0)
    api_history:  int = Field(default=API_HISTORY_SIZE, ge=0)


class AppConfig(BaseModel):
    server:  ServerSettings  = Field(default_factory=ServerSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    room:    RoomSettings    = Field(default_factory=RoomSettings)


# ---------------------------------------------------------------------------
# Public loader
# ---------------------------------------------------------------------------


def load_config(settings_path: Optional[Path] = None) -> AppConfig:
    """Load *AppConfig* from YAML, then apply environment overrides."""
    if settings_path is None:
        settings_path = Path(os.environ.get(SETTINGS_ENV_VAR, SETTINGS_FILE))
    data = _load_yaml(Path(settings_path))

    port = os.environ.get(PORT_ENV_VAR)
    if port:
        server = data.get("server") or {}
        server["port"] = port
        data["server"] = server

    config = AppConfig(**data)
    logger.info(
        "Settings loaded (server=%s:%s, room=%s, max_history=%d)",
        config.server.host,
        config.server.port,
        config.room.name,
        config.room.max_history,
    )
    return config


_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Return the process-wide config, loading it on first use."""
    global _config
    if _config is None:
        _config = load_config()
    return _config
