"""MSP Lite configuration — reads from msplite.toml, env vars, and CLI args."""

import logging
import os
import sys
from pathlib import Path
from typing import Dict, Any
from pydantic_settings import BaseSettings
from pydantic import Field

# Handle tomli import for Python < 3.11 compatibility
if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

logger = logging.getLogger("msplite.config")


class AppSettings(BaseSettings):
    """Web app settings."""

    # Server
    host: str = "127.0.0.1"
    port: int = 8500
    log_level: str = "info"

    # Auth for the browser-facing API
    api_key: str = Field(default="msplite_dev_key", alias="MSPLITE_API_KEY")

    # Schedule backend
    backend_url: str = Field(default="http://localhost:7071/api", alias="MSPLITE_BACKEND_URL")
    backend_timeout: float = 60.0

    # Session defaults
    default_project_id: str = "1"
    buffer_days: int = 30
    default_template: str = "Solar EPC Master v1"

    model_config = {"env_prefix": "MSPLITE_", "env_file": ".env", "populate_by_name": True}


def _load_toml_config() -> Dict[str, Any]:
    """Load configuration from msplite.toml files.

    Searches for msplite.toml in:
    1. MSPLITE_HOME (~/.msplite/msplite.toml by default)
    2. Current directory (./msplite.toml)

    Later files take precedence.
    """
    config: Dict[str, Any] = {}

    home = Path(os.environ.get("MSPLITE_HOME", "~/.msplite")).expanduser()
    for path in (home / "msplite.toml", Path("msplite.toml")):
        if not path.exists():
            continue
        try:
            with path.open("rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            logger.warning(f"Ignoring unreadable config {path}: {e}")
            continue
        # Accept either a flat file or an [msplite] table
        config.update(data.get("msplite", data))

    return config


def get_settings() -> AppSettings:
    toml_config = _load_toml_config()
    settings = AppSettings()

    # Environment wins over toml: only fill fields the env did not set
    for key, value in toml_config.items():
        if key in AppSettings.model_fields and key not in settings.model_fields_set:
            setattr(settings, key, value)

    return settings
