# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
plugman Configuration - Single source of truth.
YAML is king. Env vars ONLY for deployment overrides.

- ALL configuration in plain text (YAML)
- NO hidden state - everything inspectable via `cat`, `grep`
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

import yaml

from plugman.core.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_PLUGINS_DIR = "~/.config/plugman/plugins"


# =============================================================================
# CONFIGURATION DATACLASS
# =============================================================================

@dataclass(frozen=True)
class Config:
    """
    Immutable plugin manager configuration.
    All values from YAML. No hidden state.
    """

    # -- Host application --
    host_name: str = "core"
    host_version: str = "0.0.0"

    # -- Paths --
    plugins_dir: str = DEFAULT_PLUGINS_DIR
    transactions_log: Optional[str] = None

    # -- Sources --
    channels: List[str] = field(default_factory=list)
    repositories: List[str] = field(default_factory=list)

    # -- HTTP --
    fetch_timeout: float = 10.0
    download_timeout: float = 60.0

    # -- Logging --
    log_level: str = "INFO"
    log_format: str = "json"

    @property
    def plugins_path(self) -> Path:
        return Path(self.plugins_dir).expanduser()

    @property
    def transactions_path(self) -> Path:
        """Transaction log defaults to a sibling of the plugin root"""
        if self.transactions_log:
            return Path(self.transactions_log).expanduser()
        return self.plugins_path.parent / "transactions.jsonl"


# =============================================================================
# LOADER
# =============================================================================

def load_config(path: str = "configs/plugman.yaml") -> Config:
    """
    Load configuration from YAML.
    Returns defaults (plus env overrides) if file doesn't exist.

    Raises:
        ConfigurationError: If the file is not valid YAML or not a mapping
    """
    config_path = Path(path)
    y = {}
    if not config_path.exists():
        logger.warning(f"Config not found at {path}, using defaults")
    else:
        try:
            with open(config_path) as f:
                y = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML: {e}", config_file=str(config_path))

        if not isinstance(y, dict):
            raise ConfigurationError(
                "Configuration root must be a mapping",
                config_file=str(config_path)
            )

    # Helper to safely navigate nested dicts
    def get(d: dict, *keys, default=None):
        for k in keys:
            if not isinstance(d, dict):
                return default
            d = d.get(k, {})
        return d if d != {} else default

    return Config(
        # Host
        host_name=get(y, "host", "name") or "core",
        host_version=os.getenv("PLUGMAN_HOST_VERSION") or str(get(y, "host", "version") or "0.0.0"),

        # Paths
        plugins_dir=os.getenv("PLUGMAN_PLUGINS_DIR") or get(y, "paths", "plugins") or DEFAULT_PLUGINS_DIR,
        transactions_log=get(y, "paths", "transactions"),

        # Sources
        channels=list(get(y, "sources", "channels") or []),
        repositories=list(get(y, "sources", "repositories") or []),

        # HTTP
        fetch_timeout=float(get(y, "http", "timeouts", "fetch", default=10.0)),
        download_timeout=float(get(y, "http", "timeouts", "download", default=60.0)),

        # Logging
        log_level=get(y, "logging", "level") or "INFO",
        log_format=get(y, "logging", "format") or "json",
    )


# Global config instance (loaded once)
_config: Optional[Config] = None


def get_config() -> Config:
    """Get global config instance (singleton)"""
    global _config
    if _config is None:
        _config = load_config(os.getenv("PLUGMAN_CONFIG", "configs/plugman.yaml"))
    return _config
