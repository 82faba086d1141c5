# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
FastAPI application exposing the plugin manager
"""

from typing import Optional

from fastapi import FastAPI

from plugman import __version__
from plugman.api import plugins as plugins_api
from plugman.core.config import Config, get_config
from plugman.core.logging import configure_logging
from plugman.services.plugins import PluginService


def create_app(config: Optional[Config] = None, service: Optional[PluginService] = None) -> FastAPI:
    """
    Build the API application.

    Args:
        config: Configuration (defaults to the global config)
        service: Pre-built plugin service (defaults to one built from config)
    """
    config = config or get_config()
    configure_logging(config.log_level, config.log_format)

    app = FastAPI(
        title="plugman",
        description="Plugin package manager",
        version=__version__
    )
    app.state.plugin_service = service or PluginService(config)
    app.include_router(plugins_api.router)  # Plugins at /api/v1/plugins/*
    return app
