# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Plugins Module - Plugin Package Management

Modular plugin management following Unix philosophy:
- Each module does one thing well
- Modules compose to form complete system
- Text-based configuration throughout
"""

from .catalog import CatalogCache, CatalogFetcher, PluginCatalog
from .resolver import DependencyResolver
from .oracle import DirectoryVersionOracle, StaticVersionOracle, VersionOracle
from .transactions import TransactionLogger
from .operations import PluginOperations
from .planner import ResolutionPlan, UpdatePlanner
from .service import PluginService

__all__ = [
    "CatalogCache",
    "CatalogFetcher",
    "PluginCatalog",
    "DependencyResolver",
    "DirectoryVersionOracle",
    "StaticVersionOracle",
    "VersionOracle",
    "TransactionLogger",
    "PluginOperations",
    "ResolutionPlan",
    "UpdatePlanner",
    "PluginService",
]
