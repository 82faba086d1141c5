# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Update Planner

Single responsibility: Build the resolver's starting point for install and update requests
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List

from plugman.models.plugin_models import PluginDependency, PluginVersion
from plugman.models.ranges import ANY_VERSION, at_least, parse_tolerant

from .oracle import VersionOracle

logger = logging.getLogger(__name__)


@dataclass
class ResolutionPlan:
    """Committed selections plus the requirements still to resolve"""
    selected: Dict[str, PluginVersion]
    open_requirements: List[PluginDependency] = field(default_factory=list)


class UpdatePlanner:
    """
    Translates install and update intents into resolver input.

    The host application is always committed as a synthetic package with
    its running version, so any requirement on it is checked against that
    fixed value rather than searched.
    """

    def __init__(self, host_name: str, host_version: str, oracle: VersionOracle):
        self.host_name = host_name
        self.host_version = host_version
        self.oracle = oracle

    def host_entry(self) -> PluginVersion:
        return PluginVersion.static(self.host_name, self.host_version)

    def installed_snapshot(self) -> Dict[str, PluginVersion]:
        """
        Read the currently loaded extensions and their versions.

        Queried fresh on every call; local state may change between requests.
        """
        snapshot = {}
        for name in sorted(self.oracle.list_loaded_extension_names()):
            if name == self.host_name:
                continue
            snapshot[name] = PluginVersion.static(name, self.oracle.get_installed_version(name))
        return snapshot

    def plan_install(self, name: str) -> ResolutionPlan:
        """
        Plan installing a single package.

        Installed extensions are committed as-is, so the new package must be
        compatible with what is already running. Installing a package that
        is already loaded keeps its current version.
        """
        selected = self.installed_snapshot()
        selected[self.host_name] = self.host_entry()
        return ResolutionPlan(
            selected=selected,
            open_requirements=[PluginDependency(name=name, range=ANY_VERSION)]
        )

    def plan_update(self) -> ResolutionPlan:
        """
        Plan updating every loaded extension.

        Each extension becomes an update intent: any version at least as
        new as the installed one. Extensions whose installed version
        cannot be parsed are left out of the plan.
        """
        requirements = []
        for name in sorted(self.oracle.list_loaded_extension_names()):
            if name == self.host_name:
                continue
            raw = self.oracle.get_installed_version(name)
            try:
                installed = parse_tolerant(raw or "")
            except ValueError:
                logger.warning(f"Skipping update of {name}: unparsable installed version {raw!r}")
                continue
            requirements.append(PluginDependency(name=name, range=at_least(installed)))

        logger.debug(f"Update plan: {[str(r) for r in requirements]}")
        return ResolutionPlan(
            selected={self.host_name: self.host_entry()},
            open_requirements=requirements
        )
