# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Dependency Resolver

Single responsibility: Pick one version per package satisfying all version ranges
"""

import logging
from dataclasses import dataclass
from typing import Iterator, List, Mapping, Optional, Sequence, Tuple

from plugman.core.errors import ResolutionError
from plugman.models.plugin_models import (
    PluginDependency,
    PluginVersion,
    Resolution,
    join_dependencies,
)

from .catalog import PluginCatalog

logger = logging.getLogger(__name__)


@dataclass
class _Branch:
    """A requirement whose candidates are being tried newest-first"""
    requirement: PluginDependency
    selected: Mapping[str, PluginVersion]
    remaining: List[PluginDependency]
    candidates: Iterator[PluginVersion]


class DependencyResolver:
    """
    Depth-first resolver with backtracking over candidate versions.

    Rules:
    - Requirements are processed in queue order.
    - A name that is already selected is never re-chosen: the selection
      either satisfies the requirement or the current path fails.
    - An unselected name tries every matching catalog version, newest
      first; the chosen version's own requirements are joined into the
      queue (same-name ranges are intersected) before continuing.
    - On failure the resolver backtracks to the most recent requirement
      that still has untried candidates.

    The search is greedy: it does not revisit choices made for earlier,
    unrelated requirements once their subtree has succeeded.
    """

    def __init__(self, catalog: PluginCatalog):
        """
        Initialize dependency resolver.

        Args:
            catalog: Merged package catalog
        """
        self.catalog = catalog

    def resolve(
        self,
        selected: Mapping[str, PluginVersion],
        open_requirements: Sequence[PluginDependency]
    ) -> Resolution:
        """
        Resolve open requirements on top of an already committed selection.

        Args:
            selected: Committed versions (host application, installed plugins)
            open_requirements: Requirements still to satisfy

        Returns:
            Resolution containing the committed and newly chosen versions

        Raises:
            ResolutionError: If no consistent selection exists. Names the
                first requirement that could not be satisfied on the
                most-preferred search path.
        """
        stack: List[_Branch] = []
        current = dict(selected)
        pending = list(open_requirements)
        conflict: Optional[Tuple[str, List[str]]] = None

        while True:
            failed = False
            while pending:
                requirement = pending[0]
                chosen = current.get(requirement.name)
                if chosen is None:
                    break
                if not requirement.accepts(chosen.version):
                    logger.debug(f"{chosen.key} does not satisfy {requirement}")
                    conflict = conflict or (requirement.name, self._chain(stack))
                    failed = True
                    break
                pending = pending[1:]
            else:
                resolution = Resolution(selected=current)
                logger.info(f"Resolved {len(resolution)} packages: {resolution.to_dict()}")
                return resolution

            if not failed:
                candidates = [
                    v for v in self.catalog.versions_of(requirement.name)
                    if requirement.accepts(v.version)
                ]
                if candidates:
                    stack.append(_Branch(requirement, current, pending[1:], iter(candidates)))
                else:
                    logger.debug(f"No candidate satisfies {requirement}")
                    conflict = conflict or (requirement.name, self._chain(stack))

            # Move to the next untried candidate, unwinding exhausted branches
            while stack:
                branch = stack[-1]
                candidate = next(branch.candidates, None)
                if candidate is not None:
                    logger.debug(f"Trying {candidate.key}")
                    current = {**branch.selected, branch.requirement.name: candidate}
                    pending = join_dependencies(branch.remaining, candidate.require)
                    break
                stack.pop()
            else:
                name, required_by = conflict
                logger.info(f"Resolution failed for {name} (required by {required_by or 'request'})")
                raise ResolutionError(name, required_by=required_by)

    @staticmethod
    def _chain(stack: List[_Branch]) -> List[str]:
        return [branch.requirement.name for branch in stack]
