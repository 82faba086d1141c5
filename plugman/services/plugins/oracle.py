# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Version Oracle

Single responsibility: Report which plugins the host has loaded and their versions

The host application owns this knowledge; the plugin manager only reads
it through the ``VersionOracle`` protocol.
"""

import logging
import re
from pathlib import Path
from typing import Dict, Optional, Protocol, Set, runtime_checkable

logger = logging.getLogger(__name__)

_VERSION_ASSIGNMENT_RE = re.compile(r"""^\s*VERSION\s*=\s*["']([^"']*)["']""", re.MULTILINE)


@runtime_checkable
class VersionOracle(Protocol):
    """Read access to the host's loaded extensions"""

    def get_installed_version(self, name: str) -> Optional[str]:
        """Installed version string of a plugin, or None if not installed"""
        ...

    def list_loaded_extension_names(self) -> Set[str]:
        """Names of all currently loaded extensions"""
        ...


class StaticVersionOracle:
    """Oracle backed by a mapping; for embedding hosts and tests"""

    def __init__(self, versions: Optional[Dict[str, str]] = None):
        self.versions: Dict[str, str] = dict(versions or {})

    def get_installed_version(self, name: str) -> Optional[str]:
        return self.versions.get(name)

    def list_loaded_extension_names(self) -> Set[str]:
        return set(self.versions)


class DirectoryVersionOracle:
    """
    Oracle that inspects the plugin storage root.

    Every sub-directory is a loaded extension. Its version is the
    ``VERSION = "..."`` assignment in ``<name>/<name>.lua``; a plugin
    without one reports an empty version string.
    """

    def __init__(self, plugins_dir: Path):
        self.plugins_dir = Path(plugins_dir)

    def get_installed_version(self, name: str) -> Optional[str]:
        plugin_dir = self.plugins_dir / name
        if not plugin_dir.is_dir():
            return None

        script = plugin_dir / f"{name}.lua"
        try:
            match = _VERSION_ASSIGNMENT_RE.search(script.read_text(encoding="utf-8", errors="replace"))
        except OSError as e:
            logger.debug(f"No readable script for plugin {name}: {e}")
            return ""
        return match.group(1) if match else ""

    def list_loaded_extension_names(self) -> Set[str]:
        if not self.plugins_dir.is_dir():
            return set()
        return {p.name for p in self.plugins_dir.iterdir() if p.is_dir() and not p.name.startswith(".")}
