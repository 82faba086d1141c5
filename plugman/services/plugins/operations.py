# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Plugin Operations

Single responsibility: Make local plugin storage match a resolution
"""

import asyncio
import logging
import shutil
from pathlib import Path
from typing import Dict, Optional

import httpx

from plugman.core.errors import (
    ArchiveError,
    InstallError,
    UninstallError,
    ValidationError,
)
from plugman.models.plugin_models import (
    InstallOutcome,
    OutcomeStatus,
    PluginVersion,
    Resolution,
)

from .archive import extract_archive
from .oracle import VersionOracle

logger = logging.getLogger(__name__)


class PluginOperations:
    """Handles plugin download, extraction and removal"""

    def __init__(
        self,
        plugins_dir: Path,
        oracle: VersionOracle,
        host_name: str,
        download_timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize plugin operations.

        Args:
            plugins_dir: Plugin storage root (one directory per plugin)
            oracle: Source of installed plugin versions
            host_name: Synthetic package name of the host application
            download_timeout: Timeout for a single archive download
            transport: Optional httpx transport (used by tests)
        """
        self.plugins_dir = Path(plugins_dir)
        self.oracle = oracle
        self.host_name = host_name
        self.download_timeout = download_timeout
        self.transport = transport
        self._locks: Dict[str, asyncio.Lock] = {}

    def _lock_for(self, name: str) -> asyncio.Lock:
        """One lock per plugin name; serializes writers of the same directory"""
        return self._locks.setdefault(name, asyncio.Lock())

    def plugin_dir(self, name: str) -> Path:
        """
        Storage directory of a plugin.

        Raises:
            ValidationError: If the name is not a single path component
        """
        if not name or name in (".", "..") or "/" in name or "\\" in name:
            raise ValidationError(f"Invalid plugin name: {name!r}", field="name")
        return self.plugins_dir / name

    def needs_install(self, version: PluginVersion) -> bool:
        """True if the installed version differs from the resolved one"""
        installed = self.oracle.get_installed_version(version.package_name)
        if installed is None:
            return True
        # Coerced the same way as the installed snapshot
        return PluginVersion.static(version.package_name, installed).version != version.version

    async def install(self, resolution: Resolution) -> InstallOutcome:
        """
        Install every resolved plugin that differs from local state.

        The host application entry is skipped. The first failure aborts
        the batch; plugins installed earlier in the batch stay installed.

        Args:
            resolution: Resolved version set

        Returns:
            Outcome: restart required if anything was (re)installed

        Raises:
            InstallError: If a download or extraction fails
        """
        installed = []
        unchanged = []
        for version in resolution.versions():
            if version.package_name == self.host_name:
                continue
            if not self.needs_install(version):
                logger.debug(f"{version.key} already installed")
                unchanged.append(version.key)
                continue
            await self.install_version(version)
            installed.append(version.key)

        if installed:
            logger.info(f"Installed {len(installed)} plugins: {installed}")
            status = OutcomeStatus.RESTART_REQUIRED
        else:
            status = OutcomeStatus.UP_TO_DATE
        return InstallOutcome(status=status, installed=installed, unchanged=unchanged)

    async def install_version(self, version: PluginVersion):
        """
        Download and extract one plugin version, replacing any existing copy.

        The archive is downloaded before the old directory is removed, so a
        failed download keeps the current installation.

        Raises:
            InstallError: If download, removal or extraction fails
        """
        name = version.package_name
        target = self.plugin_dir(name)

        async with self._lock_for(name):
            logger.info(f"Installing plugin: {version.key}")
            data = await self._download(version)

            try:
                await self._remove_dir(name)
            except UninstallError as e:
                logger.warning(f"Continuing install of {name} after failed removal: {e.message}")

            try:
                await asyncio.to_thread(extract_archive, data, target)
            except (ArchiveError, OSError) as e:
                # Partial extraction is removed; plugins installed earlier stay
                await asyncio.to_thread(shutil.rmtree, target, ignore_errors=True)
                reason = e.message if isinstance(e, ArchiveError) else str(e)
                raise InstallError(name, reason)

            logger.info(f"Plugin {version.key} installed successfully")

    async def uninstall(self, name: str) -> bool:
        """
        Remove a plugin's directory.

        Removing a plugin that is not installed is not an error.

        Returns:
            True if a directory was removed

        Raises:
            UninstallError: If the directory could not be removed
        """
        async with self._lock_for(name):
            removed = await self._remove_dir(name)
        if removed:
            logger.info(f"Plugin {name} uninstalled")
        return removed

    async def _remove_dir(self, name: str) -> bool:
        target = self.plugin_dir(name)
        if not target.exists():
            return False
        try:
            await asyncio.to_thread(shutil.rmtree, target)
        except OSError as e:
            raise UninstallError(name, str(e))
        return True

    async def _download(self, version: PluginVersion) -> bytes:
        name = version.package_name
        if not version.url:
            raise InstallError(name, f"version {version.version} has no download location")

        if version.url.startswith("file://"):
            path = Path(version.url[len("file://"):])
            try:
                return await asyncio.to_thread(path.read_bytes)
            except OSError as e:
                raise InstallError(name, f"cannot read {path}: {e}")

        try:
            async with httpx.AsyncClient(
                timeout=self.download_timeout,
                transport=self.transport,
                follow_redirects=True
            ) as client:
                response = await client.get(version.url)
                response.raise_for_status()
                return response.content
        except httpx.HTTPError as e:
            raise InstallError(name, f"download failed: {e}")
