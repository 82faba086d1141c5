# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Plugin Service - Modular Composition

Composes focused modules into the plugin command surface.
Each module does one thing well, following Unix philosophy.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from plugman.core.config import Config
from plugman.core.errors import NotFoundError, ResolutionError, sanitize_error_for_user
from plugman.core.logging import log_event
from plugman.models.plugin_models import (
    CommandOutcome,
    InstallOutcome,
    OutcomeStatus,
    PluginPackage,
    Resolution,
    TransactionOperation,
    TransactionRecord,
)

from .catalog import CatalogCache, CatalogFetcher, PluginCatalog
from .operations import PluginOperations
from .oracle import DirectoryVersionOracle, VersionOracle
from .planner import ResolutionPlan, UpdatePlanner
from .resolver import DependencyResolver
from .transactions import TransactionLogger

logger = logging.getLogger(__name__)

RESTART_MESSAGE = "One or more plugins installed. Please restart."
UP_TO_DATE_MESSAGE = "All plugins are up to date"


class PluginService:
    """
    Unified plugin service (modular composition).

    Composes:
    - CatalogCache: Fetch channels and repositories once, on first use
    - UpdatePlanner: Turn install/update intents into resolver input
    - DependencyResolver: Pick one version per package
    - PluginOperations: Download, extract and remove plugins
    - TransactionLogger: Log every command
    """

    def __init__(
        self,
        config: Config,
        oracle: Optional[VersionOracle] = None,
        catalog_cache: Optional[CatalogCache] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize Plugin Service.

        Args:
            config: Plugin manager configuration
            oracle: Installed-version source (defaults to scanning the plugin root)
            catalog_cache: Shared catalog cache (defaults to one over the configured sources)
            transport: Optional httpx transport for catalog fetches and downloads
        """
        self.config = config
        self.plugins_dir = config.plugins_path
        self.plugins_dir.mkdir(parents=True, exist_ok=True)

        self.oracle = oracle or DirectoryVersionOracle(self.plugins_dir)
        self.catalog_cache = catalog_cache or CatalogCache(
            CatalogFetcher(
                config.channels,
                config.repositories,
                timeout=config.fetch_timeout,
                transport=transport
            )
        )
        self.planner = UpdatePlanner(config.host_name, config.host_version, self.oracle)
        self.operations = PluginOperations(
            self.plugins_dir,
            self.oracle,
            config.host_name,
            download_timeout=config.download_timeout,
            transport=transport
        )
        self.transaction_logger = TransactionLogger(config.transactions_path)

        logger.info(
            f"PluginService initialized: host {config.host_name}@{config.host_version}, "
            f"plugins at {self.plugins_dir}"
        )

    # Catalog Methods
    async def catalog(self) -> PluginCatalog:
        return await self.catalog_cache.get()

    async def refresh_catalog(self) -> int:
        """
        Re-fetch all sources.

        Returns:
            Number of packages in the refreshed catalog
        """
        catalog = await self.catalog_cache.refresh()
        log_event(logger, "catalog_refreshed", packages=len(catalog))
        return len(catalog)

    async def search(self, text: str) -> List[PluginPackage]:
        """
        Search packages by name.

        Only packages that could be installed next to the currently loaded
        plugins are returned.

        Args:
            text: Case-insensitive regular expression or substring

        Returns:
            Matching installable packages, sorted by name
        """
        catalog = await self.catalog()
        results = [
            package for package in catalog.search(text)
            if self.is_installable(catalog, package.name)
        ]
        logger.info(f"Search '{text}' returned {len(results)} packages")
        return results

    def is_installable(self, catalog: PluginCatalog, name: str) -> bool:
        """True if installing the package would resolve without conflicts"""
        try:
            self._resolve(catalog, self.planner.plan_install(name))
        except ResolutionError as e:
            logger.debug(f"{name} is not installable: {e.message}")
            return False
        return True

    async def info(self, name: str) -> str:
        """
        Describe a package.

        Raises:
            NotFoundError: If the catalog has no such package
        """
        catalog = await self.catalog()
        package = catalog.get(name)
        if package is None:
            raise NotFoundError("Plugin", name)
        return package.describe()

    # Package Operations
    async def install(self, name: str) -> CommandOutcome:
        """
        Install a plugin and whatever it depends on.

        Args:
            name: Package name

        Returns:
            Command outcome (restart required, or already up to date)

        Raises:
            NotFoundError: If the catalog has no such package
            ResolutionError: If no compatible version set exists
            InstallError: If a download or extraction fails
        """
        catalog = await self.catalog()
        if name not in catalog:
            raise NotFoundError("Plugin", name)

        transaction = self.transaction_logger.create_transaction(TransactionOperation.INSTALL, name)
        outcome = await self._apply(catalog, self.planner.plan_install(name), transaction, target=name)

        if outcome.restart_required:
            message = RESTART_MESSAGE
        else:
            message = f"Plugin {name} is already installed"
        return self._command_outcome(outcome, message, transaction)

    async def update_all(self) -> CommandOutcome:
        """
        Update every loaded plugin to the newest compatible versions.

        Raises:
            ResolutionError: If no compatible version set exists
            InstallError: If a download or extraction fails
        """
        catalog = await self.catalog()
        transaction = self.transaction_logger.create_transaction(TransactionOperation.UPDATE, "*")
        outcome = await self._apply(catalog, self.planner.plan_update(), transaction)

        message = RESTART_MESSAGE if outcome.restart_required else UP_TO_DATE_MESSAGE
        return self._command_outcome(outcome, message, transaction)

    async def uninstall(self, name: str) -> CommandOutcome:
        """
        Remove an installed plugin.

        Raises:
            NotFoundError: If the plugin is not installed
            UninstallError: If the plugin directory could not be removed
        """
        transaction = self.transaction_logger.create_transaction(TransactionOperation.REMOVE, name)
        self.transaction_logger.start(transaction)
        try:
            removed = await self.operations.uninstall(name)
            if not removed:
                raise NotFoundError("Plugin", name)
        except Exception as e:
            self.transaction_logger.fail(transaction, sanitize_error_for_user(e, include_type=False))
            raise

        self.transaction_logger.complete(transaction)
        return CommandOutcome(
            status=OutcomeStatus.REMOVED,
            message=f"Plugin {name} uninstalled. Please restart.",
            transaction_id=transaction.id
        )

    def list_transactions(self, limit: int = 50) -> List[Dict[str, Any]]:
        return self.transaction_logger.list_transactions(limit)

    # Internals
    def _resolve(self, catalog: PluginCatalog, plan: ResolutionPlan) -> Resolution:
        return DependencyResolver(catalog).resolve(plan.selected, plan.open_requirements)

    async def _apply(
        self,
        catalog: PluginCatalog,
        plan: ResolutionPlan,
        transaction: TransactionRecord,
        target: Optional[str] = None
    ) -> InstallOutcome:
        self.transaction_logger.start(transaction)
        try:
            resolution = self._resolve(catalog, plan)
            if target and target in resolution:
                transaction.version = str(resolution.get(target).version)
            outcome = await self.operations.install(resolution)
        except Exception as e:
            self.transaction_logger.fail(transaction, sanitize_error_for_user(e, include_type=False))
            raise

        self.transaction_logger.complete(transaction, installed=outcome.installed)
        log_event(
            logger,
            "plugins_applied",
            transaction_id=transaction.id,
            outcome=outcome.status.value,
            installed=outcome.installed
        )
        return outcome

    @staticmethod
    def _command_outcome(
        outcome: InstallOutcome,
        message: str,
        transaction: TransactionRecord
    ) -> CommandOutcome:
        return CommandOutcome(
            status=outcome.status,
            message=message,
            installed=outcome.installed,
            transaction_id=transaction.id
        )
