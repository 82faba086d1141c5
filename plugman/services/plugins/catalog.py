# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Plugin Catalog

Single responsibility: Aggregate package metadata from channels and repositories

A channel document lists repository URLs; a repository document lists
packages. Every source is fetched concurrently and a failing source only
contributes an empty result.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

import httpx
import json5
from pydantic import ValidationError as PydanticValidationError

from plugman.core.errors import DecodeError, NetworkError, PlugmanError
from plugman.models.plugin_models import PluginPackage, PluginVersion

logger = logging.getLogger(__name__)


class PluginCatalog:
    """Merged, name-indexed view over fetched packages"""

    def __init__(self, packages: Iterable[PluginPackage] = ()):
        """
        Build catalog from fetched packages.

        Package names are unique; when two sources publish the same name
        the later one in fetch order wins.

        Args:
            packages: Packages from all sources, in any order
        """
        self._packages: Dict[str, PluginPackage] = {}
        for package in packages:
            if package.name in self._packages:
                logger.warning(f"Duplicate package {package.name} in catalog, keeping last fetched")
            self._packages[package.name] = package

    def __contains__(self, name: str) -> bool:
        return name in self._packages

    def __len__(self) -> int:
        return len(self._packages)

    def get(self, name: str) -> Optional[PluginPackage]:
        return self._packages.get(name)

    def packages(self) -> List[PluginPackage]:
        return list(self._packages.values())

    def versions_of(self, name: str) -> List[PluginVersion]:
        """All known versions of a package, newest first"""
        package = self._packages.get(name)
        if package is None:
            return []
        return package.sorted_versions()

    def search(self, text: str) -> List[PluginPackage]:
        """Packages whose name matches the search text, sorted by name"""
        matches = [pkg for pkg in self._packages.values() if pkg.matches(text)]
        return sorted(matches, key=lambda pkg: pkg.name)


class CatalogFetcher:
    """Fans out over channels and repositories and merges the results"""

    def __init__(
        self,
        channels: Sequence[str],
        repositories: Sequence[str] = (),
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize catalog fetcher.

        Args:
            channels: Channel URLs (each lists repository URLs)
            repositories: Repository URLs queried directly
            timeout: Per-fetch timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.channels = list(channels)
        self.repositories = list(repositories)
        self.timeout = timeout
        self.transport = transport

    async def fetch(self) -> List[PluginPackage]:
        """
        Fetch every configured source concurrently.

        Returns once all fetches have finished. Cancelling the caller
        cancels all outstanding fetches.

        Returns:
            Packages from all sources, unordered
        """
        logger.info(
            f"Fetching plugin catalog from {len(self.channels)} channels "
            f"and {len(self.repositories)} repositories"
        )
        async with httpx.AsyncClient(
            timeout=self.timeout,
            transport=self.transport,
            follow_redirects=True
        ) as client:
            batches = await asyncio.gather(
                *(self._fetch_channel(client, url) for url in self.channels),
                *(self._fetch_repository(client, url) for url in self.repositories),
            )

        packages = [package for batch in batches for package in batch]
        logger.info(f"Fetched {len(packages)} packages")
        return packages

    async def _fetch_channel(self, client: httpx.AsyncClient, url: str) -> List[PluginPackage]:
        try:
            document = await self._get_document(client, url)
            repositories = self._parse_channel(url, document)
        except PlugmanError as e:
            logger.error(f"Failed to query plugin channel {url}: {e.message}")
            return []
        except Exception as e:
            logger.exception(f"Unexpected error querying plugin channel {url}: {e}")
            return []

        logger.info(f"Channel {url} lists {len(repositories)} repositories")
        batches = await asyncio.gather(
            *(self._fetch_repository(client, repo_url) for repo_url in repositories)
        )
        return [package for batch in batches for package in batch]

    async def _fetch_repository(self, client: httpx.AsyncClient, url: str) -> List[PluginPackage]:
        try:
            document = await self._get_document(client, url)
            packages = self._parse_repository(url, document)
        except PlugmanError as e:
            logger.error(f"Failed to query plugin repository {url}: {e.message}")
            return []
        except Exception as e:
            logger.exception(f"Unexpected error querying plugin repository {url}: {e}")
            return []

        logger.info(f"Fetched {len(packages)} packages from {url}")
        return packages

    async def _get_document(self, client: httpx.AsyncClient, url: str) -> Any:
        """
        Fetch and decode one JSON5 document.

        Supports HTTP(S) and local ``file://`` sources.

        Raises:
            NetworkError: Source unreachable, timed out or returned an error status
            DecodeError: Payload is not valid JSON5
        """
        if url.startswith("file://"):
            path = Path(url[len("file://"):])
            try:
                text = await asyncio.to_thread(path.read_text, encoding="utf-8")
            except OSError as e:
                raise NetworkError(f"Cannot read {path}: {e}", url=url)
        else:
            try:
                response = await asyncio.wait_for(client.get(url), timeout=self.timeout)
                response.raise_for_status()
            except asyncio.TimeoutError:
                raise NetworkError(f"Timed out after {self.timeout}s", url=url)
            except httpx.HTTPError as e:
                raise NetworkError(str(e) or e.__class__.__name__, url=url)
            text = response.text

        try:
            return json5.loads(text)
        except ValueError as e:
            raise DecodeError(f"Malformed document: {e}", url=url)

    def _parse_channel(self, url: str, document: Any) -> List[str]:
        if not isinstance(document, list) or not all(isinstance(item, str) for item in document):
            raise DecodeError("Channel document must be a list of repository URLs", url=url)
        return document

    def _parse_repository(self, url: str, document: Any) -> List[PluginPackage]:
        if not isinstance(document, list):
            raise DecodeError("Repository document must be a list of packages", url=url)
        try:
            return [PluginPackage.model_validate(record) for record in document]
        except PydanticValidationError as e:
            raise DecodeError(f"Invalid package record: {e.error_count()} validation errors", url=url)


class CatalogCache:
    """
    Lazily populated catalog shared by all plugin commands.

    The first caller fetches; concurrent first callers wait for that
    fetch instead of starting their own.
    """

    def __init__(self, fetcher: CatalogFetcher):
        self.fetcher = fetcher
        self._catalog: Optional[PluginCatalog] = None
        self._lock = asyncio.Lock()
        self.fetch_count = 0

    async def get(self) -> PluginCatalog:
        """Return the cached catalog, fetching it on first use"""
        catalog = self._catalog
        if catalog is not None:
            return catalog
        async with self._lock:
            catalog = self._catalog
            if catalog is None:
                catalog = await self._fetch()
                self._catalog = catalog
        return catalog

    async def refresh(self) -> PluginCatalog:
        """Re-fetch and replace the cached catalog"""
        async with self._lock:
            catalog = await self._fetch()
            self._catalog = catalog
        return catalog

    def invalidate(self):
        """Drop the cached catalog; the next get() re-fetches"""
        self._catalog = None

    async def _fetch(self) -> PluginCatalog:
        packages = await self.fetcher.fetch()
        self.fetch_count += 1
        catalog = PluginCatalog(packages)
        logger.info(f"Plugin catalog populated with {len(catalog)} packages")
        return catalog
