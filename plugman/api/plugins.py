# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Plugin API Endpoints

Package management REST API for searching, installing, updating
and removing plugins.
"""

from fastapi import APIRouter, HTTPException, Query, Depends, Request
from typing import List, Dict, Any
from pydantic import BaseModel

from plugman.core.errors import PlugmanError
from plugman.core.logging import get_service_logger
from plugman.models.plugin_models import CommandOutcome, PluginPackage
from plugman.services.plugins import PluginService

logger = get_service_logger("plugins_api")

router = APIRouter(prefix="/api/v1/plugins", tags=["plugins"])


# Dependency injection: Get plugin service from app state
def get_plugin_service(request: Request) -> PluginService:
    """
    Get plugin service instance from FastAPI app state.

    Service is created in main.py and stored in app.state.

    Raises:
        HTTPException: If service not initialized
    """
    service = getattr(request.app.state, "plugin_service", None)
    if service is None:
        raise HTTPException(
            status_code=500,
            detail="Plugin service not initialized. Check server startup logs."
        )
    return service


def _http_error(e: PlugmanError) -> HTTPException:
    return HTTPException(status_code=e.status_code, detail=e.to_dict())


# Response Models
class PluginSummary(BaseModel):
    name: str
    description: str = ""
    author: str = ""
    tags: List[str] = []
    versions: List[str] = []

    @classmethod
    def from_package(cls, package: PluginPackage) -> "PluginSummary":
        return cls(
            name=package.name,
            description=package.description,
            author=package.author,
            tags=package.tags,
            versions=[str(v.version) for v in package.sorted_versions()]
        )


class PluginInfo(BaseModel):
    name: str
    info: str


class RefreshResult(BaseModel):
    packages: int


# Package Discovery Endpoints
@router.get("/search", response_model=List[PluginSummary])
async def search_plugins(
    q: str = Query(..., description="Case-insensitive name pattern"),
    service: PluginService = Depends(get_plugin_service)
):
    """Search installable plugins by name."""
    try:
        packages = await service.search(q)
    except PlugmanError as e:
        logger.error(f"Failed to search plugins: {e.message}")
        raise _http_error(e)
    return [PluginSummary.from_package(p) for p in packages]


@router.get("/transactions")
async def list_transactions(
    limit: int = Query(50, ge=1, le=1000),
    service: PluginService = Depends(get_plugin_service)
) -> List[Dict[str, Any]]:
    """List recent plugin operations, most recent first."""
    return service.list_transactions(limit)


@router.post("/catalog/refresh", response_model=RefreshResult)
async def refresh_catalog(
    service: PluginService = Depends(get_plugin_service)
):
    """Re-fetch all channels and repositories."""
    count = await service.refresh_catalog()
    return RefreshResult(packages=count)


@router.post("/update", response_model=CommandOutcome)
async def update_all_plugins(
    service: PluginService = Depends(get_plugin_service)
):
    """Update all loaded plugins to the newest compatible versions."""
    try:
        return await service.update_all()
    except PlugmanError as e:
        logger.error(f"Update failed: {e.message}")
        raise _http_error(e)


@router.get("/{name}", response_model=PluginInfo)
async def get_plugin_info(
    name: str,
    service: PluginService = Depends(get_plugin_service)
):
    """Get a human-readable description of a plugin."""
    try:
        info = await service.info(name)
    except PlugmanError as e:
        raise _http_error(e)
    return PluginInfo(name=name, info=info)


# Package Operations Endpoints
@router.post("/{name}/install", response_model=CommandOutcome)
async def install_plugin(
    name: str,
    service: PluginService = Depends(get_plugin_service)
):
    """Install a plugin with its dependencies."""
    try:
        return await service.install(name)
    except PlugmanError as e:
        logger.error(f"Installation of {name} failed: {e.message}")
        raise _http_error(e)


@router.delete("/{name}", response_model=CommandOutcome)
async def uninstall_plugin(
    name: str,
    service: PluginService = Depends(get_plugin_service)
):
    """Remove an installed plugin."""
    try:
        return await service.uninstall(name)
    except PlugmanError as e:
        logger.error(f"Uninstall of {name} failed: {e.message}")
        raise _http_error(e)
