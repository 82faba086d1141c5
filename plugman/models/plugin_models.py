# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Plugin Data Models

Defines data structures for the plugin manager including packages,
versions, dependencies, resolutions, transactions and command outcomes.
"""

import logging
import re
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    field_validator,
    model_validator,
)
from semantic_version import Version

from .ranges import ANY_VERSION, VersionRange, parse_range, parse_tolerant, parse_version

logger = logging.getLogger(__name__)


class TransactionStatus(str, Enum):
    """Transaction status"""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class TransactionOperation(str, Enum):
    """Type of transaction operation"""
    INSTALL = "install"
    UPDATE = "update"
    REMOVE = "remove"


class OutcomeStatus(str, Enum):
    """Result of a plugin command"""
    RESTART_REQUIRED = "restart_required"
    UP_TO_DATE = "up_to_date"
    REMOVED = "removed"


def _lowercase_keys(data: Any) -> Any:
    """Repository documents match field names case-insensitively"""
    if isinstance(data, dict):
        return {str(k).lower(): v for k, v in data.items()}
    return data


class PluginDependency(BaseModel):
    """
    Dependency on another plugin (or the host application itself).

    The range is a predicate over version numbers; see ``ranges``.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    name: str
    range: VersionRange = ANY_VERSION

    @field_validator("range", mode="before")
    @classmethod
    def coerce_range(cls, value: Any) -> Any:
        if isinstance(value, str):
            return parse_range(value)
        return value

    def accepts(self, version: Version) -> bool:
        return self.range(version)

    def __str__(self) -> str:
        return f"{self.name} {self.range}"


def join_dependencies(
    pending: Sequence[PluginDependency],
    other: Sequence[PluginDependency]
) -> List[PluginDependency]:
    """
    Merge two requirement lists.

    Requirements on the same name collapse into one whose range is the
    intersection of both; new names are appended in order. The order of
    ``pending`` is preserved.

    Args:
        pending: Requirements already open
        other: Requirements to merge in

    Returns:
        Merged requirement list
    """
    merged: Dict[str, PluginDependency] = {}
    for dep in pending:
        current = merged.get(dep.name)
        merged[dep.name] = dep if current is None else PluginDependency(
            name=dep.name, range=current.range & dep.range
        )
    for dep in other:
        current = merged.get(dep.name)
        merged[dep.name] = dep if current is None else PluginDependency(
            name=dep.name, range=dep.range & current.range
        )
    return list(merged.values())


class PluginVersion(BaseModel):
    """One published release of a plugin package"""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    package_name: str = ""  # back-reference to the owning package, by name
    version: Version
    url: str = ""
    require: List[PluginDependency] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def normalize_keys(cls, data: Any) -> Any:
        return _lowercase_keys(data)

    @field_validator("version", mode="before")
    @classmethod
    def coerce_version(cls, value: Any) -> Any:
        if isinstance(value, str):
            return parse_version(value)
        return value

    @field_validator("require", mode="before")
    @classmethod
    def coerce_require(cls, value: Any) -> Any:
        """Accept the wire mapping ``{name: range}``; unparsable ranges are dropped"""
        if value is None:
            return []
        if not isinstance(value, dict):
            return value
        deps = []
        for name, expr in value.items():
            try:
                deps.append(PluginDependency(name=name, range=parse_range(str(expr))))
            except ValueError as e:
                logger.warning(f"Ignoring requirement {name}: invalid range {expr!r} ({e})")
        return deps

    @field_serializer("version")
    def serialize_version(self, version: Version) -> str:
        return str(version)

    @field_serializer("require")
    def serialize_require(self, require: List[PluginDependency]) -> Dict[str, str]:
        return {dep.name: str(dep.range) for dep in require}

    @classmethod
    def static(cls, name: str, raw_version: Optional[str]) -> "PluginVersion":
        """
        Build a synthetic version for something already running.

        Used for the host application and for installed plugins. The
        version string is parsed tolerantly; unparsable strings become a
        ``0.0.0-<raw>`` pre-release, or ``0.0.0-unknown``.
        """
        raw = (raw_version or "").strip()
        try:
            version = parse_tolerant(raw)
        except ValueError:
            try:
                version = parse_version(f"0.0.0-{raw}")
            except ValueError:
                version = parse_version("0.0.0-unknown")
        return cls(package_name=name, version=version)

    @property
    def key(self) -> str:
        return f"{self.package_name}@{self.version}"


class PluginPackage(BaseModel):
    """A named plugin with all of its published versions"""
    name: str = Field(min_length=1)
    description: str = ""
    author: str = ""
    tags: List[str] = Field(default_factory=list)
    versions: List[PluginVersion] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def normalize_keys(cls, data: Any) -> Any:
        data = _lowercase_keys(data)
        if isinstance(data, dict):
            for key in ("description", "author"):
                if data.get(key) is None:
                    data.pop(key, None)
            if data.get("tags") is None:
                data.pop("tags", None)
        return data

    @model_validator(mode="after")
    def link_versions(self) -> "PluginPackage":
        seen = set()
        for version in self.versions:
            if version.version in seen:
                raise ValueError(f"Duplicate version {version.version} for package {self.name}")
            seen.add(version.version)
            version.package_name = self.name
        return self

    def sorted_versions(self) -> List[PluginVersion]:
        """Versions newest first"""
        return sorted(self.versions, key=lambda v: v.version, reverse=True)

    def matches(self, text: str) -> bool:
        """
        Case-insensitive match of the search text against the name.

        The text is treated as a regular expression; invalid expressions
        fall back to a plain substring match.
        """
        try:
            return re.search(text, self.name, re.IGNORECASE) is not None
        except re.error:
            return text.lower() in self.name.lower()

    def describe(self) -> str:
        lines = [f"Plugin: {self.name}"]
        if self.author:
            lines.append(f"Author: {self.author}")
        if self.description:
            lines.append(self.description)
        if self.versions:
            lines.append("Versions: " + ", ".join(str(v.version) for v in self.sorted_versions()))
        return "\n".join(lines)


class Resolution(BaseModel):
    """
    A consistent selection: exactly one version per package name.

    Produced per install/update request and discarded afterwards.
    """
    selected: Dict[str, PluginVersion] = Field(default_factory=dict)

    def get(self, name: str) -> Optional[PluginVersion]:
        return self.selected.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self.selected

    def versions(self) -> List[PluginVersion]:
        return list(self.selected.values())

    def __len__(self) -> int:
        return len(self.selected)

    def to_dict(self) -> Dict[str, str]:
        return {name: str(v.version) for name, v in self.selected.items()}


class TransactionRecord(BaseModel):
    """Transaction record for operations"""
    id: str
    operation: TransactionOperation
    package_name: str
    version: Optional[str] = None
    packages_installed: List[str] = Field(default_factory=list)
    status: TransactionStatus
    started_at: datetime
    completed_at: Optional[datetime] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        return {
            "id": self.id,
            "operation": self.operation.value,
            "package_name": self.package_name,
            "version": self.version,
            "packages_installed": self.packages_installed,
            "status": self.status.value,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "error": self.error,
        }


class InstallOutcome(BaseModel):
    """What the installer did with a resolution"""
    status: OutcomeStatus
    installed: List[str] = Field(default_factory=list)
    unchanged: List[str] = Field(default_factory=list)

    @property
    def restart_required(self) -> bool:
        return self.status == OutcomeStatus.RESTART_REQUIRED


class CommandOutcome(BaseModel):
    """Human-readable result of a plugin command"""
    status: OutcomeStatus
    message: str
    installed: List[str] = Field(default_factory=list)
    transaction_id: Optional[str] = None
