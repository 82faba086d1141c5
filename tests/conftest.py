# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Test Fixtures and Utilities

Provides factories for catalog packages and plugin archives shared by
the unit tests.
"""

import io
import zipfile
from typing import Dict, Optional

import pytest

from plugman.models.plugin_models import PluginPackage

PLUGIN_HOST = "https://plugins.test"


# ============================================================================
# Catalog Fixtures
# ============================================================================

@pytest.fixture
def make_package():
    """
    Factory for catalog packages.

    Usage: make_package("linter", ("1.0.0", {"fmt-tool": ">=1.1.0"}), "2.0.0")
    """
    def _make(name: str, *versions, **metadata) -> PluginPackage:
        records = []
        for entry in versions:
            version, require = entry if isinstance(entry, tuple) else (entry, {})
            records.append({
                "Version": version,
                "Url": f"{PLUGIN_HOST}/{name}-{version}.zip",
                "Require": require,
            })
        return PluginPackage.model_validate({"Name": name, "Versions": records, **metadata})

    return _make


# ============================================================================
# Archive Fixtures
# ============================================================================

@pytest.fixture
def make_zip():
    """Factory for in-memory zip archives from ``{entry_name: content}``"""
    def _make(files: Dict[str, Optional[str]]) -> bytes:
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w") as archive:
            for entry_name, content in files.items():
                if content is None:
                    archive.writestr(zipfile.ZipInfo(entry_name), "")
                else:
                    archive.writestr(entry_name, content)
        return buffer.getvalue()

    return _make
