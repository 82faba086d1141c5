# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Unit tests for PluginOperations

Tests reconciling plugin storage with a resolution.
"""

import asyncio

import httpx
import pytest

from plugman.core.errors import InstallError, ValidationError
from plugman.models.plugin_models import OutcomeStatus, PluginVersion, Resolution
from plugman.services.plugins.operations import PluginOperations
from plugman.services.plugins.oracle import StaticVersionOracle


def resolved(*versions):
    return Resolution(selected={v.package_name: v for v in versions})


def release(name, version):
    return PluginVersion(
        package_name=name,
        version=version,
        url=f"https://plugins.test/{name}-{version}.zip"
    )


@pytest.fixture
def downloads():
    return []


@pytest.fixture
def archives(make_zip):
    """Archive bodies served by the fake download server, by URL"""
    return {
        "https://plugins.test/linter-1.0.0.zip": make_zip({"linter.lua": 'VERSION = "1.0.0"'}),
        "https://plugins.test/fmt-tool-1.1.0.zip": make_zip({"fmt-tool.lua": 'VERSION = "1.1.0"'}),
        "https://plugins.test/evil-1.0.0.zip": make_zip({"../escape.lua": "evil"}),
    }


@pytest.fixture
def transport(archives, downloads):
    def handler(request: httpx.Request) -> httpx.Response:
        downloads.append(str(request.url))
        body = archives.get(str(request.url))
        if body is None:
            return httpx.Response(404)
        return httpx.Response(200, content=body)

    return httpx.MockTransport(handler)


@pytest.fixture
def oracle():
    return StaticVersionOracle()


@pytest.fixture
def operations(tmp_path, oracle, transport):
    return PluginOperations(tmp_path / "plugins", oracle, host_name="core", transport=transport)


@pytest.fixture
def host():
    return PluginVersion.static("core", "2.1.0")


class TestInstall:
    """Test install method"""

    @pytest.mark.asyncio
    async def test_installs_missing_plugins(self, operations, host, downloads, tmp_path):
        """Downloads and extracts every plugin that is not installed"""
        resolution = resolved(host, release("linter", "1.0.0"), release("fmt-tool", "1.1.0"))

        outcome = await operations.install(resolution)

        assert outcome.status == OutcomeStatus.RESTART_REQUIRED
        assert outcome.restart_required
        assert outcome.installed == ["linter@1.0.0", "fmt-tool@1.1.0"]
        assert (tmp_path / "plugins" / "linter" / "linter.lua").exists()
        assert (tmp_path / "plugins" / "fmt-tool" / "fmt-tool.lua").exists()
        assert len(downloads) == 2

    @pytest.mark.asyncio
    async def test_matching_installed_version_is_noop(self, operations, oracle, host, downloads):
        """Already installed versions are not downloaded"""
        oracle.versions["fmt-tool"] = "1.1.0"

        outcome = await operations.install(resolved(host, release("fmt-tool", "1.1.0")))

        assert outcome.status == OutcomeStatus.UP_TO_DATE
        assert not outcome.restart_required
        assert outcome.installed == []
        assert outcome.unchanged == ["fmt-tool@1.1.0"]
        assert downloads == []

    @pytest.mark.asyncio
    async def test_tolerant_installed_version_comparison(self, operations, oracle, downloads):
        """v1.1 on disk equals 1.1.0 in the catalog"""
        oracle.versions["fmt-tool"] = "v1.1"

        outcome = await operations.install(resolved(release("fmt-tool", "1.1.0")))

        assert outcome.status == OutcomeStatus.UP_TO_DATE
        assert downloads == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("raw", ["", "dev"])
    async def test_unparsable_installed_version_matches_snapshot(self, operations, oracle, downloads, raw):
        """Loaded plugins with unparsable versions are left alone"""
        oracle.versions["legacy"] = raw

        outcome = await operations.install(resolved(PluginVersion.static("legacy", raw)))

        assert outcome.status == OutcomeStatus.UP_TO_DATE
        assert outcome.unchanged == [PluginVersion.static("legacy", raw).key]
        assert downloads == []

    @pytest.mark.asyncio
    async def test_host_entry_is_skipped(self, operations, host, downloads):
        """The host application is never downloaded"""
        outcome = await operations.install(resolved(host))

        assert outcome.status == OutcomeStatus.UP_TO_DATE
        assert outcome.unchanged == []
        assert downloads == []

    @pytest.mark.asyncio
    async def test_replaces_existing_installation(self, operations, oracle, tmp_path):
        """Old plugin contents are removed on reinstall"""
        plugin_dir = tmp_path / "plugins" / "linter"
        plugin_dir.mkdir(parents=True)
        (plugin_dir / "stale.lua").write_text("old")
        oracle.versions["linter"] = "0.9.0"

        await operations.install(resolved(release("linter", "1.0.0")))

        assert not (plugin_dir / "stale.lua").exists()
        assert (plugin_dir / "linter.lua").exists()

    @pytest.mark.asyncio
    async def test_failure_aborts_batch(self, operations, downloads, tmp_path):
        """The first failing plugin stops the batch; earlier installs remain"""
        resolution = resolved(
            release("linter", "1.0.0"),
            release("missing", "1.0.0"),
            release("fmt-tool", "1.1.0"),
        )

        with pytest.raises(InstallError) as exc_info:
            await operations.install(resolution)

        assert exc_info.value.package_name == "missing"
        assert (tmp_path / "plugins" / "linter").is_dir()
        assert not (tmp_path / "plugins" / "fmt-tool").exists()
        assert "https://plugins.test/fmt-tool-1.1.0.zip" not in downloads

    @pytest.mark.asyncio
    async def test_failed_download_keeps_current_install(self, operations, oracle, tmp_path):
        """Download happens before the old directory is removed"""
        plugin_dir = tmp_path / "plugins" / "missing"
        plugin_dir.mkdir(parents=True)
        (plugin_dir / "missing.lua").write_text('VERSION = "0.1.0"')
        oracle.versions["missing"] = "0.1.0"

        with pytest.raises(InstallError):
            await operations.install(resolved(release("missing", "1.0.0")))

        assert (plugin_dir / "missing.lua").exists()

    @pytest.mark.asyncio
    async def test_unsafe_archive_leaves_no_directory(self, operations, tmp_path):
        """Path traversal aborts the install and cleans up"""
        with pytest.raises(InstallError) as exc_info:
            await operations.install(resolved(release("evil", "1.0.0")))

        assert "escapes" in exc_info.value.reason
        assert not (tmp_path / "plugins" / "evil").exists()
        assert not (tmp_path / "plugins" / "escape.lua").exists()

    @pytest.mark.asyncio
    async def test_undecodable_archive_cleans_up(self, operations, archives, make_zip, tmp_path):
        """Entries zipfile cannot decompress fail as InstallError and leave no directory"""
        data = bytearray(make_zip({"packed.lua": "packed", "later.lua": "later"}))
        offset = data.rfind(b"PK\x01\x02")
        data[offset + 10:offset + 12] = (99).to_bytes(2, "little")
        archives["https://plugins.test/packed-1.0.0.zip"] = bytes(data)

        with pytest.raises(InstallError) as exc_info:
            await operations.install(resolved(release("packed", "1.0.0")))

        assert exc_info.value.package_name == "packed"
        assert not (tmp_path / "plugins" / "packed").exists()

    @pytest.mark.asyncio
    async def test_version_without_url(self, operations):
        """A version with no download location cannot be installed"""
        version = PluginVersion(package_name="bare", version="1.0.0")

        with pytest.raises(InstallError):
            await operations.install(resolved(version))

    @pytest.mark.asyncio
    async def test_file_url(self, tmp_path, oracle, make_zip):
        """file:// archives are read from disk"""
        archive = tmp_path / "local.zip"
        archive.write_bytes(make_zip({"local.lua": "x"}))
        operations = PluginOperations(tmp_path / "plugins", oracle, host_name="core")
        version = PluginVersion(package_name="local", version="1.0.0", url=f"file://{archive}")

        outcome = await operations.install(resolved(version))

        assert outcome.installed == ["local@1.0.0"]
        assert (tmp_path / "plugins" / "local" / "local.lua").exists()


class TestUninstall:
    """Test uninstall method"""

    @pytest.mark.asyncio
    async def test_removes_directory(self, operations, tmp_path):
        """Should remove the plugin directory"""
        plugin_dir = tmp_path / "plugins" / "linter"
        (plugin_dir / "sub").mkdir(parents=True)

        assert await operations.uninstall("linter") is True
        assert not plugin_dir.exists()

    @pytest.mark.asyncio
    async def test_missing_directory_is_not_an_error(self, operations):
        """Removing a plugin that is not installed returns False"""
        assert await operations.uninstall("ghost") is False

    @pytest.mark.asyncio
    async def test_rejects_path_names(self, operations):
        """Plugin names must be a single path component"""
        with pytest.raises(ValidationError):
            await operations.uninstall("../etc")


class TestSerialization:
    """Operations on the same plugin name never interleave"""

    @pytest.fixture
    def events(self):
        return []

    @pytest.fixture
    def slow_operations(self, tmp_path, oracle, archives, events):
        async def handler(request: httpx.Request) -> httpx.Response:
            events.append(("start", request.url.path))
            await asyncio.sleep(0.02)
            events.append(("end", request.url.path))
            return httpx.Response(200, content=archives[str(request.url)])

        return PluginOperations(
            tmp_path / "plugins", oracle, host_name="core", transport=httpx.MockTransport(handler)
        )

    @pytest.mark.asyncio
    async def test_same_name_installs_are_serialized(self, slow_operations, events, tmp_path):
        """A second install of a plugin waits for the first to finish"""
        version = release("linter", "1.0.0")

        await asyncio.gather(
            slow_operations.install_version(version),
            slow_operations.install_version(version),
        )

        assert [kind for kind, _ in events] == ["start", "end", "start", "end"]
        assert (tmp_path / "plugins" / "linter" / "linter.lua").exists()

    @pytest.mark.asyncio
    async def test_uninstall_waits_for_running_install(self, slow_operations, tmp_path):
        """Uninstall of a plugin being installed runs after the install"""
        install = asyncio.create_task(slow_operations.install_version(release("linter", "1.0.0")))
        await asyncio.sleep(0)

        removed = await slow_operations.uninstall("linter")
        await install

        assert removed is True
        assert not (tmp_path / "plugins" / "linter").exists()

    @pytest.mark.asyncio
    async def test_different_names_run_concurrently(self, slow_operations, events):
        """Locks are per name; other plugins are not blocked"""
        await asyncio.gather(
            slow_operations.install_version(release("linter", "1.0.0")),
            slow_operations.install_version(release("fmt-tool", "1.1.0")),
        )

        assert [kind for kind, _ in events][:2] == ["start", "start"]


class TestPluginDir:
    """Test plugin_dir method"""

    @pytest.mark.parametrize("name", ["", ".", "..", "a/b", "a\\b"])
    def test_rejects_invalid_names(self, operations, name):
        """Should raise ValidationError for names that are not directories"""
        with pytest.raises(ValidationError):
            operations.plugin_dir(name)

    def test_plugin_dir(self, operations, tmp_path):
        """Each plugin lives in its own directory under the root"""
        assert operations.plugin_dir("linter") == tmp_path / "plugins" / "linter"
