"""Tests for privileged command execution and helper binary lookup.

``sh`` stands in for ``su``: both accept ``-c <command>``.
"""

import stat
from unittest.mock import MagicMock

import pytest

from ring_gateway.services.audio.binaries import HelperBinaryResolver
from ring_gateway.services.audio.exceptions import RootShellError
from ring_gateway.services.audio.root_shell import RootShell


class TestRootShell:
    @pytest.mark.asyncio
    async def test_run_captures_output(self):
        result = await RootShell(su_binary="sh").run("echo hi")

        assert result is not None
        assert result.ok is True
        assert result.stdout.strip() == "hi"
        assert result.command == "echo hi"

    @pytest.mark.asyncio
    async def test_run_reports_nonzero_exit(self):
        result = await RootShell(su_binary="sh").run("echo oops >&2; exit 4")

        assert result.exit_code == 4
        assert result.ok is False
        assert "oops" in result.stderr

    @pytest.mark.asyncio
    async def test_run_without_su_returns_none(self, tmp_path):
        shell = RootShell(su_binary=str(tmp_path / "missing-su"))
        assert await shell.run("id") is None

    @pytest.mark.asyncio
    async def test_spawn_without_su_raises(self, tmp_path):
        shell = RootShell(su_binary=str(tmp_path / "missing-su"))

        with pytest.raises(RootShellError) as exc_info:
            await shell.spawn("id")

        assert exc_info.value.command == "id"

    @pytest.mark.asyncio
    async def test_run_timeout_returns_none(self):
        shell = RootShell(su_binary="sh", timeout=0.2)
        assert await shell.run("exec sleep 5") is None


def _executable(path):
    path.write_text("#!/bin/sh\nexit 0\n")
    path.chmod(path.stat().st_mode | stat.S_IXUSR)
    return path


class TestHelperBinaryResolver:
    def test_configured_directory_first(self, tmp_path):
        binary = _executable(tmp_path / "tinyplay")
        resolver = HelperBinaryResolver(tmp_path)

        assert resolver.resolve("tinyplay") == str(binary.resolve())

    def test_non_executable_file_is_skipped(self, tmp_path):
        (tmp_path / "ring-gateway-not-exec").write_text("data")
        resolver = HelperBinaryResolver(tmp_path)

        assert resolver.resolve("ring-gateway-not-exec") is None

    def test_falls_back_to_path(self, tmp_path):
        resolver = HelperBinaryResolver(tmp_path / "empty")
        assert resolver.resolve("sh") is not None

    def test_missing_binary(self, tmp_path):
        resolver = HelperBinaryResolver(tmp_path)
        assert resolver.resolve("ring-gateway-no-such-binary") is None

    def test_result_is_cached_until_invalidated(self, tmp_path):
        binary = _executable(tmp_path / "tinyplay")
        resolver = HelperBinaryResolver(tmp_path)
        lookup = MagicMock(wraps=resolver._lookup)
        resolver._lookup = lookup

        assert resolver.resolve("tinyplay") == str(binary.resolve())
        assert resolver.resolve("tinyplay") == str(binary.resolve())
        assert lookup.call_count == 1

        resolver.invalidate()
        resolver.resolve("tinyplay")
        assert lookup.call_count == 2
