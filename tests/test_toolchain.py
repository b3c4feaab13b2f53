"""Tests for terraform/toolchain.py."""

import io
import os
import zipfile
from unittest.mock import patch

import pytest
import respx
from httpx import Response

from tfapply.core.errors import ExitCode, ToolchainError
from tfapply.terraform.toolchain import (
    download_terraform,
    is_retryable_status,
    lookup_terraform,
    release_url,
    resolve_binary,
)

RELEASES = "https://releases.example.com"


def make_archive(content=b"#!/bin/sh\necho terraform\n"):
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        zf.writestr("terraform", content)
    return buf.getvalue()


@pytest.fixture
def linux_amd64():
    with patch("tfapply.terraform.toolchain.sys.platform", "linux"), patch(
        "tfapply.terraform.toolchain.platform.machine", return_value="x86_64"
    ):
        yield


@pytest.fixture
def release_settings(settings):
    return settings.model_copy(update={"releases_url": RELEASES})


class TestLookup:
    def test_found(self):
        with patch("tfapply.terraform.toolchain.shutil.which", return_value="/usr/bin/terraform"):
            assert lookup_terraform() == "/usr/bin/terraform"

    def test_missing(self):
        with patch("tfapply.terraform.toolchain.shutil.which", return_value=None):
            with pytest.raises(ToolchainError, match="cannot find terraform executable in PATH"):
                lookup_terraform()


def test_release_url(linux_amd64):
    assert release_url("1.6.0", RELEASES + "/") == (
        f"{RELEASES}/terraform/1.6.0/terraform_1.6.0_linux_amd64.zip"
    )


def test_retryable_status():
    assert is_retryable_status(503)
    assert not is_retryable_status(404)


class TestDownload:
    def test_downloads_and_caches(self, linux_amd64, release_settings):
        url = f"{RELEASES}/terraform/1.6.0/terraform_1.6.0_linux_amd64.zip"

        with respx.mock:
            route = respx.get(url).mock(return_value=Response(200, content=make_archive()))

            first = download_terraform("1.6.0", settings=release_settings)
            second = download_terraform("1.6.0", settings=release_settings)

        assert first == second
        assert route.call_count == 1
        assert os.access(first, os.X_OK)
        assert first.endswith(os.path.join("terraform", "1.6.0", "terraform"))

    def test_force_redownload(self, linux_amd64, release_settings):
        url = f"{RELEASES}/terraform/1.6.0/terraform_1.6.0_linux_amd64.zip"

        with respx.mock:
            route = respx.get(url).mock(return_value=Response(200, content=make_archive()))
            download_terraform("1.6.0", settings=release_settings)
            download_terraform("1.6.0", True, settings=release_settings)

        assert route.call_count == 2

    def test_retry_on_503(self, linux_amd64, release_settings):
        url = f"{RELEASES}/terraform/1.5.7/terraform_1.5.7_linux_amd64.zip"

        with respx.mock:
            route = respx.get(url)
            route.side_effect = [Response(503), Response(200, content=make_archive())]

            path = download_terraform("1.5.7", settings=release_settings)

        assert route.call_count == 2
        assert os.path.exists(path)

    def test_not_found(self, linux_amd64, release_settings):
        url = f"{RELEASES}/terraform/9.9.9/terraform_9.9.9_linux_amd64.zip"

        with respx.mock:
            respx.get(url).mock(return_value=Response(404))

            with pytest.raises(ToolchainError, match="cannot download terraform 9.9.9"):
                download_terraform("9.9.9", settings=release_settings)

    def test_invalid_archive(self, linux_amd64, release_settings):
        url = f"{RELEASES}/terraform/1.6.0/terraform_1.6.0_linux_amd64.zip"

        with respx.mock:
            respx.get(url).mock(return_value=Response(200, content=b"not a zip"))

            with pytest.raises(ToolchainError, match="invalid terraform archive"):
                download_terraform("1.6.0", settings=release_settings)

    def test_failed_install_leaves_no_cached_binary(self, linux_amd64, release_settings):
        url = f"{RELEASES}/terraform/1.6.0/terraform_1.6.0_linux_amd64.zip"
        real_chmod = os.chmod
        calls = []

        def flaky_chmod(path, mode):
            calls.append(path)
            if len(calls) == 1:
                raise PermissionError("chmod denied")
            real_chmod(path, mode)

        with respx.mock:
            route = respx.get(url).mock(return_value=Response(200, content=make_archive()))

            with patch("tfapply.terraform.toolchain.os.chmod", side_effect=flaky_chmod):
                with pytest.raises(ToolchainError, match="cannot install terraform 1.6.0"):
                    download_terraform("1.6.0", settings=release_settings)

                target_dir = release_settings.cache_dir / "terraform" / "1.6.0"
                assert list(target_dir.iterdir()) == []

                path = download_terraform("1.6.0", settings=release_settings)

        assert route.call_count == 2
        assert os.access(path, os.X_OK)

    def test_unwritable_cache_is_toolchain_error(self, linux_amd64, release_settings):
        url = f"{RELEASES}/terraform/1.6.0/terraform_1.6.0_linux_amd64.zip"

        with respx.mock:
            respx.get(url).mock(return_value=Response(200, content=make_archive()))

            with patch(
                "tfapply.terraform.toolchain.tempfile.mkstemp",
                side_effect=OSError("read-only file system"),
            ):
                with pytest.raises(ToolchainError) as exc_info:
                    download_terraform("1.6.0", settings=release_settings)

        assert exc_info.value.exit_code == ExitCode.CONFIG_ERROR

    def test_invalid_version(self, release_settings):
        with pytest.raises(ToolchainError, match="invalid terraform version"):
            download_terraform("../../etc", settings=release_settings)


class TestResolveBinary:
    def test_no_version_uses_path(self, settings):
        with patch("tfapply.terraform.toolchain.shutil.which", return_value="/bin/terraform"):
            assert resolve_binary(None, settings=settings) == "/bin/terraform"

    def test_version_downloads(self, settings):
        with patch(
            "tfapply.terraform.toolchain.download_terraform", return_value="/cache/terraform"
        ) as download:
            assert resolve_binary("1.6.0", settings=settings) == "/cache/terraform"

        download.assert_called_once_with("1.6.0", False, settings=settings)
