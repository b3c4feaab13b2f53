"""
Terraform binary resolution.

Without a requested version the binary is looked up on PATH. With a version,
the official release archive is downloaded once into the cache directory and
reused afterwards.
"""

from __future__ import annotations

import contextlib
import io
import os
import platform
import re
import shutil
import sys
import tempfile
import zipfile
from pathlib import Path

import httpx
import structlog
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from tfapply.config.settings import Settings, get_settings
from tfapply.core.errors import ToolchainError

logger = structlog.get_logger()

BINARY_MODE = 0o755

_VERSION_RE = re.compile(r"^\d+\.\d+\.\d+(?:-[0-9A-Za-z.]+)?$")

_ARCH_ALIASES = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "i386": "386",
    "i686": "386",
    "x86": "386",
    "armv7l": "arm",
    "armv6l": "arm",
}


class RetryableDownloadError(Exception):
    """Transient failure while fetching a release archive."""


def is_retryable_status(status_code: int) -> bool:
    return status_code in (408, 429, 500, 502, 503, 504)


def lookup_terraform(binary: str = "terraform") -> str:
    """Find the terraform executable on PATH."""
    path = shutil.which(binary)
    if path is None:
        raise ToolchainError("cannot find terraform executable in PATH", {"binary": binary})
    return path


def release_platform() -> tuple[str, str]:
    """Return the (os, arch) pair used in release archive names."""
    if sys.platform.startswith("win"):
        os_name = "windows"
    elif sys.platform == "darwin":
        os_name = "darwin"
    elif sys.platform.startswith("freebsd"):
        os_name = "freebsd"
    else:
        os_name = "linux"

    machine = platform.machine().lower()
    arch = _ARCH_ALIASES.get(machine)
    if arch is None:
        raise ToolchainError(f"unsupported architecture for terraform download: {machine}")
    return os_name, arch


def release_url(version: str, base_url: str) -> str:
    os_name, arch = release_platform()
    return f"{base_url.rstrip('/')}/terraform/{version}/terraform_{version}_{os_name}_{arch}.zip"


@retry(
    retry=retry_if_exception_type(RetryableDownloadError),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    reraise=True,
)
def _fetch_archive(url: str, timeout: float) -> bytes:
    try:
        response = httpx.get(url, timeout=timeout, follow_redirects=True)
    except (httpx.TimeoutException, httpx.TransportError) as exc:
        logger.warning("terraform_download_network_error", url=url, error=str(exc))
        raise RetryableDownloadError(str(exc)) from exc

    if is_retryable_status(response.status_code):
        logger.warning("terraform_download_retryable", url=url, status=response.status_code)
        raise RetryableDownloadError(f"HTTP {response.status_code}")

    response.raise_for_status()
    return response.content


def _binary_name() -> str:
    return "terraform.exe" if sys.platform.startswith("win") else "terraform"


def _install(payload: bytes, binary: Path) -> None:
    """Write the binary next to its final path, then move it into place."""
    binary.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=".terraform-", dir=binary.parent)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(payload)
        os.chmod(tmp_name, BINARY_MODE)
        os.replace(tmp_name, binary)
    except OSError:
        with contextlib.suppress(OSError):
            os.unlink(tmp_name)
        raise


def download_terraform(
    version: str,
    force_redownload: bool = False,
    *,
    settings: Settings | None = None,
) -> str:
    """Return the path of a cached terraform binary, downloading it if needed."""
    if not _VERSION_RE.match(version):
        raise ToolchainError(f"invalid terraform version: {version!r}")

    settings = settings or get_settings()
    target_dir = Path(settings.cache_dir) / "terraform" / version
    binary = target_dir / _binary_name()

    if binary.exists() and not force_redownload:
        logger.debug("terraform_cached", path=str(binary))
        return str(binary)

    url = release_url(version, settings.releases_url)
    logger.info("terraform_download", version=version, url=url)
    try:
        archive = _fetch_archive(url, settings.http_timeout)
    except (RetryableDownloadError, httpx.HTTPError) as exc:
        raise ToolchainError(
            f"cannot download terraform {version}: {exc}",
            {"url": url},
        ) from exc

    try:
        with zipfile.ZipFile(io.BytesIO(archive)) as zf:
            payload = zf.read(_binary_name())
    except (zipfile.BadZipFile, KeyError) as exc:
        raise ToolchainError(f"invalid terraform archive for {version}: {exc}") from exc

    try:
        _install(payload, binary)
    except OSError as exc:
        raise ToolchainError(
            f"cannot install terraform {version}: {exc}",
            {"path": str(binary)},
        ) from exc

    logger.debug("terraform_installed", path=str(binary))
    return str(binary)


def resolve_binary(version: str | None, *, settings: Settings | None = None) -> str:
    """Pick the terraform binary for an operation."""
    settings = settings or get_settings()
    if not version:
        logger.debug("terraform_lookup")
        path = lookup_terraform(settings.terraform_binary)
    else:
        path = download_terraform(version, False, settings=settings)
    logger.debug("terraform_binary", path=path)
    return path
