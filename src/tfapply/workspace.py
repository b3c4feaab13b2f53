"""Working directory lifecycle for a single terraform operation."""

from __future__ import annotations

import shutil
import tempfile
from contextlib import contextmanager
from typing import Callable, Iterator

import structlog

from tfapply.core.errors import WorkspaceError

logger = structlog.get_logger()


def sanitize_hint(hint: str) -> str:
    """Turn a module source into something usable as a directory prefix."""
    return hint.replace("/", "_").replace("\\", "_")


class WorkspaceController:
    """
    Owns the working directory of one operation.

    A local module path is handed back untouched and never removed. Any other
    operation gets a fresh temporary directory that is removed on release.
    """

    def __init__(self, base_dir: str | None = None) -> None:
        self._base_dir = base_dir

    def acquire(
        self,
        is_local: bool,
        local_path: str,
        naming_hint: str,
    ) -> tuple[str, Callable[[], None]]:
        """Return the working directory and its release callback."""
        if is_local:
            return local_path, _noop

        try:
            path = tempfile.mkdtemp(prefix=sanitize_hint(naming_hint), dir=self._base_dir)
        except OSError as exc:
            raise WorkspaceError(
                f"cannot create working directory: {exc}",
                {"hint": naming_hint},
            ) from exc

        logger.debug("workspace_created", dir=path)
        released = False

        def release() -> None:
            nonlocal released
            if released:
                return
            released = True
            try:
                shutil.rmtree(path)
                logger.debug("workspace_removed", dir=path)
            except OSError as exc:
                logger.warning("workspace_remove_failed", dir=path, error=str(exc))

        return path, release

    @contextmanager
    def workspace(self, is_local: bool, local_path: str, naming_hint: str) -> Iterator[str]:
        path, release = self.acquire(is_local, local_path, naming_hint)
        try:
            yield path
        finally:
            release()


def _noop() -> None:
    return None


@contextmanager
def acquire_workspace(
    is_local: bool,
    local_path: str,
    naming_hint: str,
    base_dir: str | None = None,
) -> Iterator[str]:
    """Yield a working directory that is released on every exit path."""
    with WorkspaceController(base_dir).workspace(is_local, local_path, naming_hint) as path:
        yield path
