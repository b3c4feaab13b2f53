"""
Extra file staging into a module working directory.

Writing is all-or-nothing with respect to conflicts: every non-forced file is
checked before anything is written, so a collision never leaves the module
partially staged.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Sequence

import structlog

from tfapply.core.errors import StagingConflictError, StagingError
from tfapply.models import AuxiliaryFileSpec

logger = structlog.get_logger()

FILE_MODE = 0o660
DIR_MODE = 0o777


def target_path(directory: str | Path, relative: str) -> Path:
    """Resolve a slash-separated relative path inside ``directory``."""
    return Path(directory).joinpath(*[part for part in relative.split("/") if part])


class FileStager:
    """Writes extra files into a module directory and removes them afterwards."""

    def check_conflicts(self, directory: str | Path, files: Sequence[AuxiliaryFileSpec]) -> None:
        """Fail on the first non-forced file that already exists."""
        for spec in files:
            if spec.force:
                continue
            if os.path.lexists(target_path(directory, spec.path)):
                raise StagingConflictError(spec.path)

    def write(self, directory: str | Path, files: Sequence[AuxiliaryFileSpec]) -> None:
        self.check_conflicts(directory, files)

        for spec in files:
            fullpath = target_path(directory, spec.path)
            logger.debug("write_extra_file", path=str(fullpath), force=spec.force)
            try:
                # Files may sit one level below a conventional subdirectory
                os.makedirs(fullpath.parent.parent, mode=DIR_MODE, exist_ok=True)
                os.makedirs(fullpath.parent, mode=DIR_MODE, exist_ok=True)
                created = not fullpath.exists()
                fullpath.write_bytes(spec.content)
                # Overwritten files keep their mode
                if created:
                    os.chmod(fullpath, FILE_MODE)
            except OSError as exc:
                raise StagingError(
                    f"cannot write extra file ({spec.path}): {exc}",
                    {"path": spec.path},
                ) from exc

    def cleanup(self, directory: str | Path, files: Sequence[AuxiliaryFileSpec]) -> None:
        """Best-effort removal of files marked for cleanup."""
        for spec in files:
            if not spec.cleanup:
                continue
            fullpath = target_path(directory, spec.path)
            try:
                fullpath.unlink()
                logger.debug("removed_extra_file", path=str(fullpath))
            except OSError as exc:
                logger.debug("extra_file_cleanup_skipped", path=str(fullpath), error=str(exc))


_default_stager = FileStager()


def write_files(directory: str | Path, *files: AuxiliaryFileSpec) -> None:
    _default_stager.write(directory, files)


def cleanup_files(directory: str | Path, *files: AuxiliaryFileSpec) -> None:
    _default_stager.cleanup(directory, files)
