"""
Unified error handling for tfapply operations and CLI commands.

Every failure surfaced to the lifecycle layer is a TfApplyError subclass,
so callers can branch on the category and the CLI can map it to an exit
code.

Exit Codes:
- 0: Success
- 10: Configuration / toolchain error (binary not found, download failed)
- 11: Terraform phase error (get module, init, plan, apply, destroy, output)
- 12: Validation error (invalid operation request)
- 13: Workspace error (working directory could not be created)
- 14: Staging error (extra file conflict or write failure)
- 127: Unknown/internal error
"""

from __future__ import annotations

import functools
import sys
import traceback
from enum import IntEnum
from typing import Any, Callable, TypeVar

import structlog

logger = structlog.get_logger()


class ExitCode(IntEnum):
    """Standardized exit codes for CLI commands."""

    SUCCESS = 0
    CONFIG_ERROR = 10
    PROVIDER_ERROR = 11
    VALIDATION_ERROR = 12
    WORKSPACE_ERROR = 13
    STAGING_ERROR = 14
    UNKNOWN_ERROR = 127


class TfApplyError(Exception):
    """Base exception for tfapply errors with exit code support."""

    exit_code: ExitCode = ExitCode.UNKNOWN_ERROR
    show_traceback: bool = False

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def with_label(self, label: str) -> TfApplyError:
        """Prefix the message with the name of the step that failed."""
        self.message = f"{label}: {self.message}"
        self.args = (self.message,)
        return self

    def with_diagnostics(self, diagnostics: str) -> TfApplyError:
        """Prepend captured tool diagnostics to the error message."""
        if diagnostics:
            self.message = f"{diagnostics.rstrip()}\n{self.message}"
            self.args = (self.message,)
        return self


class ConfigurationError(TfApplyError):
    """Raised for configuration-related errors."""

    exit_code = ExitCode.CONFIG_ERROR


class ToolchainError(ConfigurationError):
    """Raised when the terraform binary cannot be located or downloaded."""


class ProviderError(TfApplyError):
    """Raised when an external tool or service fails."""

    exit_code = ExitCode.PROVIDER_ERROR


class PhaseError(ProviderError):
    """Raised when a terraform phase fails."""

    def __init__(
        self,
        phase: str,
        message: str,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details)
        self.phase = phase


class ValidationError(TfApplyError):
    """Raised for validation failures."""

    exit_code = ExitCode.VALIDATION_ERROR


class WorkspaceError(TfApplyError):
    """Raised when the working directory cannot be prepared."""

    exit_code = ExitCode.WORKSPACE_ERROR


class StagingError(TfApplyError):
    """Raised when extra files cannot be staged into the module."""

    exit_code = ExitCode.STAGING_ERROR


class StagingConflictError(StagingError):
    """Raised when a non-forced extra file collides with a module file."""

    def __init__(self, path: str):
        super().__init__(
            f"cannot write extra file ({path}) because target module has a file "
            "with the same name already. Use 'force' to overwrite file",
            {"path": path},
        )
        self.path = path


# Type variable for decorated functions
F = TypeVar("F", bound=Callable[..., int])


def main_with_error_handling(
    *,
    show_traceback: bool = False,
    log_errors: bool = True,
) -> Callable[[F], F]:
    """
    Decorator for CLI main functions that provides unified error handling.

    Catches exceptions and converts them to appropriate exit codes with
    consistent error reporting.

    Usage:
        @main_with_error_handling()
        def my_command() -> int:
            # command implementation
            return 0

    Exit codes:
        - TfApplyError subclasses: Uses the error's exit_code
        - KeyboardInterrupt: Returns 130 (standard for SIGINT)
        - Other exceptions: Returns 127 (unknown error)
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> int:
            try:
                return func(*args, **kwargs)
            except TfApplyError as e:
                if log_errors:
                    logger.error(
                        "command_error",
                        error_type=type(e).__name__,
                        message=e.message,
                        exit_code=e.exit_code,
                        **e.details,
                    )
                if e.show_traceback or show_traceback:
                    traceback.print_exc(file=sys.stderr)
                return e.exit_code
            except KeyboardInterrupt:
                if log_errors:
                    logger.info("command_interrupted")
                return 130  # Standard exit code for SIGINT
            except Exception as e:
                if log_errors:
                    logger.error(
                        "unexpected_error",
                        error_type=type(e).__name__,
                        message=str(e),
                        exit_code=ExitCode.UNKNOWN_ERROR,
                    )
                if show_traceback:
                    traceback.print_exc(file=sys.stderr)
                return ExitCode.UNKNOWN_ERROR

        return wrapper  # type: ignore[return-value]

    return decorator


def format_error_message(error: TfApplyError) -> str:
    """Format an error message for display to users."""
    msg = error.message
    if error.details:
        detail_str = ", ".join(f"{k}={v}" for k, v in error.details.items())
        msg = f"{msg} ({detail_str})"
    return msg
