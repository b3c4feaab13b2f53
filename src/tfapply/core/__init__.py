"""Core modules for tfapply - centralized error definitions."""

from tfapply.core.errors import (
    ConfigurationError,
    ExitCode,
    PhaseError,
    ProviderError,
    StagingConflictError,
    StagingError,
    TfApplyError,
    ToolchainError,
    ValidationError,
    WorkspaceError,
    format_error_message,
    main_with_error_handling,
)

__all__ = [
    "ExitCode",
    "TfApplyError",
    "ConfigurationError",
    "ToolchainError",
    "ProviderError",
    "PhaseError",
    "ValidationError",
    "WorkspaceError",
    "StagingError",
    "StagingConflictError",
    "main_with_error_handling",
    "format_error_message",
]
