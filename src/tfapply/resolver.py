"""
Credential, variable and environment resolution.

Merges process-wide and per-operation inputs and coerces dynamic values into
the string maps the execution client expects. Nothing here mutates its
arguments.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

import structlog

from tfapply.models import (
    AuxiliaryFileSpec,
    OperationRequest,
    ProviderConfig,
    RegistryCredential,
)
from tfapply.terraform.base import ExecutionClient

logger = structlog.get_logger()

DEFAULT_ENV_PREFIX = "TF_VAR_"


def merge_credentials(
    operation_level: Sequence[RegistryCredential],
    process_level: Sequence[RegistryCredential],
) -> list[RegistryCredential]:
    """Concatenate credentials, operation-level first. Duplicates are kept."""
    return [*operation_level, *process_level]


def merge_files(
    operation_level: Sequence[AuxiliaryFileSpec],
    process_level: Sequence[AuxiliaryFileSpec],
) -> list[AuxiliaryFileSpec]:
    """Concatenate extra files, operation-level first."""
    return [*operation_level, *process_level]


def _to_string(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def coerce_to_strings(mapping: Mapping[str, Any] | None) -> dict[str, str]:
    """Convert scalar values to their string representation."""
    return {key: _to_string(value) for key, value in (mapping or {}).items()}


def coerce_to_env_prefixed(
    mapping: Mapping[str, Any] | None,
    prefix: str = DEFAULT_ENV_PREFIX,
) -> dict[str, str]:
    """Same as coerce_to_strings, with every key rewritten as ``prefix + key``."""
    return {f"{prefix}{key}": _to_string(value) for key, value in (mapping or {}).items()}


@dataclass
class ClientConfig:
    """Everything the execution client needs before the first phase runs."""

    vars: dict[str, str] = field(default_factory=dict)
    backend_vars: dict[str, str] = field(default_factory=dict)
    env: dict[str, str] = field(default_factory=dict)
    appended_env: dict[str, str] = field(default_factory=dict)
    registry: list[RegistryCredential] = field(default_factory=list)

    def apply(self, client: ExecutionClient) -> None:
        """Push the configuration into the client's setters."""
        if self.backend_vars:
            logger.debug("with_backend_config", keys=sorted(self.backend_vars))
            client.with_backend_vars(self.backend_vars)

        if self.env:
            logger.debug("with_envs", keys=sorted(self.env))
            client.with_env(self.env)

        if self.appended_env:
            logger.debug("with_vars_as_env", keys=sorted(self.appended_env))
            client.append_env(self.appended_env)

        if self.vars:
            logger.debug("with_vars", keys=sorted(self.vars))
            client.with_vars(self.vars)

        if self.registry:
            logger.debug("with_registry_credentials", hosts=[c.host for c in self.registry])
            client.with_registry(self.registry)


def resolve_client_config(
    request: OperationRequest,
    provider_config: ProviderConfig | None,
    *,
    vars_as_env: bool,
    env_prefix: str = DEFAULT_ENV_PREFIX,
) -> ClientConfig:
    """
    Build the client configuration for one operation.

    With ``vars_as_env`` the module variables are delivered only as prefixed
    environment variables, so a destroy cannot fail on a variable the module
    no longer declares. Otherwise they are delivered only as tool-native
    variables.
    """
    provider_config = provider_config or ProviderConfig()
    config = ClientConfig(
        backend_vars=coerce_to_strings(request.backend_config),
        env=coerce_to_strings(request.envs),
        registry=merge_credentials(request.registry, provider_config.registry),
    )

    if vars_as_env:
        config.appended_env = coerce_to_env_prefixed(request.vars, env_prefix)
    else:
        config.vars = coerce_to_strings(request.vars)

    return config
