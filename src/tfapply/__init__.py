"""
tfapply: terraform module lifecycle orchestration.

Runs a terraform module, local or fetched from a registry, through
init/plan/apply or destroy in an isolated working directory, streaming
terraform's output to the log and surfacing its diagnostics on failure.
"""

from tfapply.models import (
    AuxiliaryFileSpec,
    OperationRequest,
    OperationResult,
    ProviderConfig,
    RegistryCredential,
)
from tfapply.orchestrator import LifecycleOrchestrator, create, destroy, update

__version__ = "0.1.0"

__all__ = [
    "AuxiliaryFileSpec",
    "LifecycleOrchestrator",
    "OperationRequest",
    "OperationResult",
    "ProviderConfig",
    "RegistryCredential",
    "create",
    "destroy",
    "update",
]
