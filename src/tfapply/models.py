"""
Typed inputs and results for a single terraform lifecycle operation.

Raw mappings (YAML resource blocks, provider config) are bound into these
dataclasses once at the edge; everything downstream works with typed values.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from tfapply.core.errors import ValidationError

Scalar = str | int | float | bool | None


@dataclass(frozen=True)
class RegistryCredential:
    """Access token for a private Terraform registry host."""

    host: str
    token: str = field(repr=False)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> RegistryCredential:
        host = data.get("host")
        token = data.get("token")
        if not host or not token:
            raise ValidationError(
                "registry credential requires 'host' and 'token'",
                {"host": host or ""},
            )
        return cls(host=str(host), token=str(token))


@dataclass(frozen=True)
class AuxiliaryFileSpec:
    """An extra file to stage into the module directory."""

    path: str
    content: bytes
    force: bool = False
    cleanup: bool = False

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> AuxiliaryFileSpec:
        path = data.get("path")
        if not path:
            raise ValidationError("extra file requires a 'path'")
        if "content" not in data:
            raise ValidationError("extra file requires 'content'", {"path": path})

        content = data["content"]
        if isinstance(content, str):
            content = content.encode("utf-8")

        return cls(
            path=str(path),
            content=bytes(content),
            force=bool(data.get("force", False)),
            cleanup=bool(data.get("cleanup", False)),
        )


@dataclass
class ProviderConfig:
    """Process-wide credentials and extra files shared by every operation."""

    registry: list[RegistryCredential] = field(default_factory=list)
    extra_files: list[AuxiliaryFileSpec] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> ProviderConfig:
        data = data or {}
        return cls(
            registry=[RegistryCredential.from_dict(r) for r in data.get("registry") or []],
            extra_files=[AuxiliaryFileSpec.from_dict(f) for f in data.get("extra_file") or []],
        )


@dataclass
class OperationRequest:
    """Input to one create/update/destroy operation."""

    terraform_version: str | None = None
    source: str | None = None
    version: str | None = None
    module_path: str | None = None
    vars: dict[str, Scalar] = field(default_factory=dict)
    backend_config: dict[str, Scalar] = field(default_factory=dict)
    envs: dict[str, Scalar] = field(default_factory=dict)
    registry: list[RegistryCredential] = field(default_factory=list)
    extra_files: list[AuxiliaryFileSpec] = field(default_factory=list)

    @property
    def is_local(self) -> bool:
        return bool(self.module_path)

    @property
    def identity(self) -> str:
        """Identity tracked by the lifecycle layer across operations."""
        if self.is_local:
            return str(self.module_path)
        return f"{self.source}:{self.version or ''}"

    def validate(self) -> None:
        """Ensure exactly one module location is configured."""
        if self.is_local and self.source:
            raise ValidationError(
                "'source' and 'module_path' are mutually exclusive",
                {"source": self.source, "module_path": self.module_path},
            )
        if not self.is_local and not self.source:
            raise ValidationError("please provide either 'source' or 'module_path'")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> OperationRequest:
        """Bind a raw resource block into a typed request."""
        return cls(
            terraform_version=data.get("terraform_version") or None,
            source=data.get("source") or None,
            version=data.get("version") or None,
            module_path=data.get("module_path") or None,
            vars=dict(data.get("vars") or {}),
            backend_config=dict(data.get("backend_config") or {}),
            envs=dict(data.get("envs") or {}),
            registry=[RegistryCredential.from_dict(r) for r in data.get("registry") or []],
            extra_files=[AuxiliaryFileSpec.from_dict(f) for f in data.get("extra_file") or []],
        )


@dataclass
class OperationResult:
    """Result of a successful create/update."""

    identity: str
    outputs: dict[str, str] = field(default_factory=dict)
