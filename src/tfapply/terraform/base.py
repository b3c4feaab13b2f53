from __future__ import annotations

from typing import IO, Protocol, Sequence

from tfapply.models import RegistryCredential


class TerraformCommandError(Exception):
    """A terraform invocation exited with a non-zero status."""

    def __init__(self, command: Sequence[str], returncode: int) -> None:
        self.command = list(command)
        self.returncode = returncode
        super().__init__(f"'{' '.join(self.command)}' exited with status {returncode}")


class ExecutionClient(Protocol):
    """Contract for the component that actually runs terraform."""

    @property
    def dir(self) -> str:
        ...

    def set_stdout(self, stream: IO[bytes]) -> ExecutionClient:
        ...

    def set_stderr(self, stream: IO[bytes]) -> ExecutionClient:
        ...

    def with_vars(self, variables: dict[str, str]) -> ExecutionClient:
        ...

    def with_backend_vars(self, variables: dict[str, str]) -> ExecutionClient:
        ...

    def with_env(self, env: dict[str, str]) -> ExecutionClient:
        ...

    def append_env(self, env: dict[str, str]) -> ExecutionClient:
        ...

    def with_registry(self, credentials: Sequence[RegistryCredential]) -> ExecutionClient:
        ...

    def get_module(self, source: str, version: str | None) -> None:
        ...

    def init(self) -> None:
        ...

    def plan(self, plan_file: str) -> None:
        ...

    def apply_with_plan(self, plan_file: str) -> None:
        ...

    def apply(self) -> None:
        ...

    def destroy(self) -> None:
        ...

    def output(self) -> dict[str, str]:
        ...
