"""
Subprocess-backed terraform execution client.

TerraformCli is bound to one binary and one working directory. Configuration
setters accumulate state; phase methods run terraform synchronously and raise
TerraformCommandError on a non-zero exit. Tool output goes to the attached
stdout/stderr streams.
"""

from __future__ import annotations

import io
import json
import os
import re
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import IO, Any, Sequence

import structlog

from tfapply.models import RegistryCredential
from tfapply.terraform.base import TerraformCommandError

logger = structlog.get_logger()

MODULE_KEY = "fetch"
_HOST_INVALID = re.compile(r"[^A-Za-z0-9_]")


def registry_token_env(host: str) -> str:
    """Environment variable terraform reads a registry token from."""
    name = host.replace(".", "_").replace("-", "__")
    return "TF_TOKEN_" + _HOST_INVALID.sub("_", name)


def _has_fileno(stream: IO[bytes] | None) -> bool:
    if stream is None:
        return False
    try:
        stream.fileno()
        return True
    except (AttributeError, OSError, io.UnsupportedOperation):
        return False


def _render_output(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, sort_keys=True)


class TerraformCli:
    """Runs terraform phases against a single module directory."""

    def __init__(self, binary: str, directory: str) -> None:
        self._binary = binary
        self._dir = directory
        self._stdout: IO[bytes] | None = None
        self._stderr: IO[bytes] | None = None
        self._vars: dict[str, str] = {}
        self._backend_vars: dict[str, str] = {}
        self._env: dict[str, str] = {}
        self._registry: list[RegistryCredential] = []

    @property
    def dir(self) -> str:
        return self._dir

    @property
    def binary(self) -> str:
        return self._binary

    def set_stdout(self, stream: IO[bytes]) -> TerraformCli:
        self._stdout = stream
        return self

    def set_stderr(self, stream: IO[bytes]) -> TerraformCli:
        self._stderr = stream
        return self

    def with_vars(self, variables: dict[str, str]) -> TerraformCli:
        self._vars = dict(variables)
        return self

    def with_backend_vars(self, variables: dict[str, str]) -> TerraformCli:
        self._backend_vars = dict(variables)
        return self

    def with_env(self, env: dict[str, str]) -> TerraformCli:
        self._env = dict(env)
        return self

    def append_env(self, env: dict[str, str]) -> TerraformCli:
        self._env.update(env)
        return self

    def with_registry(self, credentials: Sequence[RegistryCredential]) -> TerraformCli:
        self._registry = list(credentials)
        return self

    def environment(self) -> dict[str, str]:
        """Full process environment for a terraform invocation."""
        env = dict(os.environ)
        env.update(self._env)
        env["TF_IN_AUTOMATION"] = "1"

        # First credential for a host wins
        seen: set[str] = set()
        for cred in self._registry:
            if cred.host in seen:
                continue
            seen.add(cred.host)
            env[registry_token_env(cred.host)] = cred.token
        return env

    def _var_args(self) -> list[str]:
        args: list[str] = []
        for key, value in sorted(self._vars.items()):
            args.extend(["-var", f"{key}={value}"])
        return args

    def _run(self, *args: str, cwd: str | None = None, capture: bool = False) -> str:
        cmd = [self._binary, *args]
        stdout_target: Any = subprocess.PIPE
        if not capture and (self._stdout is None or _has_fileno(self._stdout)):
            stdout_target = self._stdout
        stderr_target: Any = subprocess.PIPE
        if self._stderr is None or _has_fileno(self._stderr):
            stderr_target = self._stderr

        logger.debug("terraform_command", command=args[0], dir=cwd or self._dir)
        result = subprocess.run(
            cmd,
            cwd=cwd or self._dir,
            env=self.environment(),
            stdout=stdout_target,
            stderr=stderr_target,
            check=False,
        )

        # Streams without a file descriptor get the output copied after the fact
        if stdout_target is subprocess.PIPE and not capture and self._stdout is not None:
            self._stdout.write(result.stdout or b"")
            self._stdout.flush()
        if stderr_target is subprocess.PIPE and self._stderr is not None:
            self._stderr.write(result.stderr or b"")
            self._stderr.flush()

        if result.returncode != 0:
            # Only the subcommand, -var values may carry secrets
            raise TerraformCommandError([Path(self._binary).name, args[0]], result.returncode)

        if capture:
            return (result.stdout or b"").decode("utf-8")
        return ""

    def get_module(self, source: str, version: str | None) -> None:
        """Download a registry/remote module and copy it into the working directory."""
        with tempfile.TemporaryDirectory(prefix="tfapply-module-") as scratch:
            lines = [f'module "{MODULE_KEY}" {{', f"  source = {json.dumps(source)}"]
            if version:
                lines.append(f"  version = {json.dumps(version)}")
            lines.append("}")
            Path(scratch, "main.tf").write_text("\n".join(lines) + "\n")

            self._run("init", "-backend=false", "-input=false", "-no-color", cwd=scratch)

            module_dir = _fetched_module_dir(Path(scratch))
            shutil.copytree(
                module_dir,
                self._dir,
                dirs_exist_ok=True,
                ignore=shutil.ignore_patterns(".git"),
            )
        logger.debug("module_fetched", source=source, version=version, dir=self._dir)

    def init(self) -> None:
        args = ["init", "-input=false", "-no-color"]
        for key, value in sorted(self._backend_vars.items()):
            args.append(f"-backend-config={key}={value}")
        self._run(*args)

    def plan(self, plan_file: str) -> None:
        self._run("plan", "-input=false", "-no-color", f"-out={plan_file}", *self._var_args())

    def apply_with_plan(self, plan_file: str) -> None:
        self._run("apply", "-input=false", "-no-color", "-auto-approve", plan_file)

    def apply(self) -> None:
        self._run("apply", "-input=false", "-no-color", "-auto-approve", *self._var_args())

    def destroy(self) -> None:
        self._run("destroy", "-input=false", "-no-color", "-auto-approve", *self._var_args())

    def output(self) -> dict[str, str]:
        raw = self._run("output", "-json", "-no-color", capture=True)
        if not raw.strip():
            return {}
        data = json.loads(raw)
        return {name: _render_output(entry.get("value")) for name, entry in data.items()}


def _fetched_module_dir(scratch: Path) -> Path:
    """Locate the downloaded module using terraform's module manifest."""
    manifest = scratch / ".terraform" / "modules" / "modules.json"
    if manifest.exists():
        data = json.loads(manifest.read_text())
        for entry in data.get("Modules", []):
            if entry.get("Key") == MODULE_KEY:
                return scratch / entry["Dir"]
    return scratch / ".terraform" / "modules" / MODULE_KEY
