"""
Lifecycle orchestrator for terraform modules.

Maps create/update/destroy onto terraform's phase sequence:

    acquire workspace -> resolve binary -> start log streaming
    -> get module (remote only) -> stage extra files -> init
    -> plan + apply + output | destroy
    -> cleanup extra files -> release workspace

Every step short-circuits on failure. The surfaced error carries whatever
terraform wrote to stderr, followed by a phase label.
"""

from __future__ import annotations

import contextlib
import os
from typing import Any, Callable, TypeVar

import structlog

from tfapply.config.settings import Settings, get_settings
from tfapply.core.errors import PhaseError, StagingError
from tfapply.logging import operation_context
from tfapply.models import OperationRequest, OperationResult, ProviderConfig
from tfapply.resolver import merge_files, resolve_client_config
from tfapply.staging import FileStager
from tfapply.streaming import LogStreamer
from tfapply.terraform.base import ExecutionClient
from tfapply.terraform.client import TerraformCli
from tfapply.terraform.toolchain import resolve_binary
from tfapply.workspace import WorkspaceController

logger = structlog.get_logger()

ClientFactory = Callable[[str, str], ExecutionClient]
BinaryResolver = Callable[["str | None"], str]
Runner = Callable[[ExecutionClient, "_PhaseRunner"], "dict[str, str] | None"]

T = TypeVar("T")

STAGING_LABEL = "extra file staging failed"


class _PhaseRunner:
    """Runs client calls and turns their failures into PhaseErrors."""

    def __init__(self, streamer: LogStreamer) -> None:
        self._streamer = streamer

    def diagnostics(self) -> str:
        # Drain whatever terraform already wrote before reading the buffer
        self._streamer.close()
        return self._streamer.diagnostics()

    def run(self, phase: str, label: str, func: Callable[..., T], *args: Any) -> T:
        logger.debug("terraform_phase", phase=phase)
        try:
            return func(*args)
        except Exception as exc:
            logger.debug("terraform_phase_failed", phase=phase, error=str(exc))
            raise PhaseError(phase, f"{label}: {exc}").with_diagnostics(
                self.diagnostics()
            ) from exc


class LifecycleOrchestrator:
    """Drives create/update/destroy of a terraform module."""

    def __init__(
        self,
        provider_config: ProviderConfig | None = None,
        *,
        client_factory: ClientFactory = TerraformCli,
        binary_resolver: BinaryResolver | None = None,
        workspace: WorkspaceController | None = None,
        stager: FileStager | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.provider_config = provider_config or ProviderConfig()
        self._settings = settings or get_settings()
        self._client_factory = client_factory
        self._binary_resolver = binary_resolver or self._default_binary_resolver
        self._workspace = workspace or WorkspaceController()
        self._stager = stager or FileStager()

    def _default_binary_resolver(self, version: str | None) -> str:
        return resolve_binary(version, settings=self._settings)

    def create(self, request: OperationRequest) -> OperationResult:
        """Plan and apply the module, returning its identity and outputs."""

        def runner(client: ExecutionClient, phases: _PhaseRunner) -> dict[str, str]:
            plan_file = os.path.join(client.dir, self._settings.plan_file_name)
            try:
                phases.run("plan", "terraform plan failed", client.plan, plan_file)
                phases.run("apply", "terraform apply failed", client.apply_with_plan, plan_file)
            finally:
                with contextlib.suppress(OSError):
                    os.remove(plan_file)
            return phases.run("output", "cannot get terraform output", client.output)

        outputs = self._run(request, operation="create", vars_as_env=False, runner=runner)
        return OperationResult(identity=request.identity, outputs=dict(outputs or {}))

    def update(self, request: OperationRequest) -> OperationResult:
        """Terraform converges on desired state, so update is a create."""
        return self.create(request)

    def destroy(self, request: OperationRequest) -> None:
        """Destroy everything the module manages."""

        def runner(client: ExecutionClient, phases: _PhaseRunner) -> None:
            phases.run("destroy", "terraform destroy failed", client.destroy)
            return None

        self._run(request, operation="destroy", vars_as_env=True, runner=runner)

    def read(self, request: OperationRequest) -> None:
        """No refresh: state is trusted as of the last create/update."""
        return None

    def _run(
        self,
        request: OperationRequest,
        *,
        operation: str,
        vars_as_env: bool,
        runner: Runner,
    ) -> dict[str, str] | None:
        request.validate()
        with operation_context(operation=operation, identity=request.identity):
            return self._run_in_workspace(request, vars_as_env=vars_as_env, runner=runner)

    def _run_in_workspace(
        self,
        request: OperationRequest,
        *,
        vars_as_env: bool,
        runner: Runner,
    ) -> dict[str, str] | None:
        binary = self._binary_resolver(request.terraform_version)

        with self._workspace.workspace(
            request.is_local,
            request.module_path or "",
            request.source or "",
        ) as directory:
            logger.debug("terraform_working_dir", dir=directory)
            streamer = LogStreamer(drain_timeout=self._settings.drain_timeout)
            stdout, stderr = streamer.start()
            try:
                client = self._client_factory(binary, directory)
                client.set_stdout(stdout)
                client.set_stderr(stderr)

                resolve_client_config(
                    request,
                    self.provider_config,
                    vars_as_env=vars_as_env,
                    env_prefix=self._settings.env_var_prefix,
                ).apply(client)

                return self._execute(request, client, streamer, runner)
            finally:
                streamer.close()
                streamer.stop()

    def _execute(
        self,
        request: OperationRequest,
        client: ExecutionClient,
        streamer: LogStreamer,
        runner: Runner,
    ) -> dict[str, str] | None:
        phases = _PhaseRunner(streamer)

        if not request.is_local:
            logger.debug("terraform_get_module", source=request.source, version=request.version)
            phases.run(
                "get_module",
                "terraform module download failed",
                client.get_module,
                request.source,
                request.version,
            )

        files = merge_files(request.extra_files, self.provider_config.extra_files)

        try:
            self._stager.check_conflicts(client.dir, files)
        except StagingError as exc:
            raise exc.with_label(STAGING_LABEL).with_diagnostics(phases.diagnostics())

        try:
            try:
                self._stager.write(client.dir, files)
            except StagingError as exc:
                raise exc.with_label(STAGING_LABEL).with_diagnostics(phases.diagnostics())

            logger.info("terraform_init")
            phases.run("init", "terraform init failed", client.init)

            result = runner(client, phases)
        finally:
            self._stager.cleanup(client.dir, files)

        logger.info("terraform_operation_complete")
        return result


def create(
    request: OperationRequest, provider_config: ProviderConfig | None = None
) -> OperationResult:
    return LifecycleOrchestrator(provider_config).create(request)


def update(
    request: OperationRequest, provider_config: ProviderConfig | None = None
) -> OperationResult:
    return LifecycleOrchestrator(provider_config).update(request)


def destroy(request: OperationRequest, provider_config: ProviderConfig | None = None) -> None:
    LifecycleOrchestrator(provider_config).destroy(request)
