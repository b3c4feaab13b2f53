"""
CLI commands for applying, destroying and inspecting managed modules.

A resource file is a YAML mapping describing one module:

    name: network
    source: terraform-aws-modules/vpc/aws
    version: 5.1.0
    vars:
      cidr: 10.0.0.0/16
    backend_config:
      bucket: my-state
"""

from __future__ import annotations

import json
from pathlib import Path

from tfapply.cli import ux
from tfapply.cli.ux import console
from tfapply.config.loader import load_config, read_yaml
from tfapply.config.settings import get_settings
from tfapply.core.errors import (
    TfApplyError,
    ValidationError,
    format_error_message,
    main_with_error_handling,
)
from tfapply.models import OperationRequest
from tfapply.orchestrator import LifecycleOrchestrator
from tfapply.resource import ManagedResource
from tfapply.state import ResourceState, load_state, save_state


def load_resource(resource_yaml: str | Path) -> tuple[str, OperationRequest]:
    """Read a resource file, returning its name and the bound request."""
    path = Path(resource_yaml)
    data = read_yaml(path)
    name = str(data.get("name") or path.stem)
    request = OperationRequest.from_dict(data)
    request.validate()
    return name, request


def print_state_json(name: str, state: ResourceState) -> None:
    output = {"name": name, "id": state.id, "outputs": state.outputs}
    print(json.dumps(output, indent=2, sort_keys=True))


def print_state_summary(name: str, state: ResourceState) -> None:
    if state.exists:
        ux.success(f"{name} → {state.id}")
    else:
        ux.info(f"{name} destroyed")
    if state.outputs:
        ux.print_key_value(state.outputs, title="Outputs")


def _state_path(state_path: str | None) -> Path:
    return Path(state_path) if state_path else get_settings().state_file


def _run_lifecycle(
    action: str,
    resource_yaml: str,
    state_path: str | None,
    config_path: str | None,
    output_format: str,
) -> int:
    path = _state_path(state_path)
    try:
        name, request = load_resource(resource_yaml)
        provider_config = load_config(config_path)
        state_file = load_state(path)
        resource = ManagedResource(LifecycleOrchestrator(provider_config), state_file.get(name))

        if action == "destroy":
            if not resource.state.exists:
                raise ValidationError(f"resource '{name}' is not in state", {"state": str(path)})
            state = resource.delete(request)
        else:
            state = resource.apply(request)
    except TfApplyError as e:
        ux.error(format_error_message(e))
        raise

    save_state(state_file, path)

    if output_format == "json":
        print_state_json(name, state)
    else:
        print_state_summary(name, state)
    return 0


@main_with_error_handling()
def apply_command(
    resource_yaml: str,
    state_path: str | None = None,
    config_path: str | None = None,
    output_format: str = "text",
) -> int:
    """
    Create the module, or update it when the state already tracks it.

    Returns:
        Exit code (0 for success)
    """
    return _run_lifecycle("apply", resource_yaml, state_path, config_path, output_format)


@main_with_error_handling()
def destroy_command(
    resource_yaml: str,
    state_path: str | None = None,
    config_path: str | None = None,
    output_format: str = "text",
) -> int:
    """Destroy the module and drop its identity from state."""
    return _run_lifecycle("destroy", resource_yaml, state_path, config_path, output_format)


@main_with_error_handling()
def show_command(state_path: str | None = None, output_format: str = "text") -> int:
    """Print every resource recorded in the state file."""
    state_file = load_state(_state_path(state_path))

    if output_format == "json":
        payload = {
            name: {"id": res.id, "outputs": res.outputs}
            for name, res in state_file.resources.items()
        }
        print(json.dumps(payload, indent=2, sort_keys=True))
        return 0

    if not state_file.resources:
        ux.info("No resources in state")
        return 0

    rows = [
        [name, res.id or "-", ", ".join(sorted(res.outputs)) or "-"]
        for name, res in sorted(state_file.resources.items())
    ]
    ux.print_table("Managed modules", ["Name", "ID", "Outputs"], rows)
    console.print()
    return 0
