"""
Persisted state of managed modules.

The lifecycle layer keeps one entry per resource: the identity returned by the
last create/update and the outputs terraform reported. Destroy clears both.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path

from tfapply.config.settings import get_settings
from tfapply.core.errors import ConfigurationError


@dataclass
class ResourceState:
    id: str = ""
    outputs: dict[str, str] = field(default_factory=dict)

    @property
    def exists(self) -> bool:
        return bool(self.id)

    def clear(self) -> None:
        self.id = ""
        self.outputs = {}


@dataclass
class StateFile:
    resources: dict[str, ResourceState] = field(default_factory=dict)

    def get(self, name: str) -> ResourceState:
        return self.resources.setdefault(name, ResourceState())


def load_state(path: Path | None = None) -> StateFile:
    state_path = path or get_settings().state_file
    if not state_path.exists():
        return StateFile()
    try:
        data = json.loads(state_path.read_text())
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"corrupt state file {state_path}: {exc}") from exc

    resources = {
        name: ResourceState(id=entry.get("id", ""), outputs=dict(entry.get("outputs", {})))
        for name, entry in data.get("resources", {}).items()
    }
    return StateFile(resources=resources)


def save_state(state: StateFile, path: Path | None = None) -> None:
    state_path = path or get_settings().state_file
    payload = {
        "resources": {
            name: {"id": res.id, "outputs": res.outputs}
            for name, res in state.resources.items()
        }
    }
    state_path.write_text(json.dumps(payload, indent=2, sort_keys=True) + "\n")
