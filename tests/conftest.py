"""Root test configuration."""

import logging
from pathlib import Path

import pytest
import structlog

from tfapply.config.settings import Settings
from tfapply.terraform.base import TerraformCommandError


def pytest_configure(config):
    """Configure structlog for tests to suppress debug/info output."""
    logging.basicConfig(level=logging.WARNING, force=True)
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


class FakeClient:
    """Scripted execution client that writes to the attached streams."""

    def __init__(self, script, binary, directory):
        self.script = script
        self.binary = binary
        self._dir = directory
        self.calls = []
        self.vars = {}
        self.backend_vars = {}
        self.env = {}
        self.registry = []
        self.stdout = None
        self.stderr = None
        self.staged_on_init = []

    @property
    def dir(self):
        return self._dir

    def set_stdout(self, stream):
        self.stdout = stream
        return self

    def set_stderr(self, stream):
        self.stderr = stream
        return self

    def with_vars(self, variables):
        self.calls.append("with_vars")
        self.vars = dict(variables)
        return self

    def with_backend_vars(self, variables):
        self.calls.append("with_backend_vars")
        self.backend_vars = dict(variables)
        return self

    def with_env(self, env):
        self.calls.append("with_env")
        self.env = dict(env)
        return self

    def append_env(self, env):
        self.calls.append("append_env")
        self.env.update(env)
        return self

    def with_registry(self, credentials):
        self.calls.append("with_registry")
        self.registry = list(credentials)
        return self

    def _phase(self, name):
        self.calls.append(name)
        self.stdout.write(f"running {name}\n".encode())
        self.stdout.flush()
        if name in self.script.failures:
            self.stderr.write(self.script.failures[name].encode())
            self.stderr.flush()
            raise TerraformCommandError([self.binary, name], 1)

    def get_module(self, source, version):
        self._phase("get_module")
        Path(self._dir, "main.tf").write_text('variable "x" {}\n')

    def init(self):
        self._phase("init")
        self.staged_on_init = sorted(
            str(p.relative_to(self._dir)) for p in Path(self._dir).rglob("*") if p.is_file()
        )

    def plan(self, plan_file):
        self.plan_file = plan_file
        Path(plan_file).write_text("{}")
        self._phase("plan")

    def apply_with_plan(self, plan_file):
        self._phase("apply_with_plan")

    def apply(self):
        self._phase("apply")

    def destroy(self):
        self._phase("destroy")

    def output(self):
        self._phase("output")
        return {key: f"{value}-out" for key, value in self.vars.items()}


class FakeTerraform:
    """Factory handed to the orchestrator; remembers every client it built."""

    def __init__(self):
        self.failures = {}
        self.clients = []

    def fail(self, phase, stderr=""):
        self.failures[phase] = stderr
        return self

    def __call__(self, binary, directory):
        client = FakeClient(self, binary, directory)
        self.clients.append(client)
        return client

    @property
    def last(self):
        return self.clients[-1]


@pytest.fixture
def fake_terraform():
    return FakeTerraform()


@pytest.fixture
def settings(tmp_path):
    return Settings(cache_dir=tmp_path / "cache", drain_timeout=2.0)
