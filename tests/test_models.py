"""Tests for models.py."""

import pytest

from tfapply.core.errors import ValidationError
from tfapply.models import (
    AuxiliaryFileSpec,
    OperationRequest,
    ProviderConfig,
    RegistryCredential,
)


class TestOperationRequest:
    def test_remote_identity(self):
        assert OperationRequest(source="org/mod", version="1.0.0").identity == "org/mod:1.0.0"

    def test_remote_identity_without_version(self):
        assert OperationRequest(source="org/mod").identity == "org/mod:"

    def test_local_identity(self):
        request = OperationRequest(module_path="./modules/net")

        assert request.is_local
        assert request.identity == "./modules/net"

    def test_neither_location(self):
        with pytest.raises(ValidationError, match="please provide either 'source' or 'module_path'"):
            OperationRequest().validate()

    def test_both_locations(self):
        with pytest.raises(ValidationError, match="mutually exclusive"):
            OperationRequest(source="org/mod", module_path="./m").validate()

    def test_from_dict(self):
        request = OperationRequest.from_dict(
            {
                "source": "org/mod",
                "version": "1.0.0",
                "terraform_version": "",
                "vars": {"x": "Hello", "count": 2},
                "backend_config": {"bucket": "b"},
                "envs": {"AWS_REGION": "eu-west-1"},
                "registry": [{"host": "app.terraform.io", "token": "secret"}],
                "extra_file": [{"path": "a.tf", "content": "locals {}", "cleanup": True}],
            }
        )

        assert request.terraform_version is None
        assert request.vars == {"x": "Hello", "count": 2}
        assert request.registry[0].host == "app.terraform.io"
        assert request.extra_files[0].content == b"locals {}"
        assert request.extra_files[0].cleanup is True
        assert request.extra_files[0].force is False


class TestRegistryCredential:
    def test_token_not_in_repr(self):
        assert "secret" not in repr(RegistryCredential("app.terraform.io", "secret"))

    def test_missing_token(self):
        with pytest.raises(ValidationError):
            RegistryCredential.from_dict({"host": "app.terraform.io"})


class TestAuxiliaryFileSpec:
    def test_missing_path(self):
        with pytest.raises(ValidationError):
            AuxiliaryFileSpec.from_dict({"content": "x"})

    def test_missing_content(self):
        with pytest.raises(ValidationError):
            AuxiliaryFileSpec.from_dict({"path": "a.tf"})

    def test_empty_content_allowed(self):
        assert AuxiliaryFileSpec.from_dict({"path": "a.tf", "content": ""}).content == b""


def test_provider_config_from_none():
    config = ProviderConfig.from_dict(None)

    assert config.registry == []
    assert config.extra_files == []
