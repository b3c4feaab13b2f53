"""Terraform execution client and binary resolution."""

from tfapply.terraform.base import ExecutionClient, TerraformCommandError
from tfapply.terraform.client import TerraformCli
from tfapply.terraform.toolchain import (
    download_terraform,
    lookup_terraform,
    resolve_binary,
)

__all__ = [
    "ExecutionClient",
    "TerraformCli",
    "TerraformCommandError",
    "download_terraform",
    "lookup_terraform",
    "resolve_binary",
]
