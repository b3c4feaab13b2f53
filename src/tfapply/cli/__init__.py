"""
CLI commands for tfapply.
"""

from tfapply.cli.apply import apply_command, destroy_command, show_command

__all__ = [
    "apply_command",
    "destroy_command",
    "show_command",
]
