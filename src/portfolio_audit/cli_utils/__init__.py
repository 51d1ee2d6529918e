"""CLI utilities package for portfolio-audit.

Provides JSON output formatting shared by the CLI commands.
"""

from .output_helpers import (
    format_json_success,
    format_json_error,
)

__all__ = [
    "format_json_success",
    "format_json_error",
]
