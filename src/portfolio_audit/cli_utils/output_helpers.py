"""Output helpers for portfolio-audit CLI commands.

Provides JSON output formatting so every command can answer with the same
success/error envelope.
"""

import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional


def format_json_success(data: Any, metadata: Optional[Dict[str, Any]] = None) -> str:
    """Format successful result as JSON with standard structure.

    Args:
        data: The data to include in the response
        metadata: Optional additional metadata

    Returns:
        JSON string with format: {"success": true, "data": ..., "metadata": {...}}
    """
    result_metadata = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if metadata:
        result_metadata.update(metadata)

    result = {
        "success": True,
        "data": data,
        "metadata": result_metadata,
    }
    return json.dumps(result, indent=2, default=str, ensure_ascii=False)


def format_json_error(
    error_message: str,
    error_type: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
) -> str:
    """Format error result as JSON with standard structure.

    Args:
        error_message: The error message (public, safe to display)
        error_type: Optional error type/class name
        details: Optional extra fields, e.g. the retained commit hash

    Returns:
        JSON string with format: {"success": false, "error": ..., "error_type": ...}
    """
    result: Dict[str, Any] = {
        "success": False,
        "error": error_message,
        "error_type": error_type or "Error",
    }
    if details:
        result["details"] = details
    return json.dumps(result, indent=2, ensure_ascii=False)
