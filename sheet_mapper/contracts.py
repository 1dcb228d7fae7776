"""
contracts.py — the envelope around every --json payload.

    {"contract": {"name": "sheet_mapper.parse", "version": "1.0.0"},
     "run_summary": {...},
     ...command-specific keys}

Bump a command's version whenever its keys change shape.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any

TOOL_NAME = "sheet-mapper"
CONTRACT_PREFIX = "sheet_mapper."

CONTRACT_VERSIONS = {
    "parse": "1.0.0",
    "suggest": "1.0.0",
}


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def contract_header(command: str) -> dict[str, str]:
    """Raises KeyError for a command that emits no JSON."""
    return {"name": CONTRACT_PREFIX + command, "version": CONTRACT_VERSIONS[command]}


def build_envelope(
    command: str,
    input_path: Path,
    *,
    status: str = "ok",
    metrics: dict[str, Any] | None = None,
    warnings: list[str] | None = None,
    **body: Any,
) -> dict[str, Any]:
    warnings = list(warnings or [])
    envelope: dict[str, Any] = {
        "contract": contract_header(command),
        "run_summary": {
            "tool": TOOL_NAME,
            "command": command,
            "status": status,
            "generated_at": utc_now_iso(),
            "input_file": str(input_path),
            "warnings_count": len(warnings),
            "warnings": warnings,
            "metrics": dict(metrics or {}),
        },
    }
    overlap = set(body) & set(envelope)
    if overlap:
        raise ValueError(f"Payload keys clash with the envelope: {', '.join(sorted(overlap))}")
    envelope.update(body)
    return envelope
