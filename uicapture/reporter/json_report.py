"""JSON report output."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

from uicapture.models.capture_result import RunSummary
from uicapture.reporter.diff import DiffResult


def generate_json_report(
    summary: RunSummary,
    output_path: Path,
    diffs: list[DiffResult] | None = None,
) -> None:
    """Write a machine-readable JSON report."""
    report = summary.model_dump()
    report["failures"] = [
        {
            "component": o.component_name,
            "theme": o.theme,
            "status": o.status,
            "message": o.message,
        }
        for o in summary.failures()
    ]
    if diffs is not None:
        report["diffs"] = [d.model_dump() for d in diffs]

    _write(report, output_path)


def generate_diff_report(diffs: list[DiffResult], output_path: Path) -> None:
    """Write the results of a standalone baseline comparison."""
    changed = [d for d in diffs if not d.passed]
    report = {
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "total": len(diffs),
        "passed": len(diffs) - len(changed),
        "changed": len(changed),
        "diffs": [d.model_dump() for d in diffs],
    }
    _write(report, output_path)


def _write(report: dict, output_path: Path) -> None:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w") as f:
        json.dump(report, f, indent=2, default=str)
