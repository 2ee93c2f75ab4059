from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from .contracts import ConversionResult
from .data_access import atomic_output

REPORT_VERSION = 1


def build_report_payload(result: ConversionResult) -> dict[str, Any]:
    """The `--report` manifest: the result itself plus a version and tallies for quick checks."""
    payload: dict[str, Any] = result.to_dict()
    payload["report_version"] = REPORT_VERSION
    payload["counts"] = {
        "outputs": len(result.outputs),
        "unit_failures": len(result.unit_failures),
        "errors": len(result.errors),
    }
    return payload


def serialize_conversion_result(result: ConversionResult) -> str:
    return json.dumps(build_report_payload(result), ensure_ascii=False, sort_keys=True, indent=2) + "\n"


def write_conversion_report_json(*, result: ConversionResult, out_report: Path) -> None:
    out_report.parent.mkdir(parents=True, exist_ok=True)
    with atomic_output(out_report) as fh:
        fh.write(serialize_conversion_result(result).encode("utf-8"))
