from __future__ import annotations

import json
from collections.abc import Iterable

from .models import DiagnosticEvent, RunStage, Severity

_SEVERITY_RANK: dict[Severity, int] = {
    Severity.ERROR: 0,
    Severity.WARNING: 1,
}

_STAGE_RANK: dict[RunStage, int] = {
    RunStage.CONFIGURE: 0,
    RunStage.DISCOVER: 1,
    RunStage.SCAN: 2,
    RunStage.RESOLVE: 3,
    RunStage.EVALUATE: 4,
    RunStage.REWRITE: 5,
}


def canonical_witness_json(witness: object | None) -> str:
    if witness is None:
        return ""
    return json.dumps(witness, sort_keys=True, separators=(",", ":"), ensure_ascii=True)


def _optional_text_sort_key(value: str | None) -> tuple[int, str]:
    if value is None:
        return (1, "")
    return (0, value)


def _line_sort_key(line: int | None) -> tuple[int, int]:
    if line is None:
        return (1, 0)
    return (0, line)


def diagnostic_sort_key(
    event: DiagnosticEvent,
) -> tuple[
    int, int, str, tuple[int, str], tuple[int, str], tuple[int, str], tuple[int, int], str, str
]:
    return (
        _SEVERITY_RANK[event.severity],
        _STAGE_RANK[event.stage],
        event.code,
        _optional_text_sort_key(event.path),
        _optional_text_sort_key(event.kind),
        _optional_text_sort_key(event.category),
        _line_sort_key(event.line),
        event.message,
        canonical_witness_json(event.witness),
    )


def sort_diagnostics(events: Iterable[DiagnosticEvent]) -> list[DiagnosticEvent]:
    return sorted(events, key=diagnostic_sort_key)


def unique_diagnostics(events: Iterable[DiagnosticEvent]) -> list[DiagnosticEvent]:
    """Sort ``events`` canonically and drop exact repeats."""
    unique: list[DiagnosticEvent] = []
    previous_key: object = None
    for event in sort_diagnostics(events):
        key = diagnostic_sort_key(event)
        if key == previous_key:
            continue
        unique.append(event)
        previous_key = key
    return unique
