from .builders import build_diagnostic_event, has_error_diagnostics
from .catalog import CANONICAL_DIAGNOSTIC_CATALOG, REQUIRED_CATALOG_FIELDS
from .models import DiagnosticEvent, RunStage, Severity
from .sort import (
    canonical_witness_json,
    diagnostic_sort_key,
    sort_diagnostics,
    unique_diagnostics,
)

__all__ = [
    "CANONICAL_DIAGNOSTIC_CATALOG",
    "DiagnosticEvent",
    "REQUIRED_CATALOG_FIELDS",
    "RunStage",
    "Severity",
    "build_diagnostic_event",
    "canonical_witness_json",
    "diagnostic_sort_key",
    "has_error_diagnostics",
    "sort_diagnostics",
    "unique_diagnostics",
]
