from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType

from .models import RunStage, Severity


@dataclass(frozen=True, slots=True)
class DiagnosticCatalogEntry:
    code: str
    severity: Severity
    stage: RunStage
    suggested_action: str

    def __post_init__(self) -> None:
        if not self.code:
            raise ValueError("diagnostic catalog code must be non-empty")
        if not self.suggested_action:
            raise ValueError(
                f"diagnostic catalog entry '{self.code}' suggested_action must be non-empty"
            )


def _entry(
    code: str,
    severity: Severity,
    stage: RunStage,
    suggested_action: str,
) -> DiagnosticCatalogEntry:
    return DiagnosticCatalogEntry(
        code=code,
        severity=severity,
        stage=stage,
        suggested_action=suggested_action,
    )


def _build_catalog(
    entries: tuple[DiagnosticCatalogEntry, ...],
) -> Mapping[str, DiagnosticCatalogEntry]:
    catalog: dict[str, DiagnosticCatalogEntry] = {}
    for entry in entries:
        if entry.code in catalog:
            raise ValueError(f"duplicate diagnostic catalog code: {entry.code}")
        catalog[entry.code] = entry
    return MappingProxyType(catalog)


_CATALOG_ENTRIES: tuple[DiagnosticCatalogEntry, ...] = (
    _entry(
        "E_LIMITS_FILE_INVALID",
        Severity.ERROR,
        RunStage.RESOLVE,
        "fix the TOML syntax of the limits file; its limits are treated as 0 until then",
    ),
    _entry(
        "E_LIMITS_KIND_UNKNOWN",
        Severity.ERROR,
        RunStage.RESOLVE,
        "declare the kind in the settings file or remove it from the limits file",
    ),
    _entry(
        "E_LIMITS_VALUE_INVALID",
        Severity.ERROR,
        RunStage.RESOLVE,
        "use a non-negative integer or inf as limit value",
    ),
    _entry(
        "E_LIMITS_CATEGORY_UNSUPPORTED",
        Severity.ERROR,
        RunStage.EVALUATE,
        "add a (?P<category>...) group to the kind's regex or declare a single limit",
    ),
    _entry(
        "W_DISCOVER_DIR_UNREADABLE",
        Severity.WARNING,
        RunStage.DISCOVER,
        "check permissions of the directory; files below it were not scanned",
    ),
    _entry(
        "E_SCAN_FILE_GROUP_MISSING",
        Severity.ERROR,
        RunStage.SCAN,
        "make the (?P<file>...) group of the kind's regex match on every warning",
    ),
    _entry(
        "E_SCAN_POSITION_INVALID",
        Severity.ERROR,
        RunStage.SCAN,
        "make the line/column groups of the kind's regex capture positive integers only",
    ),
    _entry(
        "W_SCAN_LOG_UNREADABLE",
        Severity.WARNING,
        RunStage.SCAN,
        "check permissions of the log file or exclude it from the kind's globs",
    ),
    _entry(
        "W_RESOLVE_STAT_FAILED",
        Severity.WARNING,
        RunStage.RESOLVE,
        "check permissions of the directory; the limits lookup continued upwards",
    ),
    _entry(
        "E_LIMITS_REWRITE_FAILED",
        Severity.ERROR,
        RunStage.REWRITE,
        "check permissions of the limits file and rerun with --update-limits",
    ),
    _entry(
        "E_CLI_CONFIG_INVALID",
        Severity.ERROR,
        RunStage.CONFIGURE,
        "fix the settings file or command line options and retry",
    ),
    _entry(
        "E_CLI_INTERNAL",
        Severity.ERROR,
        RunStage.CONFIGURE,
        "rerun with -vv and report the failure",
    ),
)


CANONICAL_DIAGNOSTIC_CATALOG: Mapping[str, DiagnosticCatalogEntry] = _build_catalog(
    _CATALOG_ENTRIES
)

REQUIRED_CATALOG_FIELDS: tuple[str, ...] = ("code", "severity", "stage", "suggested_action")
