from __future__ import annotations

import logging
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType

from wcnt.diagnostics import DiagnosticEvent, build_diagnostic_event, sort_diagnostics
from wcnt.interning import Handle, StringInterner
from wcnt.rules import RuleSet

from .models import EMPTY_TABLE, LimitLocation, LimitTable, LimitValue, validate_limit_value

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ParsedLimits:
    tables: Mapping[Handle, LimitTable]
    rejected_kinds: frozenset[Handle]
    diagnostics: tuple[DiagnosticEvent, ...]


def _invalid_value_event(
    *, source: str, kind: str, category: str | None, raw_value: object
) -> DiagnosticEvent:
    where = kind if category is None else f"{kind}.{category}"
    return build_diagnostic_event(
        code="E_LIMITS_VALUE_INVALID",
        message=(
            f"limit `{where}` = {raw_value!r} is not a non-negative integer or `inf`;"
            " treating the kind's limits as 0"
        ),
        path=source,
        kind=kind,
        category=category,
        witness={"value": repr(raw_value)},
    )


def _parse_category_table(
    raw_table: Mapping[str, object],
    interner: StringInterner,
) -> tuple[tuple[tuple[Handle, LimitValue], ...], tuple[str, object] | None]:
    items: list[tuple[Handle, LimitValue]] = []
    for category, raw_value in raw_table.items():
        try:
            value = validate_limit_value(raw_value)
        except ValueError:
            return ((), (category, raw_value))
        items.append((interner.intern(category), value))
    return (tuple(items), None)


def parse_limits_document(
    document: Mapping[str, object],
    rules: RuleSet,
    interner: StringInterner,
    *,
    source: str = "<limits>",
) -> ParsedLimits:
    tables: dict[Handle, LimitTable] = {}
    rejected: set[Handle] = set()
    diagnostics: list[DiagnosticEvent] = []

    for kind_name, raw_entry in document.items():
        kind = rules.get(kind_name)
        if kind is None:
            diagnostics.append(
                build_diagnostic_event(
                    code="E_LIMITS_KIND_UNKNOWN",
                    message=(
                        f"referred to kind `{kind_name}` which has not been configured"
                        " in the settings"
                    ),
                    path=source,
                    kind=kind_name,
                )
            )
            continue

        if isinstance(raw_entry, Mapping):
            items, invalid = _parse_category_table(raw_entry, interner)
            if invalid is not None:
                category, raw_value = invalid
                diagnostics.append(
                    _invalid_value_event(
                        source=source, kind=kind_name, category=category, raw_value=raw_value
                    )
                )
                tables[kind.handle] = EMPTY_TABLE
                rejected.add(kind.handle)
                continue
            tables[kind.handle] = LimitTable(categories=items)
            continue

        try:
            value = validate_limit_value(raw_entry)
        except ValueError:
            diagnostics.append(
                _invalid_value_event(
                    source=source, kind=kind_name, category=None, raw_value=raw_entry
                )
            )
            tables[kind.handle] = EMPTY_TABLE
            rejected.add(kind.handle)
            continue
        tables[kind.handle] = LimitTable(scalar=value)

    return ParsedLimits(
        tables=MappingProxyType(tables),
        rejected_kinds=frozenset(rejected),
        diagnostics=tuple(sort_diagnostics(diagnostics)),
    )


def load_limit_location(
    limits_file: Path,
    rules: RuleSet,
    interner: StringInterner,
) -> tuple[LimitLocation, tuple[DiagnosticEvent, ...]]:
    """Parse ``limits_file`` into the location of its directory.

    An unreadable or undecodable file still yields a location, one without
    tables and without its source text, so it counts as 0 everywhere and is
    never rewritten.
    """
    source = str(limits_file)
    try:
        text = limits_file.read_text(encoding="utf-8")
        document = tomllib.loads(text)
    except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError) as exc:
        event = build_diagnostic_event(
            code="E_LIMITS_FILE_INVALID",
            message=f"could not parse `{source}`: {exc}; treating its limits as 0",
            path=source,
            witness={"error_type": type(exc).__name__},
        )
        return (
            LimitLocation(directory=limits_file.parent, limits_file=limits_file),
            (event,),
        )

    parsed = parse_limits_document(document, rules, interner, source=source)
    logger.debug("found limits file at `%s` (%d kind(s))", source, len(parsed.tables))
    location = LimitLocation(
        directory=limits_file.parent,
        limits_file=limits_file,
        tables=parsed.tables,
        rejected_kinds=parsed.rejected_kinds,
        source=text,
    )
    return (location, parsed.diagnostics)
