from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, MutableMapping
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING

import tomlkit

from wcnt.interning import Handle, StringInterner

from .models import LimitLocation, LimitTable, LimitValue, is_infinite, location_sort_key

if TYPE_CHECKING:
    from wcnt.evaluate import Evaluation

logger = logging.getLogger(__name__)


def _lowered(current: LimitValue, observed: int) -> LimitValue:
    if is_infinite(current):
        return current
    return min(current, observed)


def update_limit_table(
    table: LimitTable,
    observed: Mapping[Handle, int],
    wildcard: Handle,
) -> LimitTable:
    """Lower every finite limit to what was observed for it.

    Exact entries take their category's count. The wildcard (or the scalar)
    takes the largest count among the categories it governs. Limits never go
    up and no entry is added or dropped.
    """
    if table.scalar is not None:
        governed = max(observed.values(), default=0)
        scalar = _lowered(table.scalar, governed)
        return table if scalar == table.scalar else LimitTable(scalar=scalar)

    declared = {category for category, _ in table.categories}
    governed_by_wildcard = max(
        (
            count
            for category, count in observed.items()
            if category == wildcard or category not in declared
        ),
        default=0,
    )
    lowered = tuple(
        (
            category,
            _lowered(
                value,
                governed_by_wildcard if category == wildcard else observed.get(category, 0),
            ),
        )
        for category, value in table.categories
    )
    return table if lowered == table.categories else LimitTable(categories=lowered)


def prune_limit_table(table: LimitTable, wildcard: Handle) -> LimitTable:
    """Collapse a per-category table whose entries all equal its wildcard value.

    A missing wildcard counts as 0. Tables holding ``inf`` are left alone.
    """
    if table.scalar is not None or table.has_infinite:
        return table
    fallback = table.declared(wildcard, wildcard)
    fallback_value = 0 if fallback is None else fallback
    if all(value == fallback_value for _, value in table.categories):
        return LimitTable(scalar=fallback_value)
    return table


@dataclass(frozen=True, slots=True)
class LimitFileUpdate:
    location: LimitLocation
    tables: Mapping[Handle, LimitTable]

    def __post_init__(self) -> None:
        if not self.location.writable:
            raise ValueError("limits file update requires a parsed limits file")
        if not self.tables:
            raise ValueError("limits file update must change at least one kind")
        object.__setattr__(self, "tables", MappingProxyType(dict(self.tables)))

    @property
    def path(self) -> Path:
        assert self.location.limits_file is not None
        return self.location.limits_file


def plan_limit_updates(
    evaluation: Evaluation,
    locations: Iterable[LimitLocation],
    interner: StringInterner,
    *,
    kinds: frozenset[Handle],
    prune: bool = False,
) -> tuple[LimitFileUpdate, ...]:
    """Ratchet the limits of every clean (location, kind) down to its counts.

    Kinds outside ``kinds``, kinds whose limits failed to parse or were
    declared per category without a category group, and pairs with a violation
    keep their tables untouched.
    """
    wildcard = interner.wildcard
    violated = evaluation.violated_pairs()
    updates: list[LimitFileUpdate] = []

    for location in sorted(set(locations), key=location_sort_key):
        if not location.writable:
            continue
        changed: dict[Handle, LimitTable] = {}
        for kind, table in location.iter_tables():
            pair = (location, kind)
            if (
                kind not in kinds
                or kind in location.rejected_kinds
                or pair in evaluation.unsupported
                or pair in violated
            ):
                continue
            new_table = update_limit_table(table, evaluation.observed_for(location, kind), wildcard)
            if prune:
                new_table = prune_limit_table(new_table, wildcard)
            if new_table != table:
                changed[kind] = new_table
        if changed:
            updates.append(LimitFileUpdate(location=location, tables=changed))
    return tuple(updates)


def _table_to_toml(table: LimitTable, interner: StringInterner) -> object:
    if table.scalar is not None:
        return table.scalar
    return {interner.lookup(category): value for category, value in table.categories}


def render_limits_document(update: LimitFileUpdate, interner: StringInterner) -> str:
    """Re-emit the limits file with the updated kinds' values swapped in.

    The file is edited through ``tomlkit`` so comments, layout and inline
    tables survive. Per-category tables are changed entry by entry; every
    kind outside ``update.tables`` comes back exactly as it was read.
    """
    assert update.location.source is not None
    document = tomlkit.parse(update.location.source)
    for kind, table in update.tables.items():
        name = interner.lookup(kind)
        current = document.get(name)
        previous = update.location.table_for(kind)
        if table.scalar is not None or not isinstance(current, MutableMapping):
            document[name] = _table_to_toml(table, interner)
            continue
        before = dict(previous.categories) if previous is not None else {}
        for category, value in table.categories:
            if before.get(category) != value:
                current[interner.lookup(category)] = value
    return tomlkit.dumps(document)


def write_limit_file(update: LimitFileUpdate, interner: StringInterner) -> Path:
    rendered = render_limits_document(update, interner)
    update.path.write_text(rendered, encoding="utf-8")
    logger.info("updated `%s`", update.path)
    return update.path
