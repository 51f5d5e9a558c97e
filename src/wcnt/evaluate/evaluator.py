from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from wcnt.aggregate import AggregateCount, AggregateKey
from wcnt.diagnostics import DiagnosticEvent, build_diagnostic_event, sort_diagnostics
from wcnt.interning import Handle, StringInterner
from wcnt.limits import EMPTY_TABLE, LimitLocation, LimitTable
from wcnt.rules import RuleSet

from .verdicts import Verdict, verdict_sort_key

logger = logging.getLogger(__name__)

type LimitPair = tuple[LimitLocation, Handle]


@dataclass(frozen=True, slots=True)
class Evaluation:
    verdicts: tuple[Verdict, ...]
    diagnostics: tuple[DiagnosticEvent, ...] = ()
    unsupported: frozenset[LimitPair] = frozenset()

    @property
    def violations(self) -> tuple[Verdict, ...]:
        return tuple(verdict for verdict in self.verdicts if verdict.violated)

    @property
    def non_violations(self) -> tuple[Verdict, ...]:
        return tuple(verdict for verdict in self.verdicts if not verdict.violated)

    @property
    def passed(self) -> bool:
        return not any(verdict.violated for verdict in self.verdicts)

    def violated_pairs(self) -> frozenset[LimitPair]:
        return frozenset(
            (verdict.location, verdict.kind) for verdict in self.verdicts if verdict.violated
        )

    def verdicts_for(self, location: LimitLocation, kind: Handle) -> tuple[Verdict, ...]:
        return tuple(
            verdict
            for verdict in self.verdicts
            if verdict.location == location and verdict.kind == kind
        )

    def observed_for(self, location: LimitLocation, kind: Handle) -> dict[Handle, int]:
        return {verdict.category: verdict.observed for verdict in self.verdicts_for(location, kind)}


def _is_unsupported(table: LimitTable | None, categorizable: bool) -> bool:
    return table is not None and not table.is_scalar and bool(table.categories) and not categorizable


def _unsupported_event(location: LimitLocation, kind_name: str) -> DiagnosticEvent:
    return build_diagnostic_event(
        code="E_LIMITS_CATEGORY_UNSUPPORTED",
        message=(
            f"limits for kind `{kind_name}` are declared per category, but its regex has no"
            " `category` group; treating its limits as 0"
        ),
        path=str(location.limits_file) if location.limits_file is not None else None,
        kind=kind_name,
    )


def evaluate_limits(
    counts: Mapping[AggregateKey, AggregateCount],
    locations: Iterable[LimitLocation],
    rules: RuleSet,
    interner: StringInterner,
    *,
    kinds: frozenset[Handle] | None = None,
) -> Evaluation:
    """Compare counted warnings against the limits governing them.

    Every (location, kind) with a declared table or a counted warning yields one
    verdict per observed category and one per declared category. Lookup goes
    exact category, then ``_``, then 0.
    """
    included = rules.handles if kinds is None else kinds
    wildcard = interner.wildcard
    observed: dict[LimitPair, dict[Handle, AggregateCount]] = {}

    for location in locations:
        for kind, _table in location.iter_tables():
            if kind in included:
                observed.setdefault((location, kind), {})
    for key, count in counts.items():
        if key.kind in included:
            observed.setdefault((key.location, key.kind), {})[key.category] = count

    verdicts: list[Verdict] = []
    diagnostics: list[DiagnosticEvent] = []
    unsupported: set[LimitPair] = set()

    for (location, kind), per_category in observed.items():
        kind_info = rules.by_handle(kind)
        declared = location.table_for(kind)
        effective = declared if declared is not None else EMPTY_TABLE
        if _is_unsupported(declared, kind_info.categorizable):
            diagnostics.append(_unsupported_event(location, kind_info.name))
            unsupported.add((location, kind))
            effective = EMPTY_TABLE

        categories = dict.fromkeys(per_category)
        if declared is not None:
            categories.update(dict.fromkeys(category for category, _ in declared.entries(wildcard)))

        for category in categories:
            count = per_category.get(category)
            verdicts.append(
                Verdict(
                    location=location,
                    kind=kind,
                    category=category,
                    observed=0 if count is None else count.count,
                    limit=effective.limit_for(category, wildcard),
                    warnings=frozenset() if count is None else count.identities,
                )
            )

    ordered = tuple(sorted(verdicts, key=lambda verdict: verdict_sort_key(verdict, interner)))
    evaluation = Evaluation(
        verdicts=ordered,
        diagnostics=tuple(sort_diagnostics(diagnostics)),
        unsupported=frozenset(unsupported),
    )
    logger.debug(
        "evaluated %d verdict(s), %d violation(s)",
        len(evaluation.verdicts),
        len(evaluation.violations),
    )
    return evaluation
