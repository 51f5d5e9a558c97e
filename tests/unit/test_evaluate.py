from __future__ import annotations

from pathlib import Path

import pytest

from wcnt.aggregate import AggregateCount, AggregateKey, WarningIdentity
from wcnt.evaluate import evaluate_limits
from wcnt.interning import Handle, StringInterner
from wcnt.limits import INFINITE, NO_LIMITS, LimitLocation, LimitTable
from wcnt.rules import RuleSet, parse_rule_document

pytestmark = pytest.mark.unit

_LIMITS_FILE = Path("/work/lib/Limits.toml")


def _rules(interner: StringInterner) -> RuleSet:
    return parse_rule_document(
        {
            "gcc": {
                "regex": r"^(?P<file>[^:]+): (?P<category>\S+)$",
                "files": ["**/gcc.txt"],
            },
            "flake8": {"regex": r"^(?P<file>[^:]+):", "files": ["**/flake8.txt"]},
        },
        interner,
    )


def _location(tables: dict[Handle, LimitTable]) -> LimitLocation:
    return LimitLocation(
        directory=_LIMITS_FILE.parent, limits_file=_LIMITS_FILE, tables=tables, source=""
    )


def _counts(
    interner: StringInterner,
    location: LimitLocation,
    kind: Handle,
    per_category: dict[str, int],
) -> dict[AggregateKey, AggregateCount]:
    counts: dict[AggregateKey, AggregateCount] = {}
    for category_name, amount in per_category.items():
        category = interner.intern(category_name)
        count = AggregateCount()
        for line in range(1, amount + 1):
            count.add(
                WarningIdentity(
                    kind=kind,
                    file=interner.intern("lib/a.c"),
                    line=line,
                    column=None,
                    category=category,
                    description=None,
                )
            )
        counts[AggregateKey(location=location, kind=kind, category=category)] = count
    return counts


def _gcc_table(interner: StringInterner) -> LimitTable:
    return LimitTable(
        categories=(
            (interner.intern("-Wpedantic"), 3),
            (interner.intern("-Wcomment"), INFINITE),
            (interner.wildcard, 0),
        )
    )


def test_counts_within_limits_pass() -> None:
    interner = StringInterner()
    rules = _rules(interner)
    gcc = rules.kinds[0].handle
    location = _location({gcc: _gcc_table(interner)})
    counts = _counts(interner, location, gcc, {"-Wpedantic": 3, "-Wcomment": 100})

    evaluation = evaluate_limits(counts, [location], rules, interner)

    assert evaluation.passed
    assert evaluation.diagnostics == ()
    assert [verdict.display(interner) for verdict in evaluation.verdicts] == [
        "/work/lib/Limits.toml:[gcc/-Wcomment] (100 < inf)",
        "/work/lib/Limits.toml:[gcc/-Wpedantic] (3 <= 3)",
        "/work/lib/Limits.toml:[gcc/_] (0 <= 0)",
    ]


def test_count_above_limit_is_a_violation() -> None:
    interner = StringInterner()
    rules = _rules(interner)
    gcc = rules.kinds[0].handle
    location = _location({gcc: _gcc_table(interner)})
    counts = _counts(interner, location, gcc, {"-Wpedantic": 4})

    evaluation = evaluate_limits(counts, [location], rules, interner)

    assert [verdict.display(interner) for verdict in evaluation.violations] == [
        "/work/lib/Limits.toml:[gcc/-Wpedantic] (4 > 3)"
    ]
    assert len(next(iter(evaluation.violations)).warnings) == 4
    assert evaluation.violated_pairs() == frozenset({(location, gcc)})


def test_undeclared_category_is_held_to_the_wildcard() -> None:
    interner = StringInterner()
    rules = _rules(interner)
    gcc = rules.kinds[0].handle
    location = _location({gcc: _gcc_table(interner)})
    counts = _counts(interner, location, gcc, {"-Wshadow": 1})

    evaluation = evaluate_limits(counts, [location], rules, interner)

    violations = evaluation.violations
    assert len(violations) == 1
    assert interner.lookup(violations[0].category) == "-Wshadow"
    assert violations[0].limit == 0


def test_scalar_limit_governs_every_category() -> None:
    interner = StringInterner()
    rules = _rules(interner)
    gcc = rules.kinds[0].handle
    location = _location({gcc: LimitTable(scalar=2)})
    counts = _counts(interner, location, gcc, {"-Wpedantic": 2, "-Wshadow": 3})

    evaluation = evaluate_limits(counts, [location], rules, interner)

    assert [interner.lookup(verdict.category) for verdict in evaluation.violations] == [
        "-Wshadow"
    ]
    assert evaluation.observed_for(location, gcc) == {
        interner.intern("-Wpedantic"): 2,
        interner.intern("-Wshadow"): 3,
        interner.wildcard: 0,
    }


def test_warnings_without_limits_file_are_held_to_zero() -> None:
    interner = StringInterner()
    rules = _rules(interner)
    flake8 = rules.kinds[1].handle
    counts = _counts(interner, NO_LIMITS, flake8, {"_": 2})

    evaluation = evaluate_limits(counts, [], rules, interner)

    assert [verdict.display(interner) for verdict in evaluation.violations] == [
        "_:[flake8/_] (2 > 0)"
    ]


def test_declared_limits_without_warnings_still_get_verdicts() -> None:
    interner = StringInterner()
    rules = _rules(interner)
    flake8 = rules.kinds[1].handle
    location = _location({flake8: LimitTable(scalar=300)})

    evaluation = evaluate_limits({}, [location], rules, interner)

    assert [verdict.display(interner) for verdict in evaluation.verdicts] == [
        "/work/lib/Limits.toml:[flake8/_] (0 <= 300)"
    ]


def test_category_limits_on_kind_without_category_group_are_unsupported() -> None:
    interner = StringInterner()
    rules = _rules(interner)
    flake8 = rules.kinds[1].handle
    location = _location({flake8: LimitTable(categories=((interner.intern("E501"), 10),))})
    counts = _counts(interner, location, flake8, {"_": 1})

    evaluation = evaluate_limits(counts, [location], rules, interner)

    assert [event.code for event in evaluation.diagnostics] == ["E_LIMITS_CATEGORY_UNSUPPORTED"]
    assert evaluation.unsupported == frozenset({(location, flake8)})
    assert all(verdict.limit == 0 for verdict in evaluation.verdicts)
    assert len(evaluation.violations) == 1


def test_excluded_kinds_produce_no_verdicts() -> None:
    interner = StringInterner()
    rules = _rules(interner)
    gcc = rules.kinds[0].handle
    flake8 = rules.kinds[1].handle
    location = _location({gcc: _gcc_table(interner), flake8: LimitTable(scalar=0)})
    counts = _counts(interner, location, flake8, {"_": 5})

    evaluation = evaluate_limits(counts, [location], rules, interner, kinds=frozenset({gcc}))

    assert {verdict.kind for verdict in evaluation.verdicts} == {gcc}
    assert evaluation.passed
