from __future__ import annotations

from pathlib import Path

import pytest

from wcnt.interning import StringInterner
from wcnt.rules import RuleSet, parse_rule_document
from wcnt.scan import (
    LogScanner,
    ScanResult,
    default_max_workers,
    discover_files,
    extract_warnings,
    iter_files,
    normalize_culprit,
)

pytestmark = pytest.mark.unit

_GCC_REGEX = (
    r"^(?P<file>[^:\n]+):(?P<line>[^:\n]+):(?P<column>\d+): warning: "
    r"(?P<description>.+?)(?: \[(?P<category>[^\]]*)\])?$"
)
_FLAKE8_REGEX = r"^(?P<file>[^:\n]+):(?P<line>\d+):(?P<column>\d+): (?P<description>.+)$"

_GCC_LOG = """\
src/a.c:10:3: warning: ISO C forbids an empty translation unit [-Wpedantic]
src/a.c:12:1: warning: multi-line comment [-Wcomment]
some unrelated line
src\\b.c:4:2: warning: no category here
src/c.c:x:2: warning: bad line [-Wpedantic]
"""


def _rules(interner: StringInterner) -> RuleSet:
    return parse_rule_document(
        {
            "gcc": {"regex": _GCC_REGEX, "files": ["**/gcc.txt"]},
            "flake8": {"regex": _FLAKE8_REGEX, "files": ["**/flake8.txt"]},
        },
        interner,
    )


def _write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def test_normalize_culprit_trims_and_uses_forward_slashes() -> None:
    assert normalize_culprit("  src\\sub\\file.c ") == "src/sub/file.c"


def test_extract_warnings_reads_named_groups() -> None:
    interner = StringInterner()
    rules = _rules(interner)
    gcc = rules.get("gcc")
    assert gcc is not None

    warnings, diagnostics = extract_warnings(_GCC_LOG, gcc, interner)

    assert [interner.lookup(warning.file) for warning in warnings] == [
        "src/a.c",
        "src/a.c",
        "src/b.c",
    ]
    assert [interner.lookup(warning.category) for warning in warnings] == [
        "-Wpedantic",
        "-Wcomment",
        "_",
    ]
    first = warnings[0]
    assert (first.line, first.column) == (10, 3)
    assert interner.lookup_optional(first.description) == "ISO C forbids an empty translation unit"
    assert [event.code for event in diagnostics] == ["E_SCAN_POSITION_INVALID"]
    assert diagnostics[0].kind == "gcc"


def test_extract_warnings_reports_malformed_matches_once() -> None:
    interner = StringInterner()
    gcc = _rules(interner).get("gcc")
    assert gcc is not None
    text = "src/c.c:x:2: warning: bad [-Wa]\nsrc/d.c:y:2: warning: bad [-Wb]\n"

    warnings, diagnostics = extract_warnings(text, gcc, interner)

    assert warnings == ()
    assert len(diagnostics) == 1


def test_empty_category_capture_counts_as_wildcard() -> None:
    interner = StringInterner()
    gcc = _rules(interner).get("gcc")
    assert gcc is not None

    warnings, _ = extract_warnings("src/a.c:1:1: warning: odd []\n", gcc, interner)

    assert [warning.category for warning in warnings] == [interner.wildcard]


def test_empty_description_capture_is_kept_apart_from_a_missing_one() -> None:
    interner = StringInterner()
    rules = parse_rule_document(
        {
            "lint": {
                "regex": r"^(?P<file>[^:\n]+):(?: (?P<description>.*))?$",
                "files": ["**/lint.txt"],
            }
        },
        interner,
    )
    lint = rules.get("lint")
    assert lint is not None

    warnings, diagnostics = extract_warnings("a.c: \na.c:\n", lint, interner)

    assert diagnostics == ()
    assert [interner.lookup_optional(warning.description) for warning in warnings] == ["", None]
    assert len({warning.identity for warning in warnings}) == 2


def test_iter_files_is_sorted_and_skips_hidden_directories(tmp_path: Path) -> None:
    _write(tmp_path / "b" / "gcc.txt", "")
    _write(tmp_path / "a" / "flake8.txt", "")
    _write(tmp_path / ".git" / "gcc.txt", "")
    _write(tmp_path / "Limits.toml", "")

    found = [path.relative_to(tmp_path).as_posix() for path in iter_files(tmp_path)]

    assert found == ["Limits.toml", "a/flake8.txt", "b/gcc.txt"]
    discovered = discover_files(tmp_path)
    assert discovered.limits_files == (tmp_path / "Limits.toml",)
    assert len(discovered.candidates) == 2


def test_iter_files_skips_hidden_files(tmp_path: Path) -> None:
    _write(tmp_path / ".gcc.txt", "")
    _write(tmp_path / "a" / ".flake8.txt", "")
    _write(tmp_path / "a" / "flake8.txt", "")

    found = [path.relative_to(tmp_path).as_posix() for path in iter_files(tmp_path)]

    assert found == ["a/flake8.txt"]


def test_iter_files_honours_gitignore_files_in_a_work_tree(tmp_path: Path) -> None:
    (tmp_path / ".git").mkdir()
    _write(tmp_path / ".gitignore", "build/\n*.log\n!keep.log\n")
    _write(tmp_path / "build" / "gcc.txt", "")
    _write(tmp_path / "a" / ".gitignore", "gcc.txt\n")
    _write(tmp_path / "a" / "gcc.txt", "")
    _write(tmp_path / "a" / "x.log", "")
    _write(tmp_path / "a" / "keep.log", "")
    _write(tmp_path / "b" / "gcc.txt", "")

    found = [path.relative_to(tmp_path).as_posix() for path in iter_files(tmp_path)]

    assert found == ["a/keep.log", "b/gcc.txt"]


def test_iter_files_honours_ignore_files(tmp_path: Path) -> None:
    _write(tmp_path / ".ignore", "generated/\n")
    _write(tmp_path / "generated" / "gcc.txt", "")
    _write(tmp_path / "src" / "generated" / "flake8.txt", "")
    _write(tmp_path / "src" / "gcc.txt", "")

    found = [path.relative_to(tmp_path).as_posix() for path in iter_files(tmp_path)]

    assert found == ["src/gcc.txt"]


def test_discover_reports_directories_it_cannot_list(tmp_path: Path) -> None:
    missing = tmp_path / "missing"

    discovered = discover_files(missing)

    assert discovered.candidates == ()
    assert discovered.limits_files == ()
    assert [event.code for event in discovered.diagnostics] == ["W_DISCOVER_DIR_UNREADABLE"]
    assert discovered.diagnostics[0].path == str(missing)
    assert discovered.diagnostics[0].stage == "discover"


def test_scan_file_runs_every_matching_kind(tmp_path: Path) -> None:
    interner = StringInterner()
    rules = _rules(interner)
    log = _write(tmp_path / "build" / "gcc.txt", _GCC_LOG)
    scanner = LogScanner(rules, interner, root=tmp_path, max_workers=1)

    results = scanner.scan_file(log)

    assert [result.kind for result in results] == [rules.kinds[0].handle]
    assert len(results[0].warnings) == 3
    assert scanner.scan_file(tmp_path / "README.md") == []


def test_scan_file_reports_unreadable_log(tmp_path: Path) -> None:
    interner = StringInterner()
    scanner = LogScanner(_rules(interner), interner, root=tmp_path, max_workers=1)

    results = scanner.scan_file(tmp_path / "missing" / "gcc.txt")

    assert len(results) == 1
    assert results[0].kind is None
    assert [event.code for event in results[0].diagnostics] == ["W_SCAN_LOG_UNREADABLE"]


def test_scan_restricted_kinds_skip_other_logs(tmp_path: Path) -> None:
    interner = StringInterner()
    rules = _rules(interner)
    flake8 = rules.get("flake8")
    assert flake8 is not None
    gcc_log = _write(tmp_path / "gcc.txt", _GCC_LOG)
    scanner = LogScanner(
        rules, interner, root=tmp_path, kinds=frozenset({flake8.handle}), max_workers=1
    )

    assert scanner.scan_file(gcc_log) == []


@pytest.mark.parametrize(("max_workers", "queue_size"), [(1, 1), (4, 2), (8, 100)])
def test_parallel_scan_yields_every_result(
    tmp_path: Path, max_workers: int, queue_size: int
) -> None:
    interner = StringInterner()
    rules = _rules(interner)
    paths = [
        _write(tmp_path / f"pkg{index}" / "flake8.txt", f"mod{index}.py:1:1: E501 line too long\n")
        for index in range(40)
    ]
    scanner = LogScanner(
        rules, interner, root=tmp_path, max_workers=max_workers, queue_size=queue_size
    )

    results: list[ScanResult] = list(scanner.scan(paths))

    assert sorted(result.log_file for result in results) == sorted(paths)
    culprits = {
        interner.lookup(warning.file) for result in results for warning in result.warnings
    }
    assert culprits == {f"mod{index}.py" for index in range(40)}


def test_closing_the_scan_early_stops_cleanly(tmp_path: Path) -> None:
    interner = StringInterner()
    paths = [
        _write(tmp_path / f"pkg{index}" / "flake8.txt", "mod.py:1:1: W291\n") for index in range(30)
    ]
    scanner = LogScanner(_rules(interner), interner, root=tmp_path, max_workers=2, queue_size=1)

    iterator = scanner.scan(paths)
    first = next(iterator)
    iterator.close()

    assert first.log_file in paths


def test_worker_failures_propagate(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    interner = StringInterner()
    scanner = LogScanner(_rules(interner), interner, root=tmp_path, max_workers=2)

    def broken(path: Path) -> list[ScanResult]:
        raise RuntimeError(f"boom {path.name}")

    monkeypatch.setattr(scanner, "scan_file", broken)

    with pytest.raises(RuntimeError, match="boom"):
        list(scanner.scan([tmp_path / "flake8.txt"]))


def test_scanner_validates_pool_settings() -> None:
    interner = StringInterner()
    rules = _rules(interner)

    assert default_max_workers() >= 1
    with pytest.raises(ValueError):
        LogScanner(rules, interner, max_workers=0)
    with pytest.raises(ValueError):
        LogScanner(rules, interner, queue_size=0)
