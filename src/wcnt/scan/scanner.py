from __future__ import annotations

import logging
import os
import queue
import re
import threading
from collections.abc import Iterable, Iterator
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Final, cast

from wcnt.aggregate import RawWarning
from wcnt.diagnostics import DiagnosticEvent, build_diagnostic_event, sort_diagnostics
from wcnt.interning import Handle, StringInterner
from wcnt.rules import Kind, RuleSet

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE: Final[int] = 100
_DONE: Final[object] = object()


def default_max_workers() -> int:
    return min(32, (os.cpu_count() or 1) + 4)


@dataclass(frozen=True, slots=True)
class ScanResult:
    """Everything one kind's regex found in one log file."""

    log_file: Path
    kind: Handle | None
    warnings: tuple[RawWarning, ...] = ()
    diagnostics: tuple[DiagnosticEvent, ...] = ()


class _InvalidPosition(ValueError):
    def __init__(self, group: str, raw: str) -> None:
        super().__init__(f"capture for `{group}` was not a positive number: `{raw}`")
        self.group = group
        self.raw = raw


def _parse_position(match: re.Match[str], group: str) -> int | None:
    raw = match.groupdict().get(group)
    if raw is None:
        return None
    try:
        value = int(raw.strip())
    except ValueError:
        raise _InvalidPosition(group, raw) from None
    if value < 1:
        raise _InvalidPosition(group, raw)
    return value


def normalize_culprit(raw: str) -> str:
    return raw.strip().replace("\\", "/")


def extract_warnings(
    text: str,
    kind: Kind,
    interner: StringInterner,
    *,
    log_file: Path | None = None,
) -> tuple[tuple[RawWarning, ...], tuple[DiagnosticEvent, ...]]:
    """Apply ``kind``'s regex to ``text``.

    Malformed matches are skipped and reported once per kind and problem.
    """
    warnings: list[RawWarning] = []
    problems: dict[str, DiagnosticEvent] = {}

    for match in kind.pattern.finditer(text):
        groups = match.groupdict()
        culprit = groups.get("file")
        if culprit is None or not culprit.strip():
            logger.warning(
                "kind %s matched without capturing `file` in `%s`: %r",
                kind.name,
                log_file,
                match.group(0),
            )
            problems.setdefault(
                "file",
                build_diagnostic_event(
                    code="E_SCAN_FILE_GROUP_MISSING",
                    message=(
                        f"regex for kind `{kind.name}` matched without capturing `file`;"
                        " those matches were ignored"
                    ),
                    kind=kind.name,
                ),
            )
            continue
        try:
            line = _parse_position(match, "line")
            column = _parse_position(match, "column")
        except _InvalidPosition as exc:
            logger.warning("kind %s in `%s`: %s", kind.name, log_file, exc)
            problems.setdefault(
                exc.group,
                build_diagnostic_event(
                    code="E_SCAN_POSITION_INVALID",
                    message=(
                        f"regex for kind `{kind.name}` captured a `{exc.group}` that is not"
                        " a positive number; those matches were ignored"
                    ),
                    kind=kind.name,
                ),
            )
            continue

        category = groups.get("category")
        description = groups.get("description")
        warnings.append(
            RawWarning(
                kind=kind.handle,
                file=interner.intern(normalize_culprit(culprit)),
                category=(interner.intern(category) if category else interner.wildcard),
                line=line,
                column=column,
                description=(
                    interner.intern(description) if description is not None else None
                ),
                log_file=log_file,
            )
        )

    return (tuple(warnings), tuple(sort_diagnostics(problems.values())))


class LogScanner:
    """Search log files for warnings with a fixed pool of worker threads.

    Paths go through a bounded inbox and results through a bounded outbox, so a
    slow consumer blocks the workers instead of letting results pile up.
    """

    def __init__(
        self,
        rules: RuleSet,
        interner: StringInterner,
        *,
        root: Path | None = None,
        kinds: frozenset[Handle] | None = None,
        max_workers: int | None = None,
        queue_size: int = DEFAULT_QUEUE_SIZE,
    ) -> None:
        if max_workers is not None and max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        if queue_size < 1:
            raise ValueError("queue_size must be >= 1")
        self._rules = rules
        self._interner = interner
        self._root = root
        self._kinds = kinds
        self._max_workers = max_workers if max_workers is not None else default_max_workers()
        self._queue_size = queue_size

    @property
    def max_workers(self) -> int:
        return self._max_workers

    def scan_file(self, path: Path) -> list[ScanResult]:
        kinds = self._rules.matching_kinds(path, self._root, include=self._kinds)
        if not kinds:
            return []
        try:
            text = path.read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            logger.warning("could not open log file `%s`: %s", path, exc.strerror or exc)
            event = build_diagnostic_event(
                code="W_SCAN_LOG_UNREADABLE",
                message=f"could not open log file `{path}`: {exc.strerror or exc}",
                path=str(path),
                witness={"errno": exc.errno},
            )
            return [ScanResult(log_file=path, kind=None, diagnostics=(event,))]

        results: list[ScanResult] = []
        for kind in kinds:
            warnings, diagnostics = extract_warnings(text, kind, self._interner, log_file=path)
            logger.debug("`%s` [%s]: %d match(es)", path, kind.name, len(warnings))
            results.append(
                ScanResult(
                    log_file=path,
                    kind=kind.handle,
                    warnings=warnings,
                    diagnostics=diagnostics,
                )
            )
        return results

    def scan(self, paths: Iterable[Path]) -> Iterator[ScanResult]:
        inbox: queue.Queue[Path | None] = queue.Queue(maxsize=self._queue_size)
        outbox: queue.Queue[object] = queue.Queue(maxsize=self._queue_size)
        stop = threading.Event()

        with ThreadPoolExecutor(
            max_workers=self._max_workers + 1, thread_name_prefix="wcnt-scan"
        ) as executor:
            feeder = executor.submit(self._feed, paths, inbox, stop)
            workers = [
                executor.submit(self._work, inbox, outbox, stop) for _ in range(self._max_workers)
            ]
            remaining = len(workers)
            try:
                while remaining:
                    item = outbox.get()
                    if item is _DONE:
                        remaining -= 1
                        continue
                    yield cast(ScanResult, item)
            finally:
                # workers must never stay blocked on a full outbox
                stop.set()
                while remaining:
                    if outbox.get() is _DONE:
                        remaining -= 1
            feeder.result()
            for worker in workers:
                worker.result()

    def _feed(
        self,
        paths: Iterable[Path],
        inbox: queue.Queue[Path | None],
        stop: threading.Event,
    ) -> None:
        try:
            for path in paths:
                if stop.is_set():
                    break
                inbox.put(path)
        finally:
            for _ in range(self._max_workers):
                inbox.put(None)

    def _work(
        self,
        inbox: queue.Queue[Path | None],
        outbox: queue.Queue[object],
        stop: threading.Event,
    ) -> None:
        failure: Exception | None = None
        try:
            while (path := inbox.get()) is not None:
                if stop.is_set():
                    continue
                try:
                    for result in self.scan_file(path):
                        outbox.put(result)
                except Exception as exc:
                    failure = exc
                    stop.set()
        finally:
            outbox.put(_DONE)
        if failure is not None:
            raise failure
