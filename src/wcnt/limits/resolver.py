from __future__ import annotations

import logging
import os
import stat
import threading
from concurrent.futures import Future
from pathlib import Path

from wcnt.diagnostics import DiagnosticEvent, build_diagnostic_event, sort_diagnostics
from wcnt.interning import StringInterner
from wcnt.rules import RuleSet

from . import parse
from .models import LIMITS_FILENAME, NO_LIMITS, LimitLocation, location_sort_key

logger = logging.getLogger(__name__)


def canonical_path(path: Path) -> Path:
    try:
        return path.resolve()
    except (OSError, RuntimeError):
        return Path(os.path.abspath(path))


class LimitTreeResolver:
    """Find the limits file governing a path: the nearest one in its ancestors.

    Each directory below ``root`` is looked at once. Results are cached per
    directory and computed single-flight, so a limits file is parsed at most
    once even when several threads ask for paths below it at the same time.
    """

    def __init__(
        self,
        root: Path,
        rules: RuleSet,
        interner: StringInterner,
        *,
        limits_filename: str = LIMITS_FILENAME,
    ) -> None:
        self._root = canonical_path(root)
        self._rules = rules
        self._interner = interner
        self._limits_filename = limits_filename
        self._lock = threading.Lock()
        self._by_directory: dict[Path, Future[LimitLocation]] = {}
        self._diagnostics: list[DiagnosticEvent] = []

    @property
    def root(self) -> Path:
        return self._root

    @property
    def limits_filename(self) -> str:
        return self._limits_filename

    def resolve(self, path: Path | str) -> LimitLocation:
        """Location governing the file at ``path``; relative paths start at the root."""
        candidate = Path(path)
        if not candidate.is_absolute():
            candidate = self._root / candidate
        return self._resolve_from(canonical_path(candidate.parent))

    def resolve_directory(self, directory: Path | str) -> LimitLocation:
        candidate = Path(directory)
        if not candidate.is_absolute():
            candidate = self._root / candidate
        return self._resolve_from(canonical_path(candidate))

    def locations(self) -> tuple[LimitLocation, ...]:
        with self._lock:
            futures = list(self._by_directory.values())
        found = {
            future.result()
            for future in futures
            if future.done() and future.exception() is None
        }
        found.discard(NO_LIMITS)
        return tuple(sorted(found, key=location_sort_key))

    def diagnostics(self) -> tuple[DiagnosticEvent, ...]:
        with self._lock:
            return tuple(sort_diagnostics(self._diagnostics))

    def _resolve_from(self, directory: Path) -> LimitLocation:
        if not directory.is_relative_to(self._root):
            return NO_LIMITS
        with self._lock:
            future = self._by_directory.get(directory)
            owner = future is None
            if future is None:
                future = Future()
                self._by_directory[directory] = future
        if not owner:
            return future.result()

        try:
            location = self._compute(directory)
        except BaseException as exc:
            future.set_exception(exc)
            raise
        future.set_result(location)
        return location

    def _compute(self, directory: Path) -> LimitLocation:
        limits_file = directory / self._limits_filename
        if self._stat_limits_file(limits_file):
            location, diagnostics = parse.load_limit_location(
                limits_file, self._rules, self._interner
            )
            self._record(diagnostics)
            return location
        if directory == self._root or directory.parent == directory:
            return NO_LIMITS
        return self._resolve_from(directory.parent)

    def _stat_limits_file(self, limits_file: Path) -> bool:
        try:
            return stat.S_ISREG(os.stat(limits_file).st_mode)
        except (FileNotFoundError, NotADirectoryError):
            return False
        except OSError as exc:
            logger.warning("could not stat `%s`: %s", limits_file, exc)
            self._record(
                (
                    build_diagnostic_event(
                        code="W_RESOLVE_STAT_FAILED",
                        message=f"could not stat `{limits_file}`: {exc.strerror or exc}",
                        path=str(limits_file),
                        witness={"errno": exc.errno},
                    ),
                )
            )
            return False

    def _record(self, diagnostics: tuple[DiagnosticEvent, ...]) -> None:
        if not diagnostics:
            return
        with self._lock:
            self._diagnostics.extend(diagnostics)
