from __future__ import annotations

import logging
import os
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Final

import pathspec

from wcnt.diagnostics import DiagnosticEvent, build_diagnostic_event, unique_diagnostics
from wcnt.limits import LIMITS_FILENAME

logger = logging.getLogger(__name__)

GITIGNORE_FILENAME: Final[str] = ".gitignore"
IGNORE_FILENAME: Final[str] = ".ignore"


@dataclass(frozen=True, slots=True)
class DiscoveredFiles:
    candidates: tuple[Path, ...]
    limits_files: tuple[Path, ...]
    diagnostics: tuple[DiagnosticEvent, ...] = ()


@dataclass(frozen=True, slots=True)
class IgnoreLevel:
    """Ignore patterns read from one directory, matched relative to it."""

    directory: Path
    spec: pathspec.PathSpec

    def matches(self, path: Path, *, is_dir: bool) -> bool:
        relative = path.relative_to(self.directory).as_posix()
        return self.spec.match_file(f"{relative}/" if is_dir else relative)


def _log_walk_error(exc: OSError) -> None:
    logger.warning("could not list `%s`: %s", exc.filename, exc.strerror or exc)


def _is_hidden(name: str) -> bool:
    return name.startswith(".")


def inside_git_work_tree(directory: Path) -> bool:
    return any((candidate / ".git").exists() for candidate in (directory, *directory.parents))


def load_ignore_level(
    directory: Path, filenames: Sequence[str], *, use_gitignore: bool
) -> IgnoreLevel | None:
    names = (GITIGNORE_FILENAME, IGNORE_FILENAME) if use_gitignore else (IGNORE_FILENAME,)
    lines: list[str] = []
    for name in names:
        if name not in filenames:
            continue
        ignore_file = directory / name
        try:
            lines.extend(ignore_file.read_text(encoding="utf-8").splitlines())
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("could not read `%s`: %s", ignore_file, exc)
    if not lines:
        return None
    return IgnoreLevel(directory=directory, spec=pathspec.GitIgnoreSpec.from_lines(lines))


def _ignored(path: Path, levels: Sequence[IgnoreLevel], *, is_dir: bool) -> bool:
    return any(level.matches(path, is_dir=is_dir) for level in reversed(levels))


def iter_files(
    start_dir: Path,
    *,
    on_error: Callable[[OSError], None] | None = None,
) -> Iterator[Path]:
    """Yield regular files below ``start_dir`` in a stable order.

    Hidden files and directories are skipped. Paths matched by an ``.ignore``
    file, or by a ``.gitignore`` file when ``start_dir`` lies in a git work
    tree, are skipped as well; patterns apply to the directory holding the
    ignore file and everything below it.
    """
    use_gitignore = inside_git_work_tree(start_dir)
    inherited: dict[Path, tuple[IgnoreLevel, ...]] = {}
    walk = os.walk(start_dir, onerror=on_error if on_error is not None else _log_walk_error)
    for directory, subdirectories, filenames in walk:
        base = Path(directory)
        levels = inherited.pop(base, ())
        level = load_ignore_level(base, filenames, use_gitignore=use_gitignore)
        if level is not None:
            levels = (*levels, level)

        kept: list[str] = []
        for name in sorted(subdirectories):
            if _is_hidden(name) or _ignored(base / name, levels, is_dir=True):
                continue
            kept.append(name)
            inherited[base / name] = levels
        subdirectories[:] = kept

        for filename in sorted(filenames):
            if _is_hidden(filename):
                continue
            path = base / filename
            if _ignored(path, levels, is_dir=False):
                continue
            if path.is_file():
                yield path


def discover_files(start_dir: Path, *, limits_filename: str = LIMITS_FILENAME) -> DiscoveredFiles:
    candidates: list[Path] = []
    limits_files: list[Path] = []
    diagnostics: list[DiagnosticEvent] = []

    def record_walk_error(exc: OSError) -> None:
        _log_walk_error(exc)
        location = str(exc.filename) if exc.filename else str(start_dir)
        diagnostics.append(
            build_diagnostic_event(
                code="W_DISCOVER_DIR_UNREADABLE",
                message=f"could not list `{location}`: {exc.strerror or exc}",
                path=location,
                witness={"error_type": type(exc).__name__},
            )
        )

    for path in iter_files(start_dir, on_error=record_walk_error):
        if path.name == limits_filename:
            limits_files.append(path)
        else:
            candidates.append(path)
    logger.debug(
        "discovered %d candidate file(s) and %d limits file(s) below `%s`",
        len(candidates),
        len(limits_files),
        start_dir,
    )
    return DiscoveredFiles(
        candidates=tuple(candidates),
        limits_files=tuple(limits_files),
        diagnostics=tuple(unique_diagnostics(diagnostics)),
    )
