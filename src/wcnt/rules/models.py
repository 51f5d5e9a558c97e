from __future__ import annotations

import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from fnmatch import fnmatchcase
from pathlib import Path, PurePath

from wcnt.interning import Handle

from .errors import RuleErrorCode, build_rule_error

REQUIRED_GROUP = "file"
OPTIONAL_GROUPS: tuple[str, ...] = ("line", "column", "category", "description")


def _path_candidates(path: PurePath, root: PurePath | None) -> tuple[str, ...]:
    candidates = [path.as_posix()]
    if root is not None:
        try:
            candidates.append(path.relative_to(root).as_posix())
        except ValueError:
            pass
    return tuple(candidates)


def glob_matches(pattern: str, path: PurePath, root: PurePath | None = None) -> bool:
    """Match ``path`` against a ``files`` glob of the settings file.

    ``*`` crosses directory separators, so ``**/gcc.txt`` and ``*/gcc.txt``
    behave alike. A leading ``**/`` may also match no directory at all.
    """
    for candidate in _path_candidates(path, root):
        if fnmatchcase(candidate, pattern):
            return True
        if pattern.startswith("**/") and fnmatchcase(candidate, pattern[3:]):
            return True
    return False


@dataclass(frozen=True, slots=True)
class Kind:
    name: str
    handle: Handle
    pattern: re.Pattern[str] = field(compare=False)
    files: tuple[str, ...]

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("kind name must be non-empty")
        if REQUIRED_GROUP not in self.pattern.groupindex:
            raise build_rule_error(
                RuleErrorCode.E_RULES_FILE_GROUP_MISSING,
                f"regex for kind '{self.name}' does not capture the required field `file`",
                self.name,
                witness=tuple(sorted(self.pattern.groupindex)),
            )

    @property
    def categorizable(self) -> bool:
        return "category" in self.pattern.groupindex

    def matches(self, path: PurePath, root: PurePath | None = None) -> bool:
        return any(glob_matches(pattern, path, root) for pattern in self.files)


@dataclass(frozen=True, slots=True)
class RuleSet:
    """Kinds of warnings in declaration order. Immutable once loaded."""

    kinds: tuple[Kind, ...]

    def __post_init__(self) -> None:
        names = [kind.name for kind in self.kinds]
        if len(set(names)) != len(names):
            raise ValueError("kind names must be unique")

    def __iter__(self) -> Iterator[Kind]:
        return iter(self.kinds)

    def __len__(self) -> int:
        return len(self.kinds)

    @property
    def handles(self) -> frozenset[Handle]:
        return frozenset(kind.handle for kind in self.kinds)

    def get(self, name: str) -> Kind | None:
        for kind in self.kinds:
            if kind.name == name:
                return kind
        return None

    def by_handle(self, handle: Handle) -> Kind:
        for kind in self.kinds:
            if kind.handle == handle:
                return kind
        raise KeyError(handle)

    def matching_kinds(
        self,
        path: Path,
        root: Path | None = None,
        *,
        include: frozenset[Handle] | None = None,
    ) -> tuple[Kind, ...]:
        return tuple(
            kind
            for kind in self.kinds
            if (include is None or kind.handle in include) and kind.matches(path, root)
        )

    def restricted_to(self, names: Iterable[str] | None) -> frozenset[Handle]:
        """Handles of the kinds a run is restricted to; all kinds when ``names`` is None."""
        if names is None:
            return self.handles
        selected: set[Handle] = set()
        unknown: list[str] = []
        for name in names:
            kind = self.get(name)
            if kind is None:
                unknown.append(name)
                continue
            selected.add(kind.handle)
        if unknown:
            witness = tuple(sorted(set(unknown)))
            raise build_rule_error(
                RuleErrorCode.E_RULES_KIND_UNKNOWN,
                f"unknown kind(s) requested: {', '.join(witness)}",
                "--only",
                witness=witness,
            )
        return frozenset(selected)
