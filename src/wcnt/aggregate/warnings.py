from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from wcnt.interning import Handle, StringInterner


@dataclass(frozen=True, slots=True)
class WarningIdentity:
    """What makes two warnings the same warning.

    Unset optional fields are ``None``, which never equals a line, column or
    handle, so "no line" and "line 1" stay distinct.
    """

    kind: Handle
    file: Handle
    line: int | None
    column: int | None
    category: Handle
    description: Handle | None

    def sort_key(self, interner: StringInterner) -> tuple[str, int, int, str, str]:
        return (
            interner.lookup(self.file),
            -1 if self.line is None else self.line,
            -1 if self.column is None else self.column,
            interner.lookup(self.category),
            interner.lookup_optional(self.description) or "",
        )

    def display(self, interner: StringInterner) -> str:
        line = "?" if self.line is None else str(self.line)
        column = "?" if self.column is None else str(self.column)
        text = f"{interner.lookup(self.file)}:{line}:{column}"
        description = interner.lookup_optional(self.description)
        if description is not None:
            text = f"{text}: {description}"
        if self.category != interner.wildcard:
            text = f"{text} [{interner.lookup(self.category)}]"
        return text


@dataclass(frozen=True, slots=True)
class RawWarning:
    """A single regex match in a log file."""

    kind: Handle
    file: Handle
    category: Handle
    line: int | None = None
    column: int | None = None
    description: Handle | None = None
    log_file: Path | None = None

    def __post_init__(self) -> None:
        if self.line is not None and self.line < 1:
            raise ValueError("line must be >= 1")
        if self.column is not None and self.column < 1:
            raise ValueError("column must be >= 1")

    @property
    def identity(self) -> WarningIdentity:
        return WarningIdentity(
            kind=self.kind,
            file=self.file,
            line=self.line,
            column=self.column,
            category=self.category,
            description=self.description,
        )
