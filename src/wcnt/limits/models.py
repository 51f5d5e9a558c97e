from __future__ import annotations

import math
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Final

from wcnt.interning import Handle

type LimitValue = int | float

INFINITE: Final[float] = math.inf
LIMITS_FILENAME: Final[str] = "Limits.toml"
_DISPLAY_MAX_COMPONENTS: Final[int] = 5
_DISPLAY_TAIL_COMPONENTS: Final[int] = 4


def is_infinite(value: LimitValue) -> bool:
    return isinstance(value, float) and math.isinf(value) and value > 0


def validate_limit_value(raw: object) -> LimitValue:
    """Accept a non-negative integer or positive infinity; reject everything else."""
    if isinstance(raw, bool):
        raise ValueError("limit values can only be a non-negative integer or `inf`")
    if isinstance(raw, int):
        if raw < 0:
            raise ValueError("limit values can only be a non-negative integer or `inf`")
        return raw
    if isinstance(raw, float) and is_infinite(raw):
        return INFINITE
    raise ValueError("limit values can only be a non-negative integer or `inf`")


def format_limit(value: LimitValue) -> str:
    return "inf" if is_infinite(value) else str(int(value))


@dataclass(frozen=True, slots=True)
class LimitTable:
    """Limits of one kind inside one limits file.

    Either a single ``scalar`` for every category, or ``categories`` in
    declaration order. A table with neither yields 0 for every lookup.
    """

    scalar: LimitValue | None = None
    categories: tuple[tuple[Handle, LimitValue], ...] = ()

    def __post_init__(self) -> None:
        if self.scalar is not None and self.categories:
            raise ValueError("limit table is either scalar or per category, not both")
        if self.scalar is not None:
            object.__setattr__(self, "scalar", validate_limit_value(self.scalar))
        keys = [category for category, _ in self.categories]
        if len(set(keys)) != len(keys):
            raise ValueError("limit table categories must be unique")
        object.__setattr__(
            self,
            "categories",
            tuple((category, validate_limit_value(value)) for category, value in self.categories),
        )

    @property
    def is_scalar(self) -> bool:
        return self.scalar is not None

    @property
    def has_infinite(self) -> bool:
        if self.scalar is not None:
            return is_infinite(self.scalar)
        return any(is_infinite(value) for _, value in self.categories)

    def entries(self, wildcard: Handle) -> tuple[tuple[Handle, LimitValue], ...]:
        if self.scalar is not None:
            return ((wildcard, self.scalar),)
        return self.categories

    def declared(self, category: Handle, wildcard: Handle) -> LimitValue | None:
        for declared_category, value in self.entries(wildcard):
            if declared_category == category:
                return value
        return None

    def limit_for(self, category: Handle, wildcard: Handle) -> LimitValue:
        exact = self.declared(category, wildcard)
        if exact is not None:
            return exact
        fallback = self.declared(wildcard, wildcard)
        if fallback is not None:
            return fallback
        return 0


EMPTY_TABLE: Final[LimitTable] = LimitTable()


@dataclass(frozen=True, slots=True)
class LimitLocation:
    """A directory owning a limits file, identified by its canonical path.

    ``directory is None`` is the synthetic location used for files that have no
    limits file above them. It has no tables, so every limit there is 0.
    """

    directory: Path | None
    limits_file: Path | None = field(default=None, compare=False)
    tables: Mapping[Handle, LimitTable] = field(
        default_factory=lambda: MappingProxyType({}), compare=False
    )
    rejected_kinds: frozenset[Handle] = field(default=frozenset(), compare=False)
    source: str | None = field(default=None, compare=False, repr=False)

    def __post_init__(self) -> None:
        if (self.directory is None) != (self.limits_file is None):
            raise ValueError("directory and limits_file must be set together")
        object.__setattr__(self, "tables", MappingProxyType(dict(self.tables)))

    @property
    def is_no_limits(self) -> bool:
        return self.directory is None

    @property
    def writable(self) -> bool:
        return self.limits_file is not None and self.source is not None

    def table_for(self, kind: Handle) -> LimitTable | None:
        return self.tables.get(kind)

    def iter_tables(self) -> Iterator[tuple[Handle, LimitTable]]:
        return iter(self.tables.items())

    def display(self) -> str:
        if self.limits_file is None:
            return "_"
        parts = self.limits_file.parts
        if len(parts) > _DISPLAY_MAX_COMPONENTS:
            return str(Path("...", *parts[-_DISPLAY_TAIL_COMPONENTS:]))
        return str(self.limits_file)


NO_LIMITS: Final[LimitLocation] = LimitLocation(directory=None)


def location_sort_key(location: LimitLocation) -> tuple[int, str]:
    if location.directory is None:
        return (1, "")
    return (0, location.directory.as_posix())
