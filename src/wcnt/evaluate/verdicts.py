from __future__ import annotations

from dataclasses import dataclass, field

from wcnt.aggregate import WarningIdentity
from wcnt.interning import Handle, StringInterner
from wcnt.limits import LimitLocation, LimitValue, format_limit, is_infinite, location_sort_key


@dataclass(frozen=True, slots=True)
class Verdict:
    location: LimitLocation
    kind: Handle
    category: Handle
    observed: int
    limit: LimitValue
    warnings: frozenset[WarningIdentity] = field(default=frozenset(), compare=False)

    def __post_init__(self) -> None:
        if self.observed < 0:
            raise ValueError("observed must be >= 0")

    @property
    def violated(self) -> bool:
        if is_infinite(self.limit):
            return False
        return self.observed > self.limit

    def entry_display(self, interner: StringInterner) -> str:
        return (
            f"{self.location.display()}:"
            f"[{interner.lookup(self.kind)}/{interner.lookup(self.category)}]"
        )

    def display(self, interner: StringInterner) -> str:
        if is_infinite(self.limit):
            return f"{self.entry_display(interner)} ({self.observed} < inf)"
        relation = ">" if self.violated else "<="
        return (
            f"{self.entry_display(interner)}"
            f" ({self.observed} {relation} {format_limit(self.limit)})"
        )


def verdict_sort_key(
    verdict: Verdict, interner: StringInterner
) -> tuple[tuple[int, str], str, str]:
    return (
        location_sort_key(verdict.location),
        interner.lookup(verdict.kind),
        interner.lookup(verdict.category),
    )
