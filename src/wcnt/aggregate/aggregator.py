from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING

from wcnt.diagnostics import DiagnosticEvent, unique_diagnostics
from wcnt.interning import Handle, StringInterner
from wcnt.limits import LimitLocation, LimitTreeResolver

from .warnings import RawWarning, WarningIdentity

if TYPE_CHECKING:
    from wcnt.scan import ScanResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AggregateKey:
    location: LimitLocation
    kind: Handle
    category: Handle


class AggregateCount:
    """Distinct warnings attributed to one (location, kind, category)."""

    __slots__ = ("_identities",)

    def __init__(self) -> None:
        self._identities: set[WarningIdentity] = set()

    def __repr__(self) -> str:
        return f"AggregateCount(count={self.count})"

    @property
    def count(self) -> int:
        return len(self._identities)

    @property
    def identities(self) -> frozenset[WarningIdentity]:
        return frozenset(self._identities)

    def add(self, identity: WarningIdentity) -> bool:
        if identity in self._identities:
            return False
        self._identities.add(identity)
        return True


class WarningAggregator:
    """Single consumer stage: deduplicate, attribute and count warnings.

    Counts only depend on the set of distinct identities seen, never on the
    order warnings arrive in.
    """

    def __init__(
        self,
        resolver: LimitTreeResolver,
        interner: StringInterner,
        *,
        kinds: frozenset[Handle] | None = None,
    ) -> None:
        self._resolver = resolver
        self._interner = interner
        self._kinds = kinds
        self._counts: dict[AggregateKey, AggregateCount] = {}
        self._location_by_file: dict[Handle, LimitLocation] = {}
        self._diagnostics: list[DiagnosticEvent] = []
        self._received = 0
        self._duplicates = 0
        self._filtered = 0

    @property
    def received(self) -> int:
        return self._received

    @property
    def duplicates(self) -> int:
        return self._duplicates

    @property
    def filtered(self) -> int:
        return self._filtered

    def add(self, warning: RawWarning) -> bool:
        """Count ``warning``; returns False when it was filtered out or already seen."""
        self._received += 1
        if self._kinds is not None and warning.kind not in self._kinds:
            self._filtered += 1
            return False
        identity = warning.identity
        key = AggregateKey(
            location=self._location_for(warning.file),
            kind=warning.kind,
            category=warning.category,
        )
        count = self._counts.get(key)
        if count is None:
            count = AggregateCount()
            self._counts[key] = count
        if not count.add(identity):
            self._duplicates += 1
            return False
        return True

    def add_all(self, warnings: Iterable[RawWarning]) -> None:
        for warning in warnings:
            self.add(warning)

    def consume(self, results: Iterable[ScanResult]) -> None:
        for result in results:
            self._diagnostics.extend(result.diagnostics)
            self.add_all(result.warnings)
        logger.debug(
            "aggregated %d warning(s): %d duplicate(s), %d filtered",
            self._received,
            self._duplicates,
            self._filtered,
        )

    def counts(self) -> Mapping[AggregateKey, AggregateCount]:
        return MappingProxyType(self._counts)

    def diagnostics(self) -> tuple[DiagnosticEvent, ...]:
        return tuple(unique_diagnostics(self._diagnostics))

    def _location_for(self, file: Handle) -> LimitLocation:
        location = self._location_by_file.get(file)
        if location is None:
            location = self._resolver.resolve(self._interner.lookup(file))
            self._location_by_file[file] = location
            logger.debug(
                "culprit `%s` counts towards `%s`", self._interner.lookup(file), location.display()
            )
        return location
