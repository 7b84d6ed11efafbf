"""Merging of scanned call sites into a key-unique translation table."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from .entries import LocEntry, LocTable
from .errors import ConflictingEntryError, UnrecoverableKeyError
from .matcher import CallCandidate, DecodeFailure, InvalidCallSite, ScanEvent

__all__ = ["ExtractionLog", "EntryAggregator"]

logger = logging.getLogger(__name__)


@dataclass
class ExtractionLog:
    """Plain-text trace of every processed call site."""

    lines: List[str] = field(default_factory=list)
    accepted: int = 0
    duplicates: int = 0
    skipped: int = 0
    decode_failures: int = 0

    def write(self, line: str) -> None:
        self.lines.append(line)

    @property
    def matches(self) -> int:
        return self.accepted + self.duplicates

    def summary(self) -> str:
        return (
            f"{self.accepted} entries, {self.duplicates} duplicate call sites, "
            f"{self.skipped} skipped, {self.decode_failures} undecodable methods"
        )

    def render(self) -> str:
        return "\n".join(self.lines + [f"; {self.summary()}"]) + "\n"


class EntryAggregator:
    """Collect call candidates for a whole module.

    A key seen again with the same message is an expected duplicate.  A key
    seen again with a different message means two call sites disagree about
    the source text of one translation unit and always fails the run.  The
    outcome of that check does not depend on the order candidates arrive in.
    """

    def __init__(
        self,
        *,
        ignore_invalid_functions: bool = False,
        log: Optional[ExtractionLog] = None,
    ) -> None:
        self.ignore_invalid_functions = ignore_invalid_functions
        self.log = log if log is not None else ExtractionLog()
        self.skipped: List[InvalidCallSite] = []
        self.failures: List[DecodeFailure] = []
        self._entries: Dict[str, LocEntry] = {}
        self._origins: Dict[str, str] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def add(self, candidate: CallCandidate) -> None:
        existing = self._entries.get(candidate.key)
        if existing is None:
            self._entries[candidate.key] = LocEntry(
                candidate.key, candidate.message, candidate.description
            )
            self._origins[candidate.key] = candidate.origin
            self.log.accepted += 1
            self.log.write(
                f"-> {candidate.origin} {candidate.callee}: "
                f"{candidate.key} - {candidate.message!r} (from {candidate.description})"
            )
            return

        if existing.message != candidate.message:
            raise ConflictingEntryError(
                candidate.key,
                existing.message,
                self._origins[candidate.key],
                candidate.message,
                candidate.origin,
            )
        self.log.duplicates += 1
        self.log.write(
            f"== {candidate.origin}: {candidate.key} already defined "
            f"(from {existing.description})"
        )

    def reject(self, site: InvalidCallSite) -> None:
        if not self.ignore_invalid_functions:
            raise UnrecoverableKeyError(site.origin, site.reason)
        logger.warning("skipping %s: %s", site.origin, site.reason)
        self.skipped.append(site)
        self.log.skipped += 1
        self.log.write(f"!! {site.origin} {site.callee}: skipped, {site.reason}")

    def record_decode_failure(self, failure: DecodeFailure) -> None:
        self.failures.append(failure)
        self.log.decode_failures += 1
        self.log.write(f"?? {failure.origin}: couldn't decode body, {failure.reason}")

    def consume(self, events: Iterable[ScanEvent]) -> None:
        for event in events:
            if isinstance(event, CallCandidate):
                self.add(event)
            elif isinstance(event, InvalidCallSite):
                self.reject(event)
            else:
                self.record_decode_failure(event)

    def finish(self) -> LocTable:
        return LocTable(self._entries.values())
