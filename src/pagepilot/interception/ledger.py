"""In-memory store of intercepted request/response pairs for one page."""

from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import dataclass
from typing import Callable, Union

from pagepilot.models import RequestRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UrlMatcher:
    """Match records whose URL contains *fragment*."""

    fragment: str

    def __call__(self, record: RequestRecord) -> bool:
        return self.fragment in record.url


@dataclass(frozen=True)
class PredicateMatcher:
    """Match records accepted by an arbitrary callable."""

    fn: Callable[[RequestRecord], object]

    def __call__(self, record: RequestRecord) -> bool:
        return bool(self.fn(record))


Matcher = Union[UrlMatcher, PredicateMatcher]
MatcherLike = Union[str, Matcher, Callable[[RequestRecord], object]]


def resolve_matcher(matcher: MatcherLike) -> Matcher:
    """Turn a URL fragment or callable into a :data:`Matcher` once, up front."""
    if isinstance(matcher, (UrlMatcher, PredicateMatcher)):
        return matcher
    if isinstance(matcher, str):
        return UrlMatcher(matcher)
    if callable(matcher):
        return PredicateMatcher(matcher)
    raise TypeError(f"Expected a URL string or predicate, got {type(matcher).__name__}.")


class RequestLedger:
    """Ordered, append-only record of a page's network traffic.

    Records are kept in observation order and never edited.  When
    *max_records* is non-zero, the oldest records are dropped once the cap
    is hit; sequence numbers keep counting so :meth:`mark` stays valid.
    """

    def __init__(self, max_records: int = 0) -> None:
        self._lock = threading.Lock()
        self._records: deque[RequestRecord] = deque(maxlen=max_records or None)
        self._total = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    # ---- writes ----

    def record(self, entry: RequestRecord) -> None:
        """Append *entry*; safe to call from any thread."""
        with self._lock:
            self._records.append(entry)
            self._total += 1
        logger.debug("Recorded %s %s (%d).", entry.method, entry.url, entry.response.status)

    def clear(self) -> None:
        with self._lock:
            dropped = len(self._records)
            self._records.clear()
        if dropped:
            logger.debug("Cleared %d ledger record(s).", dropped)

    # ---- reads ----

    def mark(self) -> int:
        """Return the sequence number the next recorded entry will get."""
        with self._lock:
            return self._total

    def all(self) -> list[RequestRecord]:
        """Return a copy of every record, oldest first."""
        with self._lock:
            return list(self._records)

    def filter(self, matcher: MatcherLike, since: int | None = None) -> list[RequestRecord]:
        """Return matching records in observation order.

        With *since* (a value from :meth:`mark`), only records appended after
        that mark are considered.
        """
        match = resolve_matcher(matcher)
        return [r for r in self._snapshot(since) if match(r)]

    def find(self, matcher: MatcherLike, since: int | None = None) -> RequestRecord | None:
        """Return the first matching record, or ``None``."""
        match = resolve_matcher(matcher)
        for record in self._snapshot(since):
            if match(record):
                return record
        return None

    def _snapshot(self, since: int | None) -> list[RequestRecord]:
        with self._lock:
            records = list(self._records)
            first_seq = self._total - len(records)
        if since is None or since <= first_seq:
            return records
        return records[since - first_seq:]
