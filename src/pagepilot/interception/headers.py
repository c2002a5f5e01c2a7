"""Derive one effective header map from intercepted requests."""

from __future__ import annotations

from typing import Iterable, Mapping

from pagepilot.interception.ledger import MatcherLike, RequestLedger


def normalize_headers(headers: Mapping[str, str] | Iterable[tuple[str, str]]) -> dict[str, str]:
    """Lower-case header names; later duplicates win."""
    items = headers.items() if isinstance(headers, Mapping) else headers
    return {str(name).lower(): str(value) for name, value in items}


def merged_headers(ledger: RequestLedger, matcher: MatcherLike) -> dict[str, str]:
    """Fold the request headers of every matching record, oldest first.

    For a header seen on several requests, the most recently observed
    request's value wins.  No match gives an empty dict.
    """
    merged: dict[str, str] = {}
    for record in ledger.filter(matcher):
        merged.update(normalize_headers(record.request_headers))
    return merged
