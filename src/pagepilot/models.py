"""Domain models for PagePilot."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class PageEvent(str, Enum):
    """Events relayed from the embedded browser surface to the host."""

    CLOSE = "close"
    CLOSED = "closed"
    DISPATCH = "dispatch"
    STARTED = "started"
    FINISHED = "finished"
    LOCATION_CHANGE = "locationchange"
    DOM_CHANGE = "domchange"
    HOST_BLOCKED = "hostblocked"
    REQUEST = "request"
    RESPONSE = "response"


class AuthStatus(str, Enum):
    """Verdict of one authenticate / wait_for_authentication call."""

    AUTHENTICATED = "authenticated"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


class AuthState(str, Enum):
    """States of a single auth monitor run."""

    IDLE = "idle"
    POLLING = "polling"
    AUTHENTICATED = "authenticated"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass(frozen=True)
class ResponseRecord:
    """Response half of an intercepted exchange."""

    status: int
    response_headers: dict[str, str] = field(default_factory=dict)
    response_body: bytes | None = None


@dataclass(frozen=True)
class RequestRecord:
    """Immutable intercepted request/response pair."""

    url: str
    method: str
    request_headers: dict[str, str] = field(default_factory=dict)
    request_body: str | None = None
    response: ResponseRecord = field(default_factory=lambda: ResponseRecord(status=0))
    observed_at: float = field(default_factory=time.monotonic)
    resource_type: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Flatten into a JSON-friendly dict (bodies are omitted)."""
        return {
            "url": self.url,
            "method": self.method,
            "status": self.response.status,
            "resource_type": self.resource_type,
            "observed_at": round(self.observed_at, 6),
            "request_headers": dict(self.request_headers),
            "response_headers": dict(self.response.response_headers),
            "has_request_body": self.request_body is not None,
            "response_bytes": len(self.response.response_body or b""),
        }


@dataclass(frozen=True)
class Cookie:
    """A browser cookie as reported by the surface."""

    name: str
    value: str
    domain: str = ""
    path: str = "/"
    expires: float = -1
    http_only: bool = False
    secure: bool = False
    same_site: str = ""


@dataclass(frozen=True)
class NativeRequest:
    """Request issued through the surface's own network stack."""

    url: str
    method: str = "GET"
    headers: dict[str, str] = field(default_factory=dict)
    body: str | bytes | None = None


@dataclass(frozen=True)
class NativeResponse:
    """Response to a :class:`NativeRequest`."""

    url: str
    status: int
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def text(self, encoding: str = "utf-8") -> str:
        return self.body.decode(encoding, errors="replace")
