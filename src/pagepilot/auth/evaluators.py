"""Ready-made auth evaluators.

Each factory returns an async ``evaluator(page) -> bool`` suitable for
:meth:`pagepilot.page.Page.authenticate`.
"""

from __future__ import annotations

import inspect
import logging
from typing import Any

from pagepilot.auth.monitor import Evaluator
from pagepilot.exceptions import ConfigurationError
from pagepilot.settings import PageSettings

logger = logging.getLogger(__name__)


def url_contains(*fragments: str) -> Evaluator:
    """Authenticated once the page URL contains any of *fragments*."""
    wanted = [f.lower() for f in fragments if f]

    async def _check(page: Any) -> bool:
        current = (await page.current_url()).lower()
        return any(frag in current for frag in wanted)

    return _check


def selector_exists(*selectors: str) -> Evaluator:
    """Authenticated once any of *selectors* is present in the DOM."""

    async def _check(page: Any) -> bool:
        for selector in selectors:
            if await page.has_selector(selector):
                return True
        return False

    return _check


def cookie_present(*names: str) -> Evaluator:
    """Authenticated once a cookie with any of *names* is set for the current URL."""
    wanted = set(names)

    async def _check(page: Any) -> bool:
        return any(c.name in wanted for c in await page.cookies())

    return _check


async def _call(evaluator: Evaluator, page: Any) -> Any:
    result = evaluator(page)
    if inspect.isawaitable(result):
        result = await result
    return result


def any_of(*evaluators: Evaluator) -> Evaluator:
    """Truthy when at least one evaluator is; stops at the first hit."""

    async def _check(page: Any) -> bool:
        for ev in evaluators:
            if await _call(ev, page):
                return True
        return False

    return _check


def all_of(*evaluators: Evaluator) -> Evaluator:
    """Truthy only when every evaluator is."""

    async def _check(page: Any) -> bool:
        for ev in evaluators:
            if not await _call(ev, page):
                return False
        return True

    return _check


def from_settings(settings: PageSettings) -> Evaluator:
    """Build an evaluator from the ``auth_*`` settings (any signal counts)."""
    checks: list[Evaluator] = []
    if settings.auth_success_url_fragments:
        checks.append(url_contains(*settings.auth_success_url_fragments))
    if settings.auth_success_selectors:
        checks.append(selector_exists(*settings.auth_success_selectors))
    if settings.auth_cookie_names:
        checks.append(cookie_present(*settings.auth_cookie_names))
    if not checks:
        raise ConfigurationError(
            "No authentication signal configured — set auth_success_url_fragments, "
            "auth_success_selectors or auth_cookie_names."
        )
    logger.debug("Auth evaluator built from %d signal(s).", len(checks))
    return checks[0] if len(checks) == 1 else any_of(*checks)
