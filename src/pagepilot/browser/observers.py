"""Init scripts that report page-side activity back to the surface."""

from __future__ import annotations

from typing import Any

DOM_CHANGE_BINDING = "__pagepilotDomChange"
DISPATCH_BINDING = "__pagepilotDispatch"

_DOM_DEBOUNCE_MS = 100


def observer_script(debounce_ms: int = _DOM_DEBOUNCE_MS) -> str:
    """Return the JS installed in every document before page scripts run."""
    return """
        (() => {
            if (window.__pagepilotObserversInstalled) return;
            window.__pagepilotObserversInstalled = true;

            // Page code can push messages to the host.
            window.pagepilotDispatch = (message) => window.%(dispatch)s(message);

            // Batch DOM mutations and report the count once per window.
            let pending = 0;
            let timer = null;
            const flush = () => {
                timer = null;
                const count = pending;
                pending = 0;
                window.%(dom)s(count);
            };
            const start = () => {
                new MutationObserver((records) => {
                    pending += records.length;
                    if (timer === null) timer = setTimeout(flush, %(debounce)d);
                }).observe(document.documentElement, {
                    childList: true, subtree: true, attributes: true, characterData: true,
                });
            };
            if (document.documentElement) start();
            else document.addEventListener('DOMContentLoaded', start, { once: true });
        })();
    """ % {"dispatch": DISPATCH_BINDING, "dom": DOM_CHANGE_BINDING, "debounce": debounce_ms}


async def install_observers(context: Any, on_dom_change: Any, on_dispatch: Any) -> None:
    """Expose the callback bindings and add the observer init script to *context*."""
    await context.expose_binding(DOM_CHANGE_BINDING, on_dom_change)
    await context.expose_binding(DISPATCH_BINDING, on_dispatch)
    await context.add_init_script(observer_script())
