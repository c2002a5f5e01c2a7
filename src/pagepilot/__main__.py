"""Entry point: ``python -m pagepilot [settings.yaml]``.

Opens ``start_url``, waits for the configured login signal and reports the
traffic seen along the way.
"""

from __future__ import annotations

import asyncio
import logging
import sys

from pagepilot.auth.evaluators import from_settings
from pagepilot.browser.playwright_surface import PlaywrightSurface
from pagepilot.exceptions import AuthError, ConfigurationError, SurfaceError
from pagepilot.models import AuthStatus
from pagepilot.page import Page
from pagepilot.reporting.console import print_banner, print_request_table, print_verdict
from pagepilot.reporting.data_export import export_to_file
from pagepilot.settings import PageSettings

logger = logging.getLogger("pagepilot")


def _configure_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
        datefmt="%H:%M:%S",
    )
    # Quiet noisy libraries
    logging.getLogger("asyncio").setLevel(logging.WARNING)


async def _async_main(settings_path: str | None) -> int:
    settings = PageSettings.from_yaml(settings_path)
    if not settings.start_url:
        raise ConfigurationError("start_url must be configured.")
    evaluator = from_settings(settings)

    print_banner(settings.start_url)
    surface = PlaywrightSurface(settings)
    await surface.launch()

    status: AuthStatus | None = None
    async with Page(surface, settings) as page:
        try:
            status = await page.authenticate(settings.start_url, evaluator)
            print_verdict(status)
        except AuthError as exc:
            print_verdict(AuthStatus.TIMED_OUT, f"{exc.elapsed:.1f}s, {exc.attempts} checks")

        if status is AuthStatus.AUTHENTICATED and settings.storage_state_path:
            await surface.save_storage_state(settings.storage_state_path)

        records = page.get_requests()
        print_request_table(records)
        if settings.export_dir:
            export_to_file(records, settings.export_dir, settings.export_format)

    return 0 if status is AuthStatus.AUTHENTICATED else 1


def main() -> None:
    _configure_logging()
    settings_path = sys.argv[1] if len(sys.argv) > 1 else None
    try:
        sys.exit(asyncio.run(_async_main(settings_path)))
    except (ConfigurationError, SurfaceError) as exc:
        logger.error("%s", exc)
        sys.exit(2)
    except KeyboardInterrupt:
        logging.info("Interrupted by user.")
        sys.exit(130)


if __name__ == "__main__":
    main()
