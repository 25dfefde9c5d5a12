"""Standalone portal process.

Run:
  python -m adminportal.dashboard.main
"""

from __future__ import annotations

import asyncio
import logging
import signal
import sys

from ..config import load_config, validate_config
from ..preferences import PreferencesStore
from ..storage import Database
from .server import PortalConfig, PortalServer

logger = logging.getLogger(__name__)


async def run_portal() -> None:
    config = load_config()
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    for warning in validate_config(config):
        logger.warning(warning)

    db = None
    if config.database_path is not None:
        config.database_path.parent.mkdir(parents=True, exist_ok=True)
        db = Database(config.database_path)
        await db.connect()
        purged = await db.purge_expired_auth_sessions()
        if purged:
            logger.info("Purged %d expired login session(s)", purged)

    server = PortalServer(
        config=PortalConfig(
            enabled=True,
            host=config.host,
            port=config.port,
            secure_cookies=config.secure_cookies,
            auth_required=config.auth_required,
            email_domain=config.email_domain,
            company_by_email_domain=dict(config.company_by_email_domain),
        ),
        database=db,
        cloudflare=config.cloudflare,
        preferences=PreferencesStore(config.preferences_path),
        applications=config.applications,
    )

    stop_event = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # Windows event loop does not support add_signal_handler.
            pass

    await server.start()
    logger.info("Portal running on http://%s:%s", config.host, config.port)
    try:
        await stop_event.wait()
    finally:
        await server.stop()
        if db is not None:
            await db.close()


def main() -> None:
    asyncio.run(run_portal())


if __name__ == "__main__":
    main()
