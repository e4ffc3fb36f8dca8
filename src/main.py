"""
Headless entry point: ``python -m src.main``.

Brings up the settlement engine without a Discord front end. It validates the
environment, loads the tunables, starts the service container (database,
optional schema creation, catalog seed, settlement sweep) and then waits for
SIGINT or SIGTERM. A bot process embeds the same container instead of
running this module.
"""

import asyncio
import signal
import sys

from src.core.config.config import Config
from src.core.config.manager import ConfigManager
from src.core.event import event_bus
from src.core.logging.logger import LogContext, get_logger
from src.core.services.container import (
    ServiceContainer,
    initialize_service_container,
    shutdown_service_container,
)

logger = get_logger(__name__)


async def _startup() -> ServiceContainer:
    # each step raises on failure; main() turns that into exit status 1
    Config.validate()
    ConfigManager.initialize()
    logger.info("Tunables loaded", extra={"environment": Config.ENVIRONMENT})

    container = initialize_service_container(
        config_manager=ConfigManager,
        event_bus=event_bus,
        logger=get_logger("src.core.services.container"),
    )
    await container.startup()
    logger.info("Settlement engine started")
    return container


async def _shutdown() -> None:
    try:
        await shutdown_service_container()
    except Exception:
        logger.error("Service container did not shut down cleanly", exc_info=True)
    else:
        logger.info("Settlement engine stopped")


def _stop_on_signals(stop: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(signum, stop.set)
        except NotImplementedError:
            # Windows event loops have no signal handlers
            logger.debug("No handler installed", extra={"signal": signum.name})


async def main() -> None:
    stop = asyncio.Event()
    _stop_on_signals(stop)

    async with LogContext(component="main"):
        try:
            await _startup()
            await stop.wait()
        except asyncio.CancelledError:
            logger.warning("Main task cancelled")
            raise
        except Exception:
            logger.critical("Startup failed", exc_info=True)
            sys.exit(1)
        finally:
            await _shutdown()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Interrupted")
