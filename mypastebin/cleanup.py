import asyncio

from .config import config
from .log import get_logger

LOGGER = get_logger(__name__)


async def run_pass(name, func):
    try:
        return await func()
    # A failed pass must not stop the loop, the next one may succeed.
    except Exception as err:
        LOGGER.error(f"{err.__class__.__name__} during {name}: {err}")


async def run_periodically(name, func, interval, shutdown):
    """
    Call ``func`` every ``interval`` seconds until ``shutdown`` is set, then
    call it one last time and return.
    """
    LOGGER.info(f"Starting {name} every {interval} seconds")
    while not shutdown.is_set():
        try:
            await asyncio.wait_for(shutdown.wait(), timeout=interval)
        except asyncio.TimeoutError:
            await run_pass(name, func)
    await run_pass(name, func)
    LOGGER.info(f"Finished {name}")


class BackgroundTasks:
    """Periodic view counter flush and CDN cache purge."""

    def __init__(
        self,
        engine,
        views_interval=config["app"]["update_views_interval"],
        cleanup_interval=config["cdn"]["cleanup_interval"],
    ):
        self.engine = engine
        self.views_interval = views_interval
        self.cleanup_interval = cleanup_interval
        self.shutdown = None
        self.tasks = []

    def start(self):
        self.shutdown = asyncio.Event()
        self.tasks = [
            asyncio.create_task(
                run_periodically(
                    "view counter flush",
                    self.engine.flush_views,
                    self.views_interval,
                    self.shutdown,
                )
            ),
            asyncio.create_task(
                run_periodically(
                    "CDN cache purge",
                    self.purge_all,
                    self.cleanup_interval,
                    self.shutdown,
                )
            ),
        ]

    async def purge_all(self):
        return await self.engine.purge_cache(force=True)

    async def stop(self):
        if self.shutdown is None:
            return
        LOGGER.info("Stopping background tasks")
        self.shutdown.set()
        await asyncio.gather(*self.tasks)
        await self.engine.wait_background()
        self.tasks = []
