import asyncio
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from picksboard.core.config import settings
from picksboard.core.db import init_db
from picksboard.core.http import init_http_clients, close_http_clients
from picksboard.main import _validate_runtime_config, add_scheduled_jobs

logger = logging.getLogger(__name__)


async def main() -> None:
    await init_db()
    await init_http_clients()
    _validate_runtime_config(for_scheduler=True)

    if not settings.scheduler_enabled:
        logger.warning("SCHEDULER_ENABLED=false; scheduler runner exiting")
        return

    scheduler = AsyncIOScheduler()
    add_scheduled_jobs(scheduler)
    scheduler.start()
    logger.info("scheduler_runner_started cron=%s", settings.job_build_btts_picks_cron)
    try:
        await asyncio.Event().wait()
    finally:
        scheduler.shutdown(wait=False)
        try:
            await close_http_clients()
        except Exception:
            logger.exception("http_client_close_failed")


if __name__ == "__main__":
    asyncio.run(main())
