"""In-process price simulation schedule (optional)"""
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app.core.config import settings
from app.core.database import AsyncSessionLocal
from app.services.price_updater import PriceUpdater

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler()

SIMULATION_JOB_ID = "simulate_price_updates"


async def simulate_prices_job():
    """Run one updater tick"""
    try:
        await PriceUpdater(AsyncSessionLocal).run()
    except Exception as e:
        logger.error(f"Scheduled price simulation failed: {e}", exc_info=True)


def start_scheduler() -> bool:
    """Schedule the simulation job when an interval is configured."""
    interval = settings.SIMULATION_INTERVAL_MINUTES
    if interval <= 0:
        return False

    scheduler.add_job(
        simulate_prices_job,
        trigger=IntervalTrigger(minutes=interval),
        id=SIMULATION_JOB_ID,
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    scheduler.start()
    logger.info(f"Price simulation scheduled every {interval} minutes")
    return True


def shutdown_scheduler():
    if scheduler.running:
        scheduler.shutdown(wait=False)


def get_scheduler_status():
    """Return scheduler state"""
    return {
        "running": scheduler.running,
        "jobs": [
            {
                "id": job.id,
                "next_run": job.next_run_time.isoformat() if job.next_run_time else None,
                "trigger": str(job.trigger),
            }
            for job in scheduler.get_jobs()
        ],
    }
