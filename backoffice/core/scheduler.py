import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from backoffice.core.config import STOCK_AUDIT_CRON_HOUR
from backoffice.core.db import AsyncSessionLocal
from backoffice.services.inventory.stock_balance_service import audit_stock_consistency

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler()


@scheduler.scheduled_job("cron", hour=STOCK_AUDIT_CRON_HOUR, minute=15)
async def stock_consistency_job():
    async with AsyncSessionLocal() as db:
        mismatches = await audit_stock_consistency(db)
    if not mismatches:
        logger.info("Nightly stock audit found no drift")
