"""Order lifecycle Celery tasks"""
from __future__ import annotations

import asyncio
from datetime import timedelta

from celery import shared_task

from ..utils.base_task import BaseTask
from application.services.order_service import OrderApplicationService
from core.config import settings
from core.logging_config import get_logger
from infrastructure.database import engine
from infrastructure.unit_of_work import SQLAlchemyUnitOfWork

logger = get_logger(__name__)

AUTO_COMPLETE_TASK_NAME = "orders.auto_complete"


async def _auto_complete(after_hours: int, batch_size: int) -> dict:
    service = OrderApplicationService(SQLAlchemyUnitOfWork)
    try:
        summary = await service.auto_complete_stale_orders(
            older_than=timedelta(hours=after_hours),
            batch_size=batch_size,
        )
    finally:
        # asyncio.run 每次创建新事件循环，连接池不能跨循环复用
        await engine.dispose()
    return summary.model_dump()


@shared_task(name=AUTO_COMPLETE_TASK_NAME, bind=True, base=BaseTask)
def auto_complete_orders(self, after_hours: int | None = None, batch_size: int | None = None) -> dict:
    """Mark pending-delivery orders older than the window as delivered.

    Safe to run repeatedly: orders already delivered or cancelled are skipped.
    """
    after_hours = after_hours or settings.orders.auto_complete_after_hours
    batch_size = batch_size or settings.orders.auto_complete_batch_size
    logger.info("auto_complete_orders_triggered", after_hours=after_hours, batch_size=batch_size)
    return asyncio.run(_auto_complete(after_hours, batch_size))
