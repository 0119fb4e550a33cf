"""Celery beat schedule configuration.

Periodic jobs are keyed by a stable entry name; the task name must match the
``name=`` given to the corresponding ``shared_task``.
"""
from __future__ import annotations

from celery.schedules import crontab

from core.config import settings


def build_beat_schedule(interval_hours: int | None = None) -> dict:
    if interval_hours is None:
        interval_hours = settings.orders.auto_complete_interval_hours
    # crontab "*/N" 只在一天之内循环，N >= 24 时会退化为每天一次
    if not 1 <= interval_hours <= 23:
        raise ValueError(f"auto-complete interval must be between 1 and 23 hours, got {interval_hours}")
    return {
        "orders-auto-complete": {
            "task": "orders.auto_complete",
            "schedule": crontab(minute=0, hour=f"*/{interval_hours}"),
            "options": {"queue": "low"},
        },
    }


CELERY_BEAT_SCHEDULE = build_beat_schedule()
