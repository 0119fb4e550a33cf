"""
Domain event dispatch for application services.

Events are written to the structured log after the transaction commits;
notification delivery subscribes to that stream downstream.
"""
from __future__ import annotations

from dataclasses import asdict, is_dataclass
from typing import Iterable

from core.logging_config import get_logger


logger = get_logger(__name__)


def publish_domain_events(events: Iterable) -> None:
    for event in events:
        payload = asdict(event) if is_dataclass(event) else {}
        payload.pop("event_id", None)
        payload.pop("occurred_at", None)
        logger.info(
            "domain_event",
            event_type=type(event).__name__,
            event_id=getattr(event, "event_id", None),
            **payload,
        )
