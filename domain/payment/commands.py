"""
Settlement command shared by the webhook and manual verification paths.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class SettlementOutcome(str, Enum):
    """Gateway-reported outcome of a transaction."""
    SUCCESS = "success"
    FAILED = "failed"
    PENDING = "pending"


class ResolveSource(str, Enum):
    WEBHOOK = "webhook"
    MANUAL_VERIFY = "manual_verify"


@dataclass(frozen=True)
class ResolveCommand:
    reference: str
    outcome: SettlementOutcome
    source: ResolveSource
