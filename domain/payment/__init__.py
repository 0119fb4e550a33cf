"""Payment domain exports."""
from .commands import ResolveCommand, ResolveSource, SettlementOutcome
from .entity import Payment, PaymentStatus
from .repository import PaymentRepository
from .settlement import SettlementCoordinator, SettlementResult

__all__ = [
    "Payment",
    "PaymentStatus",
    "PaymentRepository",
    "ResolveCommand",
    "ResolveSource",
    "SettlementOutcome",
    "SettlementCoordinator",
    "SettlementResult",
]
