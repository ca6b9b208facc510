"""Settlement subsystem — ledger adapter, fees, escrow registries, treasury.

The registries are pure state machines over in-memory records. Value
moves only through the Ledger protocol; audit logging and persistence
are handled by the service layer.
"""

from boostpay.settlement.ledger import InMemoryLedger, Ledger
from boostpay.settlement.reviews import ReviewRegistry
from boostpay.settlement.tasks import TaskRegistry
from boostpay.settlement.tips import TipProcessor, TipReceipt
from boostpay.settlement.treasury import Treasury

__all__ = [
    "InMemoryLedger",
    "Ledger",
    "ReviewRegistry",
    "TaskRegistry",
    "TipProcessor",
    "TipReceipt",
    "Treasury",
]
