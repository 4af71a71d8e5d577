"""Business orchestration for the pAION ledger and governance.

Critical mutations are wrapped in transaction.atomic() to keep state consistent.
"""

from .governance import GovernanceService, Tally
from .ledger import LedgerService, TransactionPage, TransferResult

__all__ = ["GovernanceService", "LedgerService", "Tally", "TransactionPage", "TransferResult"]
