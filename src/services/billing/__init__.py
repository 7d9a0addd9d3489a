"""Wallet checks, call logging and usage charging."""

from src.services.billing.costs import ChargeResult, CostCalculator, CostLedger
from src.services.billing.exceptions import (
    BalanceCheckError,
    BillingError,
    InsufficientBalanceError,
)
from src.services.billing.ledger import CallLedger, DatabaseCallLedger
from src.services.billing.wallet import (
    INSUFFICIENT_BALANCE_MESSAGE,
    BalanceCheck,
    BalanceProvider,
    WalletService,
)

__all__ = [
    # Wallet
    "BalanceCheck",
    "BalanceProvider",
    "WalletService",
    "INSUFFICIENT_BALANCE_MESSAGE",
    # Ledgers
    "CallLedger",
    "DatabaseCallLedger",
    "CostLedger",
    "CostCalculator",
    "ChargeResult",
    # Exceptions
    "BillingError",
    "BalanceCheckError",
    "InsufficientBalanceError",
]
