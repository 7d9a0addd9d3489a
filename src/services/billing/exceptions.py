"""Billing exceptions."""


class BillingError(Exception):
    """Base exception for wallet and charging failures."""


class BalanceCheckError(BillingError):
    """The balance could not be read (storage unavailable)."""


class InsufficientBalanceError(BillingError):
    """The wallet cannot cover a charge."""

    def __init__(self, user_id: str, balance: float, required: float) -> None:
        super().__init__(
            f"Insufficient balance for {user_id}: {balance:.4f} < {required:.4f}"
        )
        self.user_id = user_id
        self.balance = balance
        self.required = required
