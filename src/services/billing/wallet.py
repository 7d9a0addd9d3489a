"""Wallet balance checks before a call starts."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

from sqlalchemy.exc import SQLAlchemyError

from src.db.repositories.wallets import AsyncWalletRepository
from src.db.session import get_session_context
from src.logging_config import get_logger
from src.services.billing.exceptions import BalanceCheckError

logger: Any = get_logger(__name__)

INSUFFICIENT_BALANCE_MESSAGE = "Insufficient balance. Please add funds to start a call."


@dataclass(frozen=True)
class BalanceCheck:
    """Whether a user may start a call."""

    allowed: bool
    balance: float
    message: str = ""


class BalanceProvider(Protocol):
    async def check_balance_for_call(self, user_id: str, estimated_cost: float) -> BalanceCheck:
        """Decide whether the user can afford a call.

        Raises:
            BalanceCheckError: If the balance cannot be read.
        """
        ...


class WalletService:
    """BalanceProvider backed by the wallets table."""

    async def get_balance(self, user_id: str) -> float:
        try:
            async with get_session_context() as db_session:
                return await AsyncWalletRepository(db_session).get_balance(user_id)
        except SQLAlchemyError as e:
            raise BalanceCheckError(f"Failed to read balance for {user_id}: {e}") from e

    async def check_balance_for_call(self, user_id: str, estimated_cost: float) -> BalanceCheck:
        balance = await self.get_balance(user_id)
        if balance < estimated_cost:
            logger.info(f"User {user_id} balance {balance:.4f} below {estimated_cost:.2f}")
            return BalanceCheck(
                allowed=False,
                balance=balance,
                message=INSUFFICIENT_BALANCE_MESSAGE,
            )
        return BalanceCheck(allowed=True, balance=balance, message="OK")
