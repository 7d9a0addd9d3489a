"""Wallet and usage charge repository."""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.models import UsageCharge, UsageService, Wallet


class AsyncWalletRepository:
    """Async repository for balances and charge lines."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_wallet(self, user_id: str) -> Wallet | None:
        return await self.session.get(Wallet, user_id)

    async def get_balance(self, user_id: str) -> float:
        """Current balance; users without a wallet have zero."""
        wallet = await self.get_wallet(user_id)
        return wallet.balance if wallet else 0.0

    async def credit(self, user_id: str, amount: float) -> Wallet:
        wallet = await self.get_wallet(user_id)
        if not wallet:
            wallet = Wallet(user_id=user_id, balance=0.0)
        wallet.balance = round(wallet.balance + amount, 6)
        wallet.updated_at = datetime.now(UTC)
        self.session.add(wallet)
        await self.session.flush()
        return wallet

    async def debit(self, user_id: str, amount: float) -> Wallet | None:
        wallet = await self.get_wallet(user_id)
        if not wallet:
            return None
        wallet.balance = round(wallet.balance - amount, 6)
        wallet.updated_at = datetime.now(UTC)
        self.session.add(wallet)
        return wallet

    async def add_charge(
        self,
        *,
        user_id: str,
        call_log_id: str | None,
        service: UsageService,
        quantity: float,
        unit_cost: float,
        amount: float,
    ) -> UsageCharge:
        charge = UsageCharge(
            user_id=user_id,
            call_log_id=call_log_id,
            service=service,
            quantity=quantity,
            unit_cost=unit_cost,
            amount=amount,
        )
        self.session.add(charge)
        return charge

    async def list_charges(self, call_log_id: str) -> list[UsageCharge]:
        query = select(UsageCharge).where(UsageCharge.call_log_id == call_log_id)  # type: ignore[arg-type]
        result = await self.session.execute(query)
        return list(result.scalars().all())
