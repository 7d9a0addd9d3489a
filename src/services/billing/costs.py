"""Usage pricing and charging at call end."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

from src.config import Settings, get_settings
from src.db.models import UsageService
from src.db.repositories.wallets import AsyncWalletRepository
from src.db.session import get_session_context
from src.logging_config import get_logger
from src.services.billing.exceptions import InsufficientBalanceError

logger: Any = get_logger(__name__)

# Usage vector key -> billed service
USAGE_SERVICES: dict[str, UsageService] = {
    "stt_seconds": UsageService.stt,
    "tts_characters": UsageService.tts,
    "llm_input_tokens": UsageService.llm_input,
    "llm_output_tokens": UsageService.llm_output,
}


@dataclass
class ChargeResult:
    """Amount charged for a call and how it splits by usage key."""

    total_charged: float
    breakdown: dict[str, float] = field(default_factory=dict)


class CostLedger(Protocol):
    async def charge_usage(
        self,
        user_id: str,
        call_log_id: str | None,
        usage: Mapping[str, float],
    ) -> ChargeResult:
        ...


class CostCalculator:
    """Prices a usage vector and charges it to the user's wallet."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()

    def unit_costs(self) -> dict[str, float]:
        s = self._settings
        return {
            "stt_seconds": s.stt_cost_per_minute / 60,
            "tts_characters": s.tts_cost_per_1k_chars / 1000,
            "llm_input_tokens": s.llm_cost_per_1k_input_tokens / 1000,
            "llm_output_tokens": s.llm_cost_per_1k_output_tokens / 1000,
        }

    def calculate(self, usage: Mapping[str, float]) -> ChargeResult:
        """Price a usage vector. Unknown keys are ignored."""
        costs = self.unit_costs()
        breakdown = {
            key: round(float(usage.get(key, 0) or 0) * unit, 6)
            for key, unit in costs.items()
        }
        return ChargeResult(total_charged=round(sum(breakdown.values()), 6), breakdown=breakdown)

    async def charge_usage(
        self,
        user_id: str,
        call_log_id: str | None,
        usage: Mapping[str, float],
    ) -> ChargeResult:
        """Record one charge line per service and debit the wallet.

        Raises:
            InsufficientBalanceError: If the wallet cannot cover the total.
        """
        result = self.calculate(usage)
        costs = self.unit_costs()

        async with get_session_context() as db_session:
            repo = AsyncWalletRepository(db_session)
            balance = await repo.get_balance(user_id)
            if balance < result.total_charged:
                raise InsufficientBalanceError(user_id, balance, result.total_charged)

            for key, amount in result.breakdown.items():
                quantity = float(usage.get(key, 0) or 0)
                if quantity <= 0:
                    continue
                await repo.add_charge(
                    user_id=user_id,
                    call_log_id=call_log_id,
                    service=USAGE_SERVICES[key],
                    quantity=quantity,
                    unit_cost=costs[key],
                    amount=amount,
                )
            await repo.debit(user_id, result.total_charged)

        logger.info(f"Charged user {user_id}: ${result.total_charged:.4f}")
        return result
