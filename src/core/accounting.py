"""Call start/end accounting for a voice session."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from src.core.session import VoiceSession
from src.logging_config import get_logger
from src.services.billing.costs import ChargeResult, CostCalculator, CostLedger
from src.services.billing.exceptions import InsufficientBalanceError
from src.services.billing.ledger import CallLedger, DatabaseCallLedger

logger: Any = get_logger(__name__)


class CallAccountant:
    """Logs the call and charges usage when it ends.

    Accounting failures never affect the call: everything is logged only.
    """

    def __init__(
        self,
        call_ledger: CallLedger | None = None,
        cost_ledger: CostLedger | None = None,
    ) -> None:
        self._calls = call_ledger or DatabaseCallLedger()
        self._costs = cost_ledger or CostCalculator()

    async def start(self, session: VoiceSession) -> str | None:
        """Record the call start and remember its id on the session."""
        try:
            session.call_log_id = await self._calls.start(session)
        except Exception as e:
            logger.error(f"Error logging call start for {session.connection_id}: {e}")
        return session.call_log_id

    async def finalize(self, session: VoiceSession) -> ChargeResult | None:
        """Close the call log and charge the usage vector."""
        if not session.call_log_id:
            logger.debug(f"No call log for {session.connection_id}, skipping accounting")
            return None

        duration = session.duration_seconds(datetime.now(UTC))
        try:
            await self._calls.end(session.call_log_id, duration)
        except Exception as e:
            logger.error(f"Error logging call end for {session.call_log_id}: {e}")
            return None

        if not session.user_id:
            return None

        usage = session.usage()
        try:
            result = await self._costs.charge_usage(session.user_id, session.call_log_id, usage)
        except InsufficientBalanceError as e:
            logger.warning(f"Call ended with insufficient balance: {e}")
            return None
        except Exception as e:
            logger.error(f"Error charging user {session.user_id}: {e}")
            return None

        logger.info(f"Call {session.call_log_id} charged ${result.total_charged:.4f}: {result.breakdown}")
        return result
