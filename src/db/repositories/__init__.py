"""Repository pattern implementations for data access."""

from src.db.repositories.agents import AsyncAgentRepository
from src.db.repositories.calls import AsyncCallLogRepository
from src.db.repositories.wallets import AsyncWalletRepository

__all__ = [
    "AsyncAgentRepository",
    "AsyncCallLogRepository",
    "AsyncWalletRepository",
]
