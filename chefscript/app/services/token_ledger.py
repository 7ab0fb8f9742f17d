# chefscript/app/services/token_ledger.py
"""
Token accounting.
Every billable operation checks the balance before its external call and
charges only after the paid-for work has succeeded.
"""
from __future__ import annotations

import logging
from typing import Optional

from chefscript.app.domain.errors import InsufficientTokensError, TokenLedgerError
from chefscript.app.domain.models import ChargeResult
from chefscript.app.infra.db.base import TokenRepository

logger = logging.getLogger(__name__)


class TokenLedger:
    """
    Service for reading and moving a user's token balance.

    Responsibilities:
    - Pre-flight balance checks
    - Atomic conditional debits
    - Credits after purchases
    """

    def __init__(self, repository: TokenRepository):
        self._repo = repository

    def get_balance(self, user_id: str) -> int:
        try:
            return self._repo.get_balance(user_id)
        except Exception as exc:
            logger.error("Failed to check token balance: user=%s error=%s", user_id, exc)
            raise TokenLedgerError("get_balance", "Failed to check token balance") from exc

    def ensure_balance(self, user_id: str, cost: int, message: Optional[str] = None) -> int:
        """
        Verify the balance covers `cost`.

        Raises:
            InsufficientTokensError: If the balance is lower than the cost
        """
        balance = self.get_balance(user_id)
        if balance < cost:
            raise InsufficientTokensError(required=cost, balance=balance, message=message)
        return balance

    def charge(self, user_id: str, amount: int, message: Optional[str] = None) -> ChargeResult:
        if amount <= 0:
            return ChargeResult(allowed=True, balance=self.get_balance(user_id), amount=0)
        try:
            result = self._repo.charge(user_id, amount)
        except Exception as exc:
            logger.error("Failed to deduct tokens: user=%s amount=%d error=%s", user_id, amount, exc)
            raise TokenLedgerError("charge", "Failed to deduct tokens") from exc

        if not result.allowed:
            raise InsufficientTokensError(
                required=amount,
                balance=result.balance,
                message=message or result.reason,
            )

        logger.info("Tokens charged: user=%s amount=%d balance=%d", user_id, amount, result.balance)
        return result

    def credit(self, user_id: str, amount: int) -> int:
        if amount <= 0:
            raise ValueError("Credit amount must be positive")
        try:
            balance = self._repo.credit(user_id, amount)
        except Exception as exc:
            logger.error("Failed to add tokens: user=%s amount=%d error=%s", user_id, amount, exc)
            raise TokenLedgerError("credit", "Failed to add tokens") from exc
        logger.info("Tokens credited: user=%s amount=%d balance=%d", user_id, amount, balance)
        return balance
