# chefscript/app/services/token_purchase.py
"""
Token purchase flow: a PayPal order per package, tokens credited on capture.
"""
from __future__ import annotations

import logging
from typing import Any

from starlette.concurrency import run_in_threadpool

from chefscript.app.domain.errors import PaymentError
from chefscript.app.domain.models import TokenPackage
from chefscript.app.domain.pricing import find_package
from chefscript.app.services.token_ledger import TokenLedger
from chefscript.services.errors import InvalidInputError
from chefscript.services.paypal import PayPalClient

logger = logging.getLogger(__name__)

COMPLETED = "COMPLETED"


def _custom_id(user_id: str, tokens: int) -> str:
    return f"{user_id}:{tokens}"


def _captured_custom_id(order: dict[str, Any]) -> str | None:
    for unit in order.get("purchase_units") or []:
        if unit.get("custom_id"):
            return str(unit["custom_id"])
        for capture in (unit.get("payments") or {}).get("captures") or []:
            if capture.get("custom_id"):
                return str(capture["custom_id"])
    return None


class TokenPurchaseService:
    def __init__(self, paypal: PayPalClient, ledger: TokenLedger):
        self._paypal = paypal
        self._ledger = ledger

    async def create_order(self, user_id: str, tokens: int) -> tuple[str, TokenPackage]:
        package = find_package(tokens)
        if package is None:
            raise InvalidInputError(f"Unknown token package: {tokens}")
        order = await self._paypal.create_order(package, _custom_id(user_id, package.tokens))
        order_id = order.get("id")
        if not order_id:
            raise PaymentError("PayPal did not return an order id")
        logger.info("Order created: user=%s order=%s tokens=%d", user_id, order_id, package.tokens)
        return str(order_id), package

    async def capture(self, user_id: str, order_id: str) -> tuple[TokenPackage, int]:
        """
        Capture an approved order and credit its package.

        Raises:
            PaymentError: If the capture is not COMPLETED or the order
                belongs to someone else
        """
        order = await self._paypal.capture_order(order_id)
        if order.get("status") != COMPLETED:
            raise PaymentError("Failed to process payment. Please try again.", order_id=order_id)

        owner, _, tokens = (_captured_custom_id(order) or "").rpartition(":")
        if owner != user_id or not tokens.isdigit():
            raise PaymentError("Order does not belong to this account", order_id=order_id)
        package = find_package(int(tokens))
        if package is None:
            raise PaymentError("Order does not match a token package", order_id=order_id)

        balance = await run_in_threadpool(self._ledger.credit, user_id, package.tokens)
        logger.info("Order captured: user=%s order=%s tokens=%d", user_id, order_id, package.tokens)
        return package, balance
