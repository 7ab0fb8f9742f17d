from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from chefscript.app.domain.errors import PaymentError
from chefscript.app.domain.models import TokenPackage
from chefscript.services.errors import ConfigurationError
from chefscript.services.http import error_message, new_async_client

logger = logging.getLogger(__name__)

PAYPAL_API_URL = "https://api-m.sandbox.paypal.com"
CURRENCY = "USD"


class PayPalClient:
    """Minimal Orders v2 client: create an order for a package and capture it."""

    def __init__(
        self,
        client_id: Optional[str],
        client_secret: Optional[str],
        api_url: str = PAYPAL_API_URL,
        http: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.api_url = api_url.rstrip("/")
        self._http = http

    async def _call(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        if not self.client_id or not self.client_secret:
            raise ConfigurationError("PayPal API key is not configured")

        http = self._http or new_async_client()
        try:
            token_response = await http.post(
                f"{self.api_url}/v1/oauth2/token",
                auth=(self.client_id, self.client_secret),
                data={"grant_type": "client_credentials"},
            )
            if token_response.is_error:
                logger.error("paypal.auth_failed status=%s", token_response.status_code)
                raise PaymentError("There was an error with PayPal. Please try again.")
            access_token = token_response.json().get("access_token")

            response = await http.request(
                method,
                f"{self.api_url}{path}",
                headers={"Authorization": f"Bearer {access_token}", "Content-Type": "application/json"},
                **kwargs,
            )
        except httpx.HTTPError as exc:
            logger.error("paypal.request_failed path=%s error=%s", path, exc)
            raise PaymentError("There was an error with PayPal. Please try again.") from exc
        finally:
            if self._http is None:
                await http.aclose()

        if response.is_error:
            message = error_message(response)
            logger.error("paypal.request_failed path=%s status=%s message=%s", path, response.status_code, message)
            raise PaymentError(f"PayPal request failed: {message}")
        return response.json()

    async def create_order(self, package: TokenPackage, custom_id: str) -> dict[str, Any]:
        return await self._call(
            "POST",
            "/v2/checkout/orders",
            json={
                "intent": "CAPTURE",
                "purchase_units": [
                    {
                        "amount": {"currency_code": CURRENCY, "value": str(package.price)},
                        "description": f"{package.tokens} Tokens Package",
                        "custom_id": custom_id,
                    }
                ],
            },
        )

    async def capture_order(self, order_id: str) -> dict[str, Any]:
        return await self._call("POST", f"/v2/checkout/orders/{order_id}/capture", json={})
