"""
Cashfree Payment Gateway Implementation

Production implementation over the Cashfree PG REST API (payment links
and orders). Used when ENV_MODE=production or ENV_MODE=staging.

Requirements:
    - CASHFREE_APP_ID and CASHFREE_SECRET_KEY must be set in environment
    - CASHFREE_BASE_URL selects sandbox vs production

Security Notes:
    - Never log the client secret
    - Provider error bodies are logged, never returned to API clients

Version: 1.0.0
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

import httpx

from canteen.core.config import get_settings
from canteen.services.payment.base import (
    BasePaymentGateway,
    PaymentLinkResult,
    GatewayOrderResult,
)

logger = logging.getLogger(__name__)


class CashfreePaymentGateway(BasePaymentGateway):
    """
    Production Cashfree payment gateway.

    Configuration:
        Requires CASHFREE_APP_ID / CASHFREE_SECRET_KEY.
        An httpx transport can be injected for testing.

    Example:
        >>> gateway = CashfreePaymentGateway()
        >>> result = await gateway.create_payment_link(
        ...     link_id="canteen_link_42",
        ...     amount=Decimal("130"),
        ...     customer_name="Guest User",
        ...     customer_phone="9876543210",
        ... )
    """

    def __init__(
        self,
        app_id: Optional[str] = None,
        secret_key: Optional[str] = None,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the HTTP client from settings.

        Raises:
            ValueError: If gateway credentials are not configured
        """
        settings = get_settings()

        app_id = app_id or settings.cashfree_app_id
        secret_key = secret_key or settings.cashfree_secret_key
        if not app_id or not secret_key:
            raise ValueError(
                "CASHFREE_APP_ID and CASHFREE_SECRET_KEY are required for "
                "production mode. Set them in your .env file or environment variables."
            )

        self._app_base_url = settings.app_base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=(base_url or settings.cashfree_base_url).rstrip("/"),
            headers={
                "x-client-id": app_id,
                "x-client-secret": secret_key,
                "x-api-version": settings.cashfree_api_version,
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
            timeout=settings.cashfree_timeout,
            transport=transport,
        )

        logger.info(
            f"CashfreePaymentGateway initialized "
            f"(base_url={self._client.base_url}, api_version={settings.cashfree_api_version})"
        )

    @property
    def provider_name(self) -> str:
        return "cashfree"

    @property
    def callback_url(self) -> str:
        return f"{self._app_base_url}/api/order/cashfreecallback"

    async def _request(
        self,
        method: str,
        path: str,
        payload: Optional[dict] = None,
    ) -> tuple[Optional[dict[str, Any]], Optional[str], Optional[str], float]:
        """
        Issue a request and normalise failures.

        Returns:
            (body, error_message, error_code, elapsed_ms)
        """
        start_time = datetime.now()
        try:
            response = await self._client.request(method, path, json=payload)
            elapsed_ms = (datetime.now() - start_time).total_seconds() * 1000
            response.raise_for_status()
            return response.json(), None, None, elapsed_ms

        except httpx.HTTPStatusError as e:
            elapsed_ms = (datetime.now() - start_time).total_seconds() * 1000
            body_text = e.response.text
            logger.error(
                f"Cashfree: {method} {path} failed "
                f"({e.response.status_code}) - {body_text}"
            )
            try:
                body = e.response.json()
            except ValueError:
                body = {}
            return (
                None,
                body.get("message") or f"Gateway returned {e.response.status_code}",
                body.get("code") or body.get("type") or "api_error",
                elapsed_ms,
            )

        except httpx.RequestError as e:
            elapsed_ms = (datetime.now() - start_time).total_seconds() * 1000
            logger.error(f"Cashfree: connection error on {method} {path} - {e}")
            return None, "Unable to reach payment gateway", "connection_error", elapsed_ms

    async def create_payment_link(
        self,
        link_id: str,
        amount: Decimal,
        customer_name: str,
        customer_phone: str,
        customer_email: Optional[str] = None,
        currency: str = "INR",
        purpose: Optional[str] = None,
    ) -> PaymentLinkResult:
        logger.info(f"Cashfree: Creating payment link {link_id} for ₹{amount}")

        if amount <= 0:
            return PaymentLinkResult(
                success=False,
                link_id=link_id,
                error_message="Amount must be greater than 0",
                error_code="invalid_amount",
            )

        customer_details = {
            "customer_name": customer_name,
            "customer_phone": customer_phone,
        }
        if customer_email:
            customer_details["customer_email"] = customer_email

        payload = {
            "link_id": link_id,
            "link_amount": float(amount),
            "link_currency": currency,
            "link_purpose": purpose or "Canteen order payment",
            "customer_details": customer_details,
            "link_notify": {"send_sms": False, "send_email": False},
            "link_meta": {
                "return_url": self.callback_url,
                "notify_url": self.callback_url,
                "payment_methods": "upi",
            },
        }

        body, error_message, error_code, elapsed_ms = await self._request("POST", "/links", payload)
        if body is None:
            return PaymentLinkResult(
                success=False,
                link_id=link_id,
                error_message=error_message,
                error_code=error_code,
                response_time_ms=elapsed_ms,
            )

        logger.info(f"Cashfree: Payment link created - {body.get('link_id')} - status={body.get('link_status')}")
        return self._link_result(body, elapsed_ms)

    async def get_payment_link(self, link_id: str) -> PaymentLinkResult:
        body, error_message, error_code, elapsed_ms = await self._request("GET", f"/links/{link_id}")
        if body is None:
            return PaymentLinkResult(
                success=False,
                link_id=link_id,
                error_message=error_message,
                error_code=error_code,
                response_time_ms=elapsed_ms,
            )
        return self._link_result(body, elapsed_ms)

    def _link_result(self, body: dict[str, Any], elapsed_ms: float) -> PaymentLinkResult:
        amount = body.get("link_amount")
        amount_paid = body.get("link_amount_paid")
        return PaymentLinkResult(
            success=True,
            link_id=body.get("link_id"),
            link_url=body.get("link_url"),
            link_status=body.get("link_status"),
            amount=Decimal(str(amount)) if amount is not None else None,
            amount_paid=Decimal(str(amount_paid)) if amount_paid is not None else None,
            currency=body.get("link_currency", "INR"),
            response_time_ms=elapsed_ms,
        )

    async def create_order(
        self,
        amount: Decimal,
        customer_id: str,
        customer_phone: str,
        customer_email: str,
        customer_name: str = "Canteen Customer",
        currency: str = "INR",
        return_url: Optional[str] = None,
        note: Optional[str] = None,
    ) -> GatewayOrderResult:
        payload: dict[str, Any] = {
            "order_amount": float(amount),
            "order_currency": currency,
            "customer_details": {
                "customer_id": customer_id,
                "customer_name": customer_name,
                "customer_email": customer_email,
                "customer_phone": customer_phone,
            },
        }
        if return_url:
            payload["order_meta"] = {"return_url": f"{return_url}?order_id={customer_id}"}
        if note:
            payload["order_note"] = note

        body, error_message, _, _ = await self._request("POST", "/orders", payload)
        if body is None:
            return GatewayOrderResult(success=False, error_message=error_message)

        return GatewayOrderResult(
            success=True,
            order_id=body.get("order_id"),
            cf_order_id=str(body.get("cf_order_id")) if body.get("cf_order_id") else None,
            payment_session_id=body.get("payment_session_id"),
            order_status=body.get("order_status"),
            raw=body,
        )

    async def health_check(self) -> bool:
        """Cashfree has no ping endpoint; an authenticated 404 proves reachability and credentials."""
        try:
            response = await self._client.get("/links/__health_check__")
            return response.status_code in (200, 404)
        except httpx.RequestError as e:
            logger.error(f"Cashfree health check failed: {e}")
            return False

    async def aclose(self) -> None:
        await self._client.aclose()
