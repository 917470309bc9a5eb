"""
Mock Payment Gateway Implementation

Simulates Cashfree payment links and orders without making real API calls.
Used in development mode (ENV_MODE=development) to:
    - Walk through the WhatsApp ordering flow locally
    - Exercise payment-link status sync without a sandbox account

Behavior:
    - Optional simulated latency and failure rate
    - Links start ACTIVE; mark_paid() flips them to PAID
    - Generates Cashfree-like ids (cf_link_xxx, order_xxx)

Version: 1.0.0
"""

import asyncio
import random
import uuid
import logging
from decimal import Decimal
from typing import Optional

from canteen.services.payment.base import (
    BasePaymentGateway,
    PaymentLinkResult,
    GatewayOrderResult,
    LINK_ACTIVE,
    LINK_PAID,
)

logger = logging.getLogger(__name__)


class MockPaymentGateway(BasePaymentGateway):
    """
    Mock implementation of the payment gateway.

    Attributes:
        failure_rate: Probability of a simulated gateway failure (0.0-1.0)
        min_latency: Minimum simulated response time in seconds
        max_latency: Maximum simulated response time in seconds

    Example:
        >>> gateway = MockPaymentGateway(failure_rate=0.0)
        >>> result = await gateway.create_payment_link("x_link_1", Decimal("50"), "A", "9999999999")
        >>> gateway.mark_paid("x_link_1")
    """

    def __init__(
        self,
        failure_rate: float = 0.0,
        min_latency: float = 0.0,
        max_latency: float = 0.0,
        base_url: str = "https://payments.mock.local",
    ):
        self.failure_rate = failure_rate
        self.min_latency = min_latency
        self.max_latency = max_latency
        self.base_url = base_url.rstrip("/")
        self.links: dict[str, PaymentLinkResult] = {}
        self.orders: dict[str, GatewayOrderResult] = {}

        logger.info(
            f"MockPaymentGateway initialized "
            f"(failure_rate={failure_rate:.0%}, "
            f"latency={min_latency}-{max_latency}s)"
        )

    @property
    def provider_name(self) -> str:
        return "mock"

    async def _simulate_latency(self) -> float:
        latency = random.uniform(self.min_latency, self.max_latency)
        if latency > 0:
            await asyncio.sleep(latency)
        return latency * 1000

    def _should_fail(self) -> bool:
        return random.random() < self.failure_rate

    def mark_paid(self, link_id: str) -> None:
        """Simulate the customer completing payment on a link."""
        link = self.links[link_id]
        link.link_status = LINK_PAID
        link.amount_paid = link.amount
        logger.info(f"Mock: Link {link_id} marked as paid")

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
        latency_ms = await self._simulate_latency()

        if amount <= 0:
            return PaymentLinkResult(
                success=False,
                link_id=link_id,
                error_message="link_amount must be greater than 0",
                error_code="link_post_failed",
                response_time_ms=latency_ms,
            )

        if self._should_fail():
            logger.debug(f"Mock: Payment link {link_id} failed")
            return PaymentLinkResult(
                success=False,
                link_id=link_id,
                error_message="Simulated gateway failure",
                error_code="api_error",
                response_time_ms=latency_ms,
            )

        result = PaymentLinkResult(
            success=True,
            link_id=link_id,
            link_url=f"{self.base_url}/links/{uuid.uuid4().hex[:12]}",
            link_status=LINK_ACTIVE,
            amount=Decimal(amount),
            amount_paid=Decimal("0"),
            currency=currency,
            response_time_ms=latency_ms,
        )
        self.links[link_id] = result

        logger.info(f"Mock: Payment link created - {link_id} - ₹{amount}")
        return result

    async def get_payment_link(self, link_id: str) -> PaymentLinkResult:
        latency_ms = await self._simulate_latency()

        link = self.links.get(link_id)
        if link is None:
            return PaymentLinkResult(
                success=False,
                link_id=link_id,
                error_message="link does not exist",
                error_code="link_not_found",
                response_time_ms=latency_ms,
            )
        return link

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
        await self._simulate_latency()

        if self._should_fail():
            return GatewayOrderResult(
                success=False,
                error_message="Simulated gateway failure",
            )

        order_id = f"order_{uuid.uuid4().hex[:16]}"
        result = GatewayOrderResult(
            success=True,
            order_id=order_id,
            cf_order_id=str(random.randint(10**9, 10**10)),
            payment_session_id=f"session_mock_{uuid.uuid4().hex}",
            order_status="ACTIVE",
            raw={
                "order_id": order_id,
                "order_amount": float(amount),
                "order_currency": currency,
                "customer_details": {
                    "customer_id": customer_id,
                    "customer_phone": customer_phone,
                    "customer_email": customer_email,
                    "customer_name": customer_name,
                },
            },
        )
        self.orders[order_id] = result
        return result

    async def health_check(self) -> bool:
        logger.debug("Mock: Health check passed")
        return True
