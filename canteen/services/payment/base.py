"""
Payment Gateway Abstract Base Class

Defines the interface contract for all payment gateway implementations.
Both MockPaymentGateway and CashfreePaymentGateway implement these methods,
so the order orchestrator behaves identically whichever one is active.

Gateway calls never raise for provider-side failures: they return a
result object with success=False and let the caller decide whether the
failure matters. They are only ever invoked after the database
transaction that created the payment row has committed.

Version: 1.0.0
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional


# Cashfree link_status values
LINK_ACTIVE = "ACTIVE"
LINK_PAID = "PAID"
LINK_EXPIRED = "EXPIRED"
LINK_CANCELLED = "CANCELLED"


@dataclass
class PaymentLinkResult:
    """
    Standardized result from creating or fetching a payment link.

    Attributes:
        success: Whether the gateway call succeeded
        link_id: Merchant-side link id (<prefix>_link_<paymentId>)
        link_url: URL the customer opens to pay
        link_status: ACTIVE / PAID / EXPIRED / CANCELLED
        amount: Link amount
        amount_paid: Amount collected so far
        currency: Currency code
        error_message: Error description if the call failed
        error_code: Machine-readable error code
        response_time_ms: Time taken by the gateway
    """
    success: bool
    link_id: Optional[str] = None
    link_url: Optional[str] = None
    link_status: Optional[str] = None
    amount: Optional[Decimal] = None
    amount_paid: Optional[Decimal] = None
    currency: str = "INR"
    error_message: Optional[str] = None
    error_code: Optional[str] = None
    response_time_ms: float = 0.0

    @property
    def is_paid(self) -> bool:
        return self.success and self.link_status == LINK_PAID


@dataclass
class GatewayOrderResult:
    """Result from creating a gateway-side order for SDK checkout."""
    success: bool
    order_id: Optional[str] = None
    cf_order_id: Optional[str] = None
    payment_session_id: Optional[str] = None
    order_status: Optional[str] = None
    error_message: Optional[str] = None
    raw: Optional[dict] = None


class BasePaymentGateway(ABC):
    """
    Abstract base class for payment gateways.

    Example:
        >>> gateway = get_payment_gateway()  # Mock or Cashfree
        >>> result = await gateway.create_payment_link(
        ...     link_id="canteen_link_42",
        ...     amount=Decimal("130.00"),
        ...     customer_name="Guest User",
        ...     customer_phone="9876543210",
        ... )
        >>> if result.success:
        ...     print(result.link_url)
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the gateway name (e.g. "mock", "cashfree")."""
        pass

    @abstractmethod
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
        """
        Create a hosted payment link.

        Args:
            link_id: Merchant-side unique link id
            amount: Amount to collect in rupees
            customer_name: Name shown on the checkout page
            customer_phone: 10-digit phone number
            customer_email: Optional email for receipts
            currency: Three-letter currency code
            purpose: Free-text purpose shown to the customer
        """
        pass

    @abstractmethod
    async def get_payment_link(self, link_id: str) -> PaymentLinkResult:
        """Fetch the current state of a payment link."""
        pass

    @abstractmethod
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
        """Create a gateway order used by the mobile checkout SDK."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Verify connectivity to the gateway."""
        pass

    async def aclose(self) -> None:
        """Release any network resources held by the gateway."""
        return None
