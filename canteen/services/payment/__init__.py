"""
Payment Gateway Factory

Provides a single entry point for obtaining a payment gateway instance.

Usage:
    from canteen.services.payment import get_payment_gateway

    # Returns MockPaymentGateway or CashfreePaymentGateway based on ENV_MODE
    gateway = get_payment_gateway()

    result = await gateway.create_payment_link(...)

Environment Switching:
    - ENV_MODE=development → MockPaymentGateway (no API calls)
    - ENV_MODE=staging → CashfreePaymentGateway (sandbox keys)
    - ENV_MODE=production → CashfreePaymentGateway (live keys)

Version: 1.0.0
"""

import logging
from functools import lru_cache

from canteen.core.config import get_settings
from canteen.services.payment.base import (
    BasePaymentGateway,
    PaymentLinkResult,
    GatewayOrderResult,
    LINK_ACTIVE,
    LINK_PAID,
)
from canteen.services.payment.mock import MockPaymentGateway
from canteen.services.payment.cashfree import CashfreePaymentGateway

logger = logging.getLogger(__name__)


@lru_cache()
def get_payment_gateway() -> BasePaymentGateway:
    """
    Get the configured payment gateway instance.

    The instance is cached so that the underlying HTTP connection pool
    is shared across requests.

    Raises:
        ValueError: If production mode but Cashfree credentials are missing
    """
    settings = get_settings()

    if settings.is_development:
        logger.info("Payment Gateway: Using MockPaymentGateway (development mode)")
        return MockPaymentGateway(
            failure_rate=0.0,
            min_latency=0.1,
            max_latency=0.3,
        )

    logger.info(
        f"Payment Gateway: Using CashfreePaymentGateway "
        f"({settings.env_mode.value} mode)"
    )
    return CashfreePaymentGateway()


def reset_payment_gateway() -> None:
    """
    Clear the cached payment gateway instance.

    The next call to get_payment_gateway() will create a new instance.
    """
    get_payment_gateway.cache_clear()
    logger.debug("Payment gateway cache cleared")


__all__ = [
    "get_payment_gateway",
    "reset_payment_gateway",
    "BasePaymentGateway",
    "PaymentLinkResult",
    "GatewayOrderResult",
    "LINK_ACTIVE",
    "LINK_PAID",
    "MockPaymentGateway",
    "CashfreePaymentGateway",
]
