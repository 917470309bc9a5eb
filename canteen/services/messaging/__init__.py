"""
Messaging Service Factory

Returns MockMessagingService in development, AirtelWhatsAppService otherwise.
"""

import logging
from functools import lru_cache

from canteen.core.config import get_settings
from canteen.services.messaging.base import (
    BaseMessagingService,
    MessageResult,
    MediaUploadResult,
)
from canteen.services.messaging.mock import MockMessagingService
from canteen.services.messaging.airtel import AirtelWhatsAppService

logger = logging.getLogger(__name__)


def create_messaging_service() -> BaseMessagingService:
    """
    Build a fresh messaging service.

    Worker tasks run each delivery in their own event loop and must not
    share the API process's cached HTTP client.
    """
    settings = get_settings()

    if settings.is_development:
        logger.info("Messaging Service: Using MockMessagingService (development mode)")
        return MockMessagingService()

    logger.info(f"Messaging Service: Using AirtelWhatsAppService ({settings.env_mode.value} mode)")
    return AirtelWhatsAppService()


@lru_cache()
def get_messaging_service() -> BaseMessagingService:
    """Get the configured messaging service (cached)."""
    return create_messaging_service()


def reset_messaging_service() -> None:
    """Clear the cached messaging service instance."""
    get_messaging_service.cache_clear()


__all__ = [
    "create_messaging_service",
    "get_messaging_service",
    "reset_messaging_service",
    "BaseMessagingService",
    "MessageResult",
    "MediaUploadResult",
    "MockMessagingService",
    "AirtelWhatsAppService",
]
