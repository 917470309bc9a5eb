"""
Mock Messaging Service

Simulates WhatsApp sends for development.
No actual messages are sent - they are logged and kept in `sent`
so the simulator and tests can inspect outbound traffic.

Version: 1.0.0
"""

import asyncio
import random
import uuid
import logging
from typing import Optional

from canteen.services.messaging.base import (
    BaseMessagingService,
    MessageResult,
    MediaUploadResult,
)

logger = logging.getLogger(__name__)


class MockMessagingService(BaseMessagingService):
    """Mock WhatsApp service for development."""

    def __init__(self, failure_rate: float = 0.0, latency: float = 0.0):
        self.failure_rate = failure_rate
        self.latency = latency
        self.sent: list[dict] = []
        logger.info(f"MockMessagingService initialized (failure_rate={failure_rate:.0%})")

    @property
    def provider_name(self) -> str:
        return "mock"

    async def _simulate_latency(self) -> None:
        if self.latency > 0:
            await asyncio.sleep(random.uniform(0, self.latency))

    def _should_fail(self) -> bool:
        return random.random() < self.failure_rate

    async def send_text(
        self,
        to: str,
        text: str,
        from_number: Optional[str] = None,
    ) -> MessageResult:
        await self._simulate_latency()

        if self._should_fail():
            logger.warning(f"Mock WhatsApp text failed (simulated) to {to}")
            return MessageResult(success=False, error_message="Simulated send failure", provider="mock")

        message_id = f"wa_mock_{uuid.uuid4().hex[:12]}"
        self.sent.append({"type": "text", "to": to, "from": from_number, "text": text, "id": message_id})
        logger.info(f"Mock WhatsApp to {to}: {text[:50]}... (ID: {message_id})")

        return MessageResult(success=True, message_id=message_id, provider="mock")

    async def upload_media(
        self,
        file_path: str,
        from_number: Optional[str] = None,
    ) -> MediaUploadResult:
        await self._simulate_latency()

        if self._should_fail():
            return MediaUploadResult(success=False, error_message="Simulated upload failure")

        media_id = f"media_mock_{uuid.uuid4().hex[:12]}"
        logger.info(f"Mock media uploaded: {file_path} (ID: {media_id})")
        return MediaUploadResult(success=True, media_id=media_id)

    async def send_template(
        self,
        to: str,
        template_id: str,
        variables: list[str],
        media_id: Optional[str] = None,
        from_number: Optional[str] = None,
    ) -> MessageResult:
        await self._simulate_latency()

        if self._should_fail():
            return MessageResult(success=False, error_message="Simulated send failure", provider="mock")

        message_id = f"wa_tpl_mock_{uuid.uuid4().hex[:12]}"
        self.sent.append({
            "type": "template",
            "to": to,
            "from": from_number,
            "template_id": template_id,
            "variables": variables,
            "media_id": media_id,
            "id": message_id,
        })
        logger.info(f"Mock WhatsApp template {template_id} to {to} (ID: {message_id})")

        return MessageResult(success=True, message_id=message_id, provider="mock")

    async def health_check(self) -> bool:
        return True
