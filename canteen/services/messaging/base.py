"""
Messaging Service Abstract Base Class

Defines the interface for outbound WhatsApp messages: session text
replies, media upload and template messages with attachments.
Supports both Mock (development) and Airtel (production) implementations.

Version: 1.0.0
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass
class MessageResult:
    """Result from sending a message."""
    success: bool
    message_id: Optional[str] = None
    error_message: Optional[str] = None
    provider: str = "unknown"


@dataclass
class MediaUploadResult:
    """Result from uploading media; media_id is attached to later messages."""
    success: bool
    media_id: Optional[str] = None
    error_message: Optional[str] = None


class BaseMessagingService(ABC):
    """Abstract base class for WhatsApp messaging services."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name."""
        pass

    @abstractmethod
    async def send_text(
        self,
        to: str,
        text: str,
        from_number: Optional[str] = None,
    ) -> MessageResult:
        """Send a free-form session text message."""
        pass

    @abstractmethod
    async def upload_media(
        self,
        file_path: str,
        from_number: Optional[str] = None,
    ) -> MediaUploadResult:
        """Upload an image for use as a template attachment."""
        pass

    @abstractmethod
    async def send_template(
        self,
        to: str,
        template_id: str,
        variables: list[str],
        media_id: Optional[str] = None,
        from_number: Optional[str] = None,
    ) -> MessageResult:
        """Send a pre-approved template message."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        pass

    async def send_order_qr(
        self,
        to: str,
        template_id: str,
        customer_name: str,
        qr_file_path: str,
        from_number: Optional[str] = None,
    ) -> MessageResult:
        """
        Upload the order QR image and send it with the order template.

        Media has to be uploaded first; the template only references the
        returned media id.
        """
        upload = await self.upload_media(qr_file_path, from_number=from_number)
        if not upload.success:
            return MessageResult(
                success=False,
                error_message=upload.error_message or "Media upload failed",
                provider=self.provider_name,
            )

        return await self.send_template(
            to=to,
            template_id=template_id,
            variables=[customer_name],
            media_id=upload.media_id,
            from_number=from_number,
        )

    async def aclose(self) -> None:
        return None
