"""
Airtel IQ WhatsApp Messaging Service

Production implementation over the Airtel IQ WhatsApp Business REST API:
- Session text replies (conversational ordering flow)
- Content-manager media upload for template attachments
- Template messages (order QR notification)

All endpoints use HTTP Basic auth.

Version: 1.0.0
"""

import logging
import mimetypes
import uuid
from pathlib import Path
from typing import Any, Optional

import httpx

from canteen.core.config import get_settings
from canteen.services.messaging.base import (
    BaseMessagingService,
    MessageResult,
    MediaUploadResult,
)

logger = logging.getLogger(__name__)


class AirtelWhatsAppService(BaseMessagingService):
    """Production WhatsApp service using Airtel IQ."""

    def __init__(
        self,
        username: Optional[str] = None,
        password: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()

        username = username or settings.airtel_username
        password = password or settings.airtel_password
        if not username or not password:
            raise ValueError(
                "AIRTEL_USERNAME and AIRTEL_PASSWORD are required for production mode."
            )

        self._default_from = settings.whatsapp_from_number
        self._customer_id = settings.airtel_customer_id
        self._media_url = settings.airtel_media_url
        self._client = httpx.AsyncClient(
            base_url=settings.airtel_base_url.rstrip("/"),
            auth=httpx.BasicAuth(username, password),
            timeout=settings.airtel_timeout,
            transport=transport,
        )

        logger.info("AirtelWhatsAppService initialized")

    @property
    def provider_name(self) -> str:
        return "airtel"

    async def _post(self, url: str, **kwargs: Any) -> tuple[Optional[dict], Optional[str]]:
        try:
            response = await self._client.post(url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(
                f"Airtel: POST {url} failed ({e.response.status_code}) - {e.response.text}"
            )
            return None, f"WhatsApp API returned {e.response.status_code}"
        except httpx.RequestError as e:
            logger.error(f"Airtel: connection error on POST {url} - {e}")
            return None, "Unable to reach WhatsApp API"

        if not response.content:
            return {}, None
        try:
            return response.json(), None
        except ValueError:
            return {}, None

    async def send_text(
        self,
        to: str,
        text: str,
        from_number: Optional[str] = None,
    ) -> MessageResult:
        payload = {
            "sessionId": str(uuid.uuid4()),
            "to": to,
            "from": from_number or self._default_from,
            "message": {"type": "text", "text": text},
        }

        body, error = await self._post("/session/send/text", json=payload)
        if body is None:
            return MessageResult(success=False, error_message=error, provider="airtel")

        message_id = body.get("messageRequestId") or body.get("id")
        logger.info(f"WhatsApp text sent to {to}: {message_id}")
        return MessageResult(success=True, message_id=message_id, provider="airtel")

    async def upload_media(
        self,
        file_path: str,
        from_number: Optional[str] = None,
    ) -> MediaUploadResult:
        path = Path(file_path)
        if not path.is_file():
            return MediaUploadResult(success=False, error_message=f"File not found: {file_path}")

        content_type = mimetypes.guess_type(path.name)[0] or "image/png"
        data = {
            "phoneNumber": from_number or self._default_from,
            "mediaType": "IMAGE",
            "messageType": "TEMPLATE_MESSAGE",
        }
        if self._customer_id:
            data["customerId"] = self._customer_id

        with path.open("rb") as fh:
            body, error = await self._post(
                self._media_url,
                data=data,
                files={"file": (path.name, fh, content_type)},
            )

        if body is None:
            return MediaUploadResult(success=False, error_message=error)

        media_id = body.get("id") or body.get("mediaId")
        if not media_id:
            logger.error(f"Airtel: media id missing from upload response - {body}")
            return MediaUploadResult(success=False, error_message="Media id not returned")

        return MediaUploadResult(success=True, media_id=str(media_id))

    async def send_template(
        self,
        to: str,
        template_id: str,
        variables: list[str],
        media_id: Optional[str] = None,
        from_number: Optional[str] = None,
    ) -> MessageResult:
        payload: dict[str, Any] = {
            "templateId": template_id,
            "to": to,
            "from": from_number or self._default_from,
            "message": {
                "headerVars": [],
                "variables": variables,
                "payload": [],
            },
        }
        if media_id:
            payload["mediaAttachment"] = {"type": "IMAGE", "id": media_id}

        body, error = await self._post("/template/send", json=payload)
        if body is None:
            return MessageResult(success=False, error_message=error, provider="airtel")

        message_id = body.get("messageRequestId") or body.get("id")
        logger.info(f"WhatsApp template {template_id} sent to {to}: {message_id}")
        return MessageResult(success=True, message_id=message_id, provider="airtel")

    async def health_check(self) -> bool:
        try:
            response = await self._client.get("/")
            return response.status_code < 500
        except httpx.RequestError as e:
            logger.error(f"Airtel health check failed: {e}")
            return False

    async def aclose(self) -> None:
        await self._client.aclose()
