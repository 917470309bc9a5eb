"""
Celery Tasks
Post-commit delivery work that must never block or roll back an order.
"""

import asyncio
import logging
import time
from pathlib import Path

from canteen.celery_worker import celery_app
from canteen.core.config import get_settings
from canteen.services.messaging import create_messaging_service
from canteen.services.phone import whatsapp_address
from canteen.services.qr import write_order_qr_file

logger = logging.getLogger(__name__)


async def _deliver_order_qr(mobile: str, customer_name: str, qr_path: Path):
    settings = get_settings()
    messaging = create_messaging_service()
    try:
        return await messaging.send_order_qr(
            to=whatsapp_address(mobile),
            template_id=settings.whatsapp_order_template_id,
            customer_name=customer_name,
            qr_file_path=str(qr_path),
            from_number=settings.whatsapp_from_number,
        )
    finally:
        await messaging.aclose()


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=5,
    autoretry_for=(Exception,),
    retry_backoff=True
)
def send_order_placed_notification(
    self,
    order_id: int,
    order_no: str,
    mobile: str,
    customer_name: str,
) -> dict:
    """
    Generate the order QR image and push it to the customer on WhatsApp.

    Runs in the Celery worker after the order has committed as placed.
    Failures are retried; they never affect the stored order.
    """
    task_id = self.request.id
    logger.info(f"📋 Task {task_id}: Sending QR for order {order_no}")
    start_time = time.time()

    qr_path = write_order_qr_file(order_id, order_no)
    try:
        result = asyncio.run(_deliver_order_qr(mobile, customer_name or "Customer", qr_path))
    finally:
        qr_path.unlink(missing_ok=True)

    elapsed = round(time.time() - start_time, 3)
    if not result.success:
        logger.warning(f"⚠️ Task {task_id}: Order {order_no} notification failed - {result.error_message}")
        raise RuntimeError(result.error_message or "WhatsApp delivery failed")

    logger.info(f"✅ Task {task_id}: Order {order_no} notified in {elapsed}s")
    return {
        "success": True,
        "order_id": order_id,
        "message_id": result.message_id,
        "task_id": task_id,
        "processing_time_seconds": elapsed,
    }
