"""
Order QR Codes

The QR payload is a URL to the order ({BASE_URL}/api/order/{id}); canteen
staff scan it at the counter. Stored on the order as a PNG data URL and
written to disk as a PNG file when it has to be sent over WhatsApp.
"""

import base64
import io
import logging
import time
from pathlib import Path
from typing import Optional

import qrcode
from qrcode.constants import ERROR_CORRECT_H

from canteen.core.config import get_settings

logger = logging.getLogger(__name__)


def order_qr_payload(order_id: int, base_url: Optional[str] = None) -> str:
    base_url = (base_url or get_settings().app_base_url).rstrip("/")
    return f"{base_url}/api/order/{order_id}"


def _render(data: str):
    qr = qrcode.QRCode(
        error_correction=ERROR_CORRECT_H,
        box_size=10,
        border=1,
    )
    qr.add_data(data)
    qr.make(fit=True)
    return qr.make_image(fill_color="black", back_color="white")


def qr_data_url(data: str) -> str:
    """Render `data` as a base64 PNG data URL."""
    buffer = io.BytesIO()
    _render(data).save(buffer)
    encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
    return f"data:image/png;base64,{encoded}"


def write_order_qr_file(
    order_id: int,
    order_no: str,
    output_dir: Optional[str] = None,
) -> Path:
    """Write the order QR code to <qr_output_dir>/order_<no>_<ms>.png and return the path."""
    directory = Path(output_dir or get_settings().qr_output_dir)
    directory.mkdir(parents=True, exist_ok=True)

    path = directory / f"order_{order_no}_{int(time.time() * 1000)}.png"
    with path.open("wb") as fh:
        _render(order_qr_payload(order_id)).save(fh)

    logger.debug(f"QR code written for order {order_no}: {path}")
    return path
