"""Phone number helpers for WhatsApp addresses (91XXXXXXXXXX) vs stored mobiles."""

import re

COUNTRY_CODE = "91"


def normalize_mobile(raw: str) -> str:
    """Strip formatting and a leading India country code: '+91 98765-43210' -> '9876543210'."""
    digits = re.sub(r"\D", "", raw or "")
    if digits.startswith(COUNTRY_CODE) and len(digits) > 10:
        digits = digits[len(COUNTRY_CODE):]
    return digits


def whatsapp_address(mobile: str) -> str:
    digits = normalize_mobile(mobile)
    return f"{COUNTRY_CODE}{digits}"
