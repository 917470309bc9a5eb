"""Shared FastAPI dependencies and the {message, data} response helper."""

from datetime import date
from typing import Any, Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from canteen.database import get_db
from canteen.exceptions import NotFound, ValidationError
from canteen.models import User
from canteen.schemas import parse_date
from canteen.services.chat import WebhookDispatcher, get_webhook_dispatcher
from canteen.services.orders import OrderService, get_order_service


def ok(message: str, data: Any = None) -> dict[str, Any]:
    return {"message": message, "data": data}


def current_user_id(x_user_id: Optional[int] = Header(default=None, alias="X-User-Id")) -> int:
    """Caller identity; authentication itself happens upstream of this service."""
    if x_user_id is None:
        raise ValidationError("X-User-Id header is required.")
    return x_user_id


async def current_user(
    user_id: int = Depends(current_user_id),
    db: AsyncSession = Depends(get_db),
) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFound("User not found.")
    return user


def order_service() -> OrderService:
    return get_order_service()


def webhook_dispatcher() -> WebhookDispatcher:
    return get_webhook_dispatcher()


def query_date(value: Optional[str]) -> Optional[date]:
    """Parse an optional DD-MM-YYYY / ISO query parameter."""
    if not value:
        return None
    try:
        parsed = parse_date(value)
        return parsed if isinstance(parsed, date) else date.fromisoformat(parsed)
    except ValueError:
        raise ValidationError("Invalid date format. Use DD-MM-YYYY format.")
