"""
Web Cart Service

One active cart per user, bound to a (canteen, menu configuration, order
date). Adding an item for a different binding replaces the old cart.
Quantities are checked against the menu item's min/max.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy import select, delete, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from canteen.exceptions import NotFound, ValidationError
from canteen.models import Cart, CartItem, CartStatus, Menu, MenuItem, RecordStatus

logger = logging.getLogger(__name__)


async def _active_cart(db: AsyncSession, user_id: int, with_items: bool = False) -> Optional[Cart]:
    query = (
        select(Cart)
        .where(Cart.user_id == user_id, Cart.status == CartStatus.ACTIVE)
        .order_by(Cart.id.desc())
        .limit(1)
    )
    if with_items:
        query = query.options(
            selectinload(Cart.cart_items).selectinload(CartItem.item)
        ).execution_options(populate_existing=True)
    return (await db.execute(query)).scalar_one_or_none()


async def _drop_cart(db: AsyncSession, cart_id: int) -> None:
    await db.execute(delete(CartItem).where(CartItem.cart_id == cart_id))
    await db.execute(delete(Cart).where(Cart.id == cart_id))


async def _refresh_total(db: AsyncSession, cart: Cart) -> None:
    await db.flush()
    total = await db.execute(
        select(func.coalesce(func.sum(CartItem.total), 0)).where(CartItem.cart_id == cart.id)
    )
    cart.total_amount = Decimal(str(total.scalar_one()))


def _check_quantity(menu_item: MenuItem, quantity: int) -> None:
    if quantity < menu_item.min_quantity or quantity > menu_item.max_quantity:
        raise ValidationError(
            f"Quantity must be between {menu_item.min_quantity} and {menu_item.max_quantity}."
        )


async def _menu_item_for(db: AsyncSession, menu_id: int, item_id: int) -> MenuItem:
    result = await db.execute(
        select(MenuItem)
        .where(
            MenuItem.menu_id == menu_id,
            MenuItem.item_id == item_id,
            MenuItem.status == RecordStatus.ACTIVE,
        )
        .options(selectinload(MenuItem.item))
    )
    menu_item = result.scalar_one_or_none()
    if menu_item is None or menu_item.item.status != RecordStatus.ACTIVE:
        raise ValidationError("Item is not available on this menu.")
    return menu_item


async def get_cart(db: AsyncSession, user_id: int) -> Optional[Cart]:
    return await _active_cart(db, user_id, with_items=True)


async def add_to_cart(
    db: AsyncSession,
    user_id: int,
    menu_id: int,
    item_id: int,
    quantity: int,
    order_date: date,
) -> Cart:
    """
    Add `quantity` of an item from a menu to the user's cart.

    The cart binding comes from the menu (canteen + configuration) and the
    order date; an active cart bound elsewhere is discarded first.
    """
    if quantity < 1:
        raise ValidationError("Quantity must be at least 1.")

    menu = await db.get(Menu, menu_id)
    if menu is None or menu.status != RecordStatus.ACTIVE:
        raise NotFound("Menu not found.")
    if not (menu.start_date <= order_date <= menu.end_date):
        raise ValidationError("Menu is not served on the selected date.")

    menu_item = await _menu_item_for(db, menu_id, item_id)

    try:
        cart = await _active_cart(db, user_id)
        if cart is not None and (
            cart.canteen_id != menu.canteen_id
            or cart.menu_configuration_id != menu.menu_configuration_id
            or cart.order_date != order_date
        ):
            logger.info(f"Replacing cart #{cart.id} of user {user_id} (different canteen/menu/date)")
            await _drop_cart(db, cart.id)
            cart = None

        if cart is None:
            cart = Cart(
                user_id=user_id,
                canteen_id=menu.canteen_id,
                menu_configuration_id=menu.menu_configuration_id,
                menu_id=menu.id,
                order_date=order_date,
                total_amount=Decimal("0"),
            )
            db.add(cart)
            await db.flush()

        line = (await db.execute(
            select(CartItem).where(CartItem.cart_id == cart.id, CartItem.item_id == item_id)
        )).scalar_one_or_none()

        new_quantity = quantity + (line.quantity if line else 0)
        _check_quantity(menu_item, new_quantity)
        price = Decimal(str(menu_item.item.price))

        if line is None:
            line = CartItem(cart_id=cart.id, item_id=item_id)
            db.add(line)
        line.quantity = new_quantity
        line.price = price
        line.total = price * new_quantity

        await _refresh_total(db, cart)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    return await _active_cart(db, user_id, with_items=True)


async def update_cart_item(db: AsyncSession, user_id: int, cart_item_id: int, quantity: int) -> Optional[Cart]:
    """Set a line's quantity; 0 removes the line."""
    if quantity == 0:
        return await remove_cart_item(db, user_id, cart_item_id)
    if quantity < 0:
        raise ValidationError("Quantity must not be negative.")

    cart = await _active_cart(db, user_id)
    line = await db.get(CartItem, cart_item_id)
    if cart is None or line is None or line.cart_id != cart.id:
        raise NotFound("Cart item not found.")

    if cart.menu_id is not None:
        _check_quantity(await _menu_item_for(db, cart.menu_id, line.item_id), quantity)

    try:
        line.quantity = quantity
        line.total = Decimal(str(line.price)) * quantity
        await _refresh_total(db, cart)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    return await _active_cart(db, user_id, with_items=True)


async def remove_cart_item(db: AsyncSession, user_id: int, cart_item_id: int) -> Optional[Cart]:
    """Remove one line; a cart left without lines is deleted."""
    cart = await _active_cart(db, user_id)
    line = await db.get(CartItem, cart_item_id)
    if cart is None or line is None or line.cart_id != cart.id:
        raise NotFound("Cart item not found.")

    try:
        await db.execute(delete(CartItem).where(CartItem.id == cart_item_id))
        remaining = (await db.execute(
            select(func.count(CartItem.id)).where(CartItem.cart_id == cart.id)
        )).scalar()
        if remaining:
            await _refresh_total(db, cart)
        else:
            await db.execute(delete(Cart).where(Cart.id == cart.id))
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    return await _active_cart(db, user_id, with_items=True)


async def clear_cart(db: AsyncSession, user_id: int) -> None:
    cart = await _active_cart(db, user_id)
    if cart is None:
        raise NotFound("Cart not found.")
    try:
        await _drop_cart(db, cart.id)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    logger.info(f"Cart #{cart.id} cleared for user {user_id}")
