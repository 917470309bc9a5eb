"""
Catalog Service

Canteens, categories, items, menu configurations and menus, plus the two
read paths the WhatsApp flow depends on:

- menus_for_canteen(canteen_id, day): menus serving a canteen on a date
- menu_items_for_whatsapp(menu_id): the orderable items of one menu
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import select, delete, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from canteen.core.config import get_settings
from canteen.exceptions import Conflict, NotFound, ValidationError
from canteen.models import (
    Canteen,
    Category,
    Item,
    Menu,
    MenuConfiguration,
    MenuItem,
    RecordStatus,
    User,
)
from canteen.services.phone import normalize_mobile

logger = logging.getLogger(__name__)


@dataclass
class MenuItemSpec:
    item_id: int
    min_quantity: int = 1
    max_quantity: int = 10


def _apply(instance: Any, changes: dict[str, Any]) -> None:
    for name, value in changes.items():
        if value is not None:
            setattr(instance, name, value)


def today() -> date:
    return datetime.now(get_settings().tz).date()


async def _commit(db: AsyncSession) -> None:
    try:
        await db.commit()
    except Exception:
        await db.rollback()
        raise


# =============================================================================
# CANTEENS
# =============================================================================

async def create_canteen(
    db: AsyncSession,
    canteen_name: str,
    canteen_code: str,
    admin_mobile: Optional[str] = None,
    admin_first_name: Optional[str] = None,
    admin_last_name: Optional[str] = None,
    admin_email: Optional[str] = None,
) -> Canteen:
    """Create a canteen and, when a mobile is given, its admin user."""
    existing = await db.execute(select(Canteen.id).where(Canteen.canteen_code == canteen_code))
    if existing.scalar_one_or_none() is not None:
        raise Conflict(f"Canteen code {canteen_code} already exists.")

    try:
        canteen = Canteen(canteen_name=canteen_name, canteen_code=canteen_code)
        db.add(canteen)
        await db.flush()

        if admin_mobile:
            mobile = normalize_mobile(admin_mobile)
            user = (await db.execute(select(User).where(User.mobile == mobile))).scalar_one_or_none()
            if user is None:
                user = User(mobile=mobile)
                db.add(user)
            user.first_name = admin_first_name or user.first_name
            user.last_name = admin_last_name or user.last_name
            user.email = admin_email or user.email
            user.canteen_id = canteen.id

        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(f"Canteen created: {canteen.canteen_code} (#{canteen.id})")
    return canteen


async def list_canteens(db: AsyncSession) -> list[Canteen]:
    result = await db.execute(select(Canteen).order_by(Canteen.id))
    return list(result.scalars().all())


async def list_canteens_for_whatsapp(db: AsyncSession) -> list[Canteen]:
    result = await db.execute(
        select(Canteen)
        .where(Canteen.status == RecordStatus.ACTIVE)
        .order_by(Canteen.id)
    )
    return list(result.scalars().all())


async def update_canteen(db: AsyncSession, canteen_id: int, **changes: Any) -> Canteen:
    canteen = await db.get(Canteen, canteen_id)
    if canteen is None:
        raise NotFound("Canteen not found.")

    code = changes.get("canteen_code")
    if code and code != canteen.canteen_code:
        clash = await db.execute(select(Canteen.id).where(Canteen.canteen_code == code))
        if clash.scalar_one_or_none() is not None:
            raise Conflict(f"Canteen code {code} already exists.")

    _apply(canteen, changes)
    await _commit(db)
    return canteen


# =============================================================================
# CATEGORIES
# =============================================================================

async def create_category(db: AsyncSession, name: str, description: Optional[str] = None) -> Category:
    existing = await db.execute(select(Category.id).where(Category.name == name))
    if existing.scalar_one_or_none() is not None:
        raise Conflict(f"Category {name} already exists.")

    category = Category(name=name, description=description)
    db.add(category)
    await _commit(db)
    return category


async def list_categories(db: AsyncSession) -> list[Category]:
    result = await db.execute(select(Category).order_by(Category.name))
    return list(result.scalars().all())


async def delete_category(db: AsyncSession, category_id: int) -> None:
    category = await db.get(Category, category_id)
    if category is None:
        raise NotFound("Category not found.")
    await db.delete(category)
    await _commit(db)


# =============================================================================
# ITEMS
# =============================================================================

async def create_item(
    db: AsyncSession,
    name: str,
    price: Decimal,
    description: Optional[str] = None,
    type: Optional[str] = None,
    quantity: Optional[int] = None,
    quantity_unit: Optional[str] = None,
    category_id: Optional[int] = None,
    currency: Optional[str] = None,
) -> Item:
    if category_id is not None and await db.get(Category, category_id) is None:
        raise NotFound("Category not found.")

    item = Item(
        name=name,
        price=price,
        description=description,
        type=type,
        quantity=quantity,
        quantity_unit=quantity_unit,
        category_id=category_id,
        currency=currency or get_settings().currency,
    )
    db.add(item)
    await _commit(db)
    logger.info(f"Item created: {item.name} (#{item.id}) ₹{item.price}")
    return item


async def list_items(db: AsyncSession) -> list[Item]:
    result = await db.execute(
        select(Item)
        .where(Item.status == RecordStatus.ACTIVE)
        .options(selectinload(Item.category))
        .order_by(Item.id)
    )
    return list(result.scalars().all())


async def count_items(db: AsyncSession) -> int:
    result = await db.execute(
        select(func.count(Item.id)).where(Item.status == RecordStatus.ACTIVE)
    )
    return result.scalar() or 0


async def set_item_inactive(db: AsyncSession, item_id: int) -> Item:
    item = await db.get(Item, item_id)
    if item is None:
        raise NotFound("Item not found.")
    item.status = RecordStatus.INACTIVE
    await _commit(db)
    return item


async def update_item(db: AsyncSession, item_id: int, **changes: Any) -> Item:
    item = await db.get(Item, item_id)
    if item is None:
        raise NotFound("Item not found.")
    category_id = changes.get("category_id")
    if category_id is not None and await db.get(Category, category_id) is None:
        raise NotFound("Category not found.")

    _apply(item, changes)
    await _commit(db)
    return item


# =============================================================================
# MENU CONFIGURATIONS
# =============================================================================

async def create_menu_configuration(
    db: AsyncSession,
    name: str,
    default_start_time: time,
    default_end_time: time,
) -> MenuConfiguration:
    if default_start_time >= default_end_time:
        raise ValidationError(errors=["defaultStartTime must be before defaultEndTime"])

    config = MenuConfiguration(
        name=name,
        default_start_time=default_start_time,
        default_end_time=default_end_time,
    )
    db.add(config)
    await _commit(db)
    return config


async def list_menu_configurations(db: AsyncSession) -> list[MenuConfiguration]:
    result = await db.execute(
        select(MenuConfiguration)
        .where(MenuConfiguration.status == RecordStatus.ACTIVE)
        .order_by(MenuConfiguration.default_start_time)
    )
    return list(result.scalars().all())


# =============================================================================
# MENUS
# =============================================================================

async def _check_items_exist(db: AsyncSession, items: list[MenuItemSpec]) -> None:
    if not items:
        raise ValidationError(errors=["items must be a non-empty array"])
    for spec in items:
        if spec.min_quantity < 1 or spec.max_quantity < spec.min_quantity:
            raise ValidationError(errors=[f"Invalid quantity range for item {spec.item_id}"])

    ids = {spec.item_id for spec in items}
    found = set((await db.execute(select(Item.id).where(Item.id.in_(ids)))).scalars())
    missing = sorted(ids - found)
    if missing:
        raise NotFound(f"Item not found: {', '.join(str(i) for i in missing)}.")


def _menu_items(menu_id: int, items: list[MenuItemSpec]) -> list[MenuItem]:
    return [
        MenuItem(
            menu_id=menu_id,
            item_id=spec.item_id,
            min_quantity=spec.min_quantity,
            max_quantity=spec.max_quantity,
        )
        for spec in items
    ]


async def create_menu_with_items(
    db: AsyncSession,
    canteen_id: int,
    menu_configuration_id: int,
    start_date: date,
    end_date: date,
    items: list[MenuItemSpec],
    description: Optional[str] = None,
    user_id: Optional[int] = None,
) -> Menu:
    """
    Create a menu for a canteen and configuration over a date range.

    Raises:
        ValidationError: start_date after end_date, or no items
        NotFound: Unknown canteen, configuration or item
        Conflict: An active menu already exists for the canteen + configuration
    """
    if start_date > end_date:
        raise ValidationError(errors=["startDate must not be after endDate"])

    if await db.get(Canteen, canteen_id) is None:
        raise NotFound("Canteen not found.")
    config = await db.get(MenuConfiguration, menu_configuration_id)
    if config is None:
        raise NotFound("Menu configuration not found.")

    existing = await db.execute(
        select(Menu.id).where(
            Menu.canteen_id == canteen_id,
            Menu.menu_configuration_id == menu_configuration_id,
            Menu.status == RecordStatus.ACTIVE,
        )
    )
    if existing.scalar_one_or_none() is not None:
        raise Conflict("An active menu already exists for this canteen and configuration.")

    await _check_items_exist(db, items)

    try:
        menu = Menu(
            name=config.name,
            description=description,
            canteen_id=canteen_id,
            menu_configuration_id=menu_configuration_id,
            start_date=start_date,
            end_date=end_date,
            created_by_id=user_id,
            updated_by_id=user_id,
        )
        db.add(menu)
        await db.flush()
        db.add_all(_menu_items(menu.id, items))
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(f"Menu #{menu.id} created for canteen {canteen_id} with {len(items)} items")
    return menu


async def update_menu_with_items(
    db: AsyncSession,
    menu_id: int,
    items: list[MenuItemSpec],
    description: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    user_id: Optional[int] = None,
) -> Menu:
    """Update a menu's dates/description and replace its item list."""
    menu = await db.get(Menu, menu_id)
    if menu is None:
        raise NotFound("Menu not found.")

    new_start = start_date or menu.start_date
    new_end = end_date or menu.end_date
    if new_start > new_end:
        raise ValidationError(errors=["startDate must not be after endDate"])

    await _check_items_exist(db, items)

    try:
        _apply(menu, {
            "description": description,
            "start_date": new_start,
            "end_date": new_end,
            "updated_by_id": user_id,
        })
        await db.execute(delete(MenuItem).where(MenuItem.menu_id == menu_id))
        db.add_all(_menu_items(menu_id, items))
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(f"Menu #{menu_id} updated with {len(items)} items")
    return menu


def _menu_query():
    return select(Menu).options(
        selectinload(Menu.configuration),
        selectinload(Menu.menu_items).selectinload(MenuItem.item),
    )


async def list_menus(db: AsyncSession, canteen_id: Optional[int] = None) -> list[Menu]:
    query = _menu_query().where(Menu.status == RecordStatus.ACTIVE).order_by(Menu.id)
    if canteen_id is not None:
        query = query.where(Menu.canteen_id == canteen_id)
    result = await db.execute(query)
    return list(result.scalars().all())


async def get_menu(db: AsyncSession, menu_id: int) -> Menu:
    result = await db.execute(_menu_query().where(Menu.id == menu_id))
    menu = result.scalar_one_or_none()
    if menu is None:
        raise NotFound("Menu not found.")
    return menu


async def delete_menu(db: AsyncSession, menu_id: int) -> None:
    menu = await db.get(Menu, menu_id)
    if menu is None:
        raise NotFound("Menu not found.")
    menu.status = RecordStatus.INACTIVE
    await _commit(db)
    logger.info(f"Menu #{menu_id} marked inactive")


async def menus_for_canteen(
    db: AsyncSession,
    canteen_id: int,
    day: date,
    now: Optional[datetime] = None,
) -> list[Menu]:
    """
    Active menus of a canteen serving `day`, with an active configuration.

    For today only configurations whose end time is still ahead are kept.
    """
    settings = get_settings()
    now = now or datetime.now(settings.tz)

    result = await db.execute(
        select(Menu)
        .join(MenuConfiguration, MenuConfiguration.id == Menu.menu_configuration_id)
        .where(
            Menu.canteen_id == canteen_id,
            Menu.status == RecordStatus.ACTIVE,
            Menu.start_date <= day,
            Menu.end_date >= day,
            MenuConfiguration.status == RecordStatus.ACTIVE,
        )
        .options(selectinload(Menu.configuration))
        .order_by(MenuConfiguration.default_start_time, Menu.id)
    )
    menus = []
    for menu in result.scalars().all():
        config = menu.configuration
        if config.default_start_time is None or config.default_end_time is None:
            continue
        if day == now.date():
            ends_at = datetime.combine(day, config.default_end_time, tzinfo=settings.tz)
            if now >= ends_at:
                continue
        menus.append(menu)
    return menus


async def menu_items_for_whatsapp(db: AsyncSession, menu_id: int) -> list[MenuItem]:
    """Active items on an active menu entry, with the item loaded."""
    result = await db.execute(
        select(MenuItem)
        .join(Item, Item.id == MenuItem.item_id)
        .where(
            MenuItem.menu_id == menu_id,
            MenuItem.status == RecordStatus.ACTIVE,
            Item.status == RecordStatus.ACTIVE,
        )
        .options(selectinload(MenuItem.item))
        .order_by(Item.id)
    )
    return list(result.scalars().all())
