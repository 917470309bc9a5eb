"""
Catalog endpoints: canteens, categories, items, menu configurations, menus.

Thin handlers: request validation via schemas, business rules in
canteen.services.catalog, responses wrapped as {message, data}.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from canteen.database import get_db
from canteen.routers.deps import current_user_id, ok, query_date
from canteen.schemas import (
    ApiResponse,
    CanteenCreate,
    CanteenOut,
    CanteenUpdate,
    CategoryCreate,
    CategoryDelete,
    CategoryOut,
    ItemCreate,
    ItemDelete,
    ItemOut,
    ItemUpdate,
    MenuConfigurationCreate,
    MenuConfigurationOut,
    MenuCreate,
    MenuDelete,
    MenuDetailOut,
    MenuOut,
    MenuUpdate,
    MenuWithConfigurationOut,
    WhatsAppCanteenOut,
    WhatsAppMenuItemOut,
)
from canteen.services import catalog
from canteen.services.catalog import MenuItemSpec

logger = logging.getLogger(__name__)

canteen_router = APIRouter(prefix="/api/canteen", tags=["Canteen"])
category_router = APIRouter(prefix="/api/category", tags=["Category"])
item_router = APIRouter(prefix="/api/item", tags=["Item"])
menuconfig_router = APIRouter(prefix="/api/menuconfig", tags=["Menu Configuration"])
menu_router = APIRouter(prefix="/api/menu", tags=["Menu"])


# =============================================================================
# CANTEENS
# =============================================================================

@canteen_router.post("/createCanteen", response_model=ApiResponse[CanteenOut])
async def create_canteen(
    body: CanteenCreate,
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    canteen = await catalog.create_canteen(db, **body.model_dump())
    return ok("Canteen created successfully.", CanteenOut.model_validate(canteen))


@canteen_router.post("/updateCanteen", response_model=ApiResponse[CanteenOut])
async def update_canteen(
    body: CanteenUpdate,
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    changes = body.model_dump(exclude={"canteen_id"}, exclude_none=True)
    canteen = await catalog.update_canteen(db, body.canteen_id, **changes)
    return ok("Canteen updated successfully.", CanteenOut.model_validate(canteen))


@canteen_router.get("/getAllCanteens", response_model=ApiResponse[list[CanteenOut]])
async def get_all_canteens(
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    canteens = await catalog.list_canteens(db)
    return ok("Canteens fetched successfully.", [CanteenOut.model_validate(c) for c in canteens])


@canteen_router.get("/getAllCanteensforwhatsapp", response_model=ApiResponse[list[WhatsAppCanteenOut]])
async def get_all_canteens_for_whatsapp(db: AsyncSession = Depends(get_db)):
    canteens = await catalog.list_canteens_for_whatsapp(db)
    return ok("Canteens fetched successfully.", [WhatsAppCanteenOut.model_validate(c) for c in canteens])


# =============================================================================
# CATEGORIES
# =============================================================================

@category_router.post("/createCategory", response_model=ApiResponse[CategoryOut])
async def create_category(
    body: CategoryCreate,
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    category = await catalog.create_category(db, body.name, body.description)
    return ok("Category created successfully.", CategoryOut.model_validate(category))


@category_router.get("/allCategories", response_model=ApiResponse[list[CategoryOut]])
async def all_categories(
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    categories = await catalog.list_categories(db)
    return ok("Categories fetched successfully.", [CategoryOut.model_validate(c) for c in categories])


@category_router.post("/deleteCategory", response_model=ApiResponse[None])
async def delete_category(
    body: CategoryDelete,
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    await catalog.delete_category(db, body.id)
    return ok("Category deleted successfully.")


# =============================================================================
# ITEMS
# =============================================================================

@item_router.post("/createItem", response_model=ApiResponse[ItemOut])
async def create_item(
    body: ItemCreate,
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    item = await catalog.create_item(db, **body.model_dump())
    return ok("Item created successfully.", ItemOut.model_validate(item))


@item_router.post("/updateItem", response_model=ApiResponse[ItemOut])
async def update_item(
    body: ItemUpdate,
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    item = await catalog.update_item(db, body.id, **body.model_dump(exclude={"id"}, exclude_none=True))
    return ok("Item updated successfully.", ItemOut.model_validate(item))


@item_router.get("/getItems", response_model=ApiResponse[list[ItemOut]])
async def get_items(db: AsyncSession = Depends(get_db)):
    items = await catalog.list_items(db)
    return ok("Items fetched successfully.", [ItemOut.model_validate(i) for i in items])


@item_router.get("/getAllItemsCount", response_model=ApiResponse[dict])
async def get_all_items_count(db: AsyncSession = Depends(get_db)):
    return ok("Items count fetched successfully.", {"count": await catalog.count_items(db)})


@item_router.post("/deleteItem", response_model=ApiResponse[ItemOut])
async def delete_item(body: ItemDelete, db: AsyncSession = Depends(get_db)):
    item = await catalog.set_item_inactive(db, body.id)
    return ok("Item deleted successfully.", ItemOut.model_validate(item))


# =============================================================================
# MENU CONFIGURATIONS
# =============================================================================

@menuconfig_router.post("/createMenuConfiguration", response_model=ApiResponse[MenuConfigurationOut])
async def create_menu_configuration(
    body: MenuConfigurationCreate,
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    config = await catalog.create_menu_configuration(
        db, body.name, body.default_start_time, body.default_end_time
    )
    return ok("Menu configuration created successfully.", MenuConfigurationOut.model_validate(config))


@menuconfig_router.get("/getAllMenuConfigurations", response_model=ApiResponse[list[MenuConfigurationOut]])
async def get_all_menu_configurations(db: AsyncSession = Depends(get_db)):
    configs = await catalog.list_menu_configurations(db)
    return ok(
        "Menu configurations fetched successfully.",
        [MenuConfigurationOut.model_validate(c) for c in configs],
    )


# =============================================================================
# MENUS
# =============================================================================

def _item_specs(items) -> list[MenuItemSpec]:
    return [MenuItemSpec(i.item_id, i.min_quantity, i.max_quantity) for i in items]


@menu_router.post("/createMenuWithItems", response_model=ApiResponse[MenuOut])
async def create_menu_with_items(
    body: MenuCreate,
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    menu = await catalog.create_menu_with_items(
        db,
        canteen_id=body.canteen_id,
        menu_configuration_id=body.menu_configuration_id,
        start_date=body.start_date,
        end_date=body.end_date,
        items=_item_specs(body.items),
        description=body.description,
        user_id=user_id,
    )
    return ok("Menu created successfully with items.", MenuOut.model_validate(menu))


@menu_router.post("/updateMenuWithItems/{menu_id}", response_model=ApiResponse[MenuOut])
async def update_menu_with_items(
    menu_id: int,
    body: MenuUpdate,
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    menu = await catalog.update_menu_with_items(
        db,
        menu_id,
        items=_item_specs(body.items),
        description=body.description,
        start_date=body.start_date,
        end_date=body.end_date,
        user_id=user_id,
    )
    return ok("Menu updated successfully with items.", MenuOut.model_validate(menu))


@menu_router.get("/getAllMenus", response_model=ApiResponse[list[MenuDetailOut]])
async def get_all_menus(
    canteen_id: Optional[int] = Query(None, alias="canteenId"),
    db: AsyncSession = Depends(get_db),
):
    menus = await catalog.list_menus(db, canteen_id)
    return ok("Menus fetched successfully.", [MenuDetailOut.model_validate(m) for m in menus])


@menu_router.get("/getMenuById", response_model=ApiResponse[MenuDetailOut])
async def get_menu_by_id(
    menu_id: int = Query(..., alias="id"),
    db: AsyncSession = Depends(get_db),
):
    menu = await catalog.get_menu(db, menu_id)
    return ok("Menu fetched successfully.", MenuDetailOut.model_validate(menu))


@menu_router.get("/getMenuByIdforwhatsapp", response_model=ApiResponse[list[WhatsAppMenuItemOut]])
async def get_menu_by_id_for_whatsapp(
    menu_id: int = Query(..., alias="menuId"),
    db: AsyncSession = Depends(get_db),
):
    menu_items = await catalog.menu_items_for_whatsapp(db, menu_id)
    data = [
        WhatsAppMenuItemOut(
            id=mi.item.id,
            name=mi.item.name,
            description=mi.item.description,
            price=mi.item.price,
            currency=mi.item.currency,
            min_quantity=mi.min_quantity,
            max_quantity=mi.max_quantity,
        )
        for mi in menu_items
    ]
    return ok("Menu items fetched successfully.", data)


@menu_router.get("/getMenusByCanteen", response_model=ApiResponse[list[MenuWithConfigurationOut]])
async def get_menus_by_canteen(
    canteen_id: int = Query(..., alias="canteenId"),
    day: Optional[str] = Query(None, alias="date"),
    db: AsyncSession = Depends(get_db),
):
    target = query_date(day)
    if target is None:
        target = catalog.today()
    menus = await catalog.menus_for_canteen(db, canteen_id, target)
    return ok(
        f"Menus fetched successfully for {target:%d-%m-%Y}.",
        [MenuWithConfigurationOut.model_validate(m) for m in menus],
    )


@menu_router.post("/deleteMenu", response_model=ApiResponse[None])
async def delete_menu(body: MenuDelete, db: AsyncSession = Depends(get_db)):
    await catalog.delete_menu(db, body.menu_id)
    return ok("Menu deleted successfully.")
