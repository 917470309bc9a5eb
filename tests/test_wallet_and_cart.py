from datetime import timedelta
from decimal import Decimal

import pytest
from sqlalchemy.dialects import postgresql

from canteen.exceptions import NotFound, ValidationError
from canteen.services import cart as cart_service
from canteen.services.wallet import (
    add_credit,
    add_debit,
    get_wallet_balance,
    get_wallet_transactions,
    wallet_lock_query,
)


async def test_balance_is_credit_minus_debit(db, seed):
    add_credit(db, seed.user_id, "1", Decimal("100"))
    add_debit(db, seed.user_id, "2", Decimal("40"))
    add_credit(db, seed.user_id, "3", Decimal("15.50"))
    await db.commit()

    assert await get_wallet_balance(db, seed.user_id) == Decimal("75.50")
    entries = await get_wallet_transactions(db, seed.user_id)
    assert [e.reference_id for e in entries] == ["3", "2", "1"]


async def test_balance_independent_of_entry_order(db, seed):
    add_debit(db, seed.user_id, "a", Decimal("40"))
    add_credit(db, seed.user_id, "b", Decimal("100"))
    await db.commit()

    assert await get_wallet_balance(db, seed.user_id) == Decimal("60.00")


async def test_empty_wallet_is_zero(db, seed):
    assert await get_wallet_balance(db, seed.user_id) == Decimal("0.00")


async def test_non_positive_entries_rejected(db):
    with pytest.raises(ValueError):
        add_credit(db, 1, "x", Decimal("0"))


async def test_add_to_cart_accumulates_quantity(db, seed):
    await cart_service.add_to_cart(db, seed.user_id, seed.menu_id, seed.dosa_id, 1, seed.today)
    cart = await cart_service.add_to_cart(db, seed.user_id, seed.menu_id, seed.dosa_id, 2, seed.today)

    assert [(ci.item_id, ci.quantity) for ci in cart.cart_items] == [(seed.dosa_id, 3)]
    assert cart.total_amount == Decimal("150")
    assert cart.canteen_id == seed.canteen_id
    assert cart.menu_configuration_id == seed.config_id


async def test_add_to_cart_enforces_max_quantity(db, seed):
    await cart_service.add_to_cart(db, seed.user_id, seed.menu_id, seed.dosa_id, 4, seed.today)
    with pytest.raises(ValidationError):
        await cart_service.add_to_cart(db, seed.user_id, seed.menu_id, seed.dosa_id, 2, seed.today)


async def test_add_to_cart_outside_menu_dates(db, seed):
    with pytest.raises(ValidationError):
        await cart_service.add_to_cart(
            db, seed.user_id, seed.menu_id, seed.dosa_id, 1, seed.today + timedelta(days=30)
        )


async def test_new_date_replaces_cart(db, seed):
    first = await cart_service.add_to_cart(db, seed.user_id, seed.menu_id, seed.dosa_id, 1, seed.today)
    second = await cart_service.add_to_cart(
        db, seed.user_id, seed.menu_id, seed.tea_id, 1, seed.today + timedelta(days=1)
    )

    assert second.id != first.id
    assert [ci.item_id for ci in second.cart_items] == [seed.tea_id]


async def test_update_to_zero_removes_line_and_empty_cart(db, seed):
    cart = await cart_service.add_to_cart(db, seed.user_id, seed.menu_id, seed.dosa_id, 1, seed.today)
    line_id = cart.cart_items[0].id

    assert await cart_service.update_cart_item(db, seed.user_id, line_id, 0) is None
    assert await cart_service.get_cart(db, seed.user_id) is None


async def test_update_cart_item_recomputes_total(db, seed):
    await cart_service.add_to_cart(db, seed.user_id, seed.menu_id, seed.dosa_id, 1, seed.today)
    cart = await cart_service.add_to_cart(db, seed.user_id, seed.menu_id, seed.tea_id, 1, seed.today)
    tea_line = next(ci for ci in cart.cart_items if ci.item_id == seed.tea_id)

    cart = await cart_service.update_cart_item(db, seed.user_id, tea_line.id, 3)
    assert cart.total_amount == Decimal("140")


async def test_clear_missing_cart(db, seed):
    with pytest.raises(NotFound):
        await cart_service.clear_cart(db, seed.user_id)


def test_wallet_lock_selects_user_row_for_update():
    sql = str(wallet_lock_query(7).compile(dialect=postgresql.dialect()))
    assert "FROM users" in sql
    assert sql.rstrip().endswith("FOR UPDATE")
