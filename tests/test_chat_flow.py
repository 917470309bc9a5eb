from datetime import date
from decimal import Decimal

from canteen.services.chat import flow
from canteen.services.chat.flow import (
    CanteenOption,
    CartLine,
    ChoosingCanteen,
    ChoosingDate,
    ChoosingItems,
    ChoosingMenu,
    ItemOption,
    MenuOption,
    ReviewingCart,
)

TODAY = date(2026, 8, 14)
MAIN = CanteenOption(id=1, name="Main Canteen")
EAST = CanteenOption(id=2, name="East Wing")
LUNCH = MenuOption(id=7, name="Lunch", menu_configuration_id=3)
DOSA = ItemOption(id=11, name="Masala Dosa", price=Decimal("50"))
TEA = ItemOption(id=12, name="Tea", price=Decimal("30"))


def choosing_items(cart=()):
    return ChoosingItems(canteen=MAIN, day=TODAY, menu=LUNCH, items=(DOSA, TEA), cart=cart)


def test_hi_restarts_from_any_stage():
    for state in (ChoosingCanteen(), ChoosingDate(MAIN, (TODAY, TODAY)), choosing_items()):
        assert flow.interpret(state, "  Hi ") == flow.Restart()


def test_canteen_index_is_one_based_and_bounds_checked():
    state = ChoosingCanteen((MAIN, EAST))
    assert flow.interpret(state, "2") == flow.SelectCanteen(EAST)
    assert flow.interpret(state, "3") == flow.Reject(flow.INVALID_CANTEEN)
    assert flow.interpret(state, "0") == flow.Reject(flow.INVALID_CANTEEN)


def test_stale_index_after_refresh_is_rejected():
    refreshed = ChoosingCanteen((MAIN,))
    assert flow.interpret(refreshed, "2") == flow.Reject(flow.INVALID_CANTEEN)


def test_text_in_numeric_stage_gives_restart_hint():
    assert flow.interpret(ChoosingCanteen((MAIN,)), "pizza") == flow.Reject()
    assert flow.Reject().reply == flow.RESTART_HINT


def test_date_choice_today_or_tomorrow_only():
    state = flow.choose_canteen(MAIN, TODAY).state
    assert isinstance(state, ChoosingDate)
    assert flow.interpret(state, "1") == flow.SelectDate(TODAY)
    assert flow.interpret(state, "2") == flow.SelectDate(date(2026, 8, 15))
    assert flow.interpret(state, "3") == flow.Reject(flow.INVALID_DATE)


def test_date_prompt_shows_dd_mm_yyyy():
    reply = flow.choose_canteen(MAIN, TODAY).reply
    assert "1. Today (14-08-2026)" in reply
    assert "2. Tomorrow (15-08-2026)" in reply


def test_no_menus_keeps_date_selection():
    state = ChoosingDate(MAIN, (TODAY, date(2026, 8, 15)))
    transition = flow.show_menus(state, TODAY, [])
    assert transition.state is state
    assert "No menus available for Main Canteen" in transition.reply


def test_menu_selection_lists_items():
    menu_state = flow.show_menus(ChoosingDate(MAIN, (TODAY, TODAY)), TODAY, [LUNCH]).state
    assert isinstance(menu_state, ChoosingMenu)
    assert flow.interpret(menu_state, "1") == flow.SelectMenu(LUNCH)

    transition = flow.show_items(menu_state, LUNCH, [DOSA, TEA])
    assert isinstance(transition.state, ChoosingItems)
    assert "11. Masala Dosa - ₹50" in transition.reply
    assert flow.CART_HINT in transition.reply


def test_no_items_keeps_menu_selection():
    menu_state = ChoosingMenu(canteen=MAIN, day=TODAY, menus=(LUNCH,))
    transition = flow.show_items(menu_state, LUNCH, [])
    assert transition.state is menu_state


def test_cart_rejects_unknown_ids_and_lists_them():
    command = flow.interpret(choosing_items(), "11*2,99*1,98*3")
    assert isinstance(command, flow.Reject)
    assert "99, 98" in command.reply


def test_cart_pattern_mismatch_is_rejected():
    assert flow.interpret(choosing_items(), "11x2") == flow.Reject()


def test_oversized_numbers_are_rejected_not_parsed():
    huge = "9" * 5000
    assert flow.interpret(ChoosingCanteen((MAIN, EAST)), huge) == flow.Reject(flow.INVALID_CANTEEN)
    assert flow.interpret(ChoosingDate(MAIN, (TODAY, TODAY)), huge) == flow.Reject(flow.INVALID_DATE)
    menu_state = ChoosingMenu(canteen=MAIN, day=TODAY, menus=(LUNCH,))
    assert flow.interpret(menu_state, huge) == flow.Reject(flow.INVALID_MENU)
    assert flow.interpret(choosing_items(), f"11*{huge}") == flow.Reject()
    assert flow.interpret(choosing_items(), f"{huge}*1") == flow.Reject()


def test_last_quantity_wins_and_summary_totals():
    command = flow.interpret(choosing_items(), "11*1,12*1,11*2")
    transition = flow.update_cart(choosing_items(), command.selections)

    assert isinstance(transition.state, ReviewingCart)
    assert transition.state.cart == (
        CartLine(11, "Masala Dosa", Decimal("50"), 2),
        CartLine(12, "Tea", Decimal("30"), 1),
    )
    assert transition.state.total == Decimal("130")
    assert "Total = ₹130" in transition.reply
    assert "1. ✅ Confirm" in transition.reply


def test_zero_quantity_only_leaves_cart_empty():
    transition = flow.update_cart(choosing_items(), ((11, 0),))
    assert isinstance(transition.state, ChoosingItems)
    assert transition.reply == flow.EMPTY_CART


def test_review_commands():
    review = flow.update_cart(choosing_items(), ((11, 1),)).state
    assert flow.interpret(review, "✅") == flow.ConfirmOrder()
    assert flow.interpret(review, "confirm") == flow.ConfirmOrder()
    assert flow.interpret(review, "2") == flow.EditCart()
    assert flow.interpret(review, "cancel") == flow.CancelOrder()
    assert flow.interpret(review, "maybe") == flow.Reject()


def test_edit_returns_to_items_with_cart_kept():
    review = flow.update_cart(choosing_items(), ((11, 1),)).state
    transition = flow.edit_cart(review)
    assert isinstance(transition.state, ChoosingItems)
    assert transition.state.cart == review.cart
    assert transition.reply.startswith("✏️ Edit Items:")


def test_cancel_ends_session():
    transition = flow.cancel()
    assert transition.state is None
    assert transition.reply == flow.ORDER_CANCELLED


def test_format_amount():
    assert flow.format_amount(Decimal("50.00")) == "50"
    assert flow.format_amount(Decimal("12.5")) == "12.50"
