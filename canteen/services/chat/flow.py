"""
WhatsApp Ordering Conversation

Pure state machine for the canteen ordering chat. States are immutable
dataclasses, one per stage:

    menu_selection → date_selection → item_selection → cart_selection → cart_review

`interpret(state, text)` turns a raw reply into a command without touching
the network or the database. The `show_*` / `choose_*` / `update_cart` /
`edit_cart` functions apply a command (plus any catalog data the handler
fetched for it) and return the next state with the reply to send.

A `Transition` whose state is None ends the conversation.
"""

import re
from dataclasses import dataclass, replace
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional, Union


# =============================================================================
# REPLIES
# =============================================================================

RESTART_HINT = '❓ Invalid input. Please type "hi" to restart.'
NO_CANTEENS = "❌ No canteens available at the moment. Please try again later."
INVALID_CANTEEN = (
    '⚠️ Invalid canteen option. Please select a valid canteen number '
    'from the list above or type "hi" to restart.'
)
INVALID_DATE = (
    '⚠️ Invalid date option. Please reply with 1 for Today or 2 for Tomorrow, '
    'or type "hi" to restart.'
)
INVALID_MENU = (
    '⚠️ Invalid menu option. Please select a valid menu number '
    'from the list above or type "hi" to restart.'
)
CART_HINT = "Send items like: 1*2,2*1"
EMPTY_CART = f"🛒 Your cart is empty. {CART_HINT}"
ORDER_CANCELLED = "❌ Order cancelled. You can start again by typing hi."
ORDER_FAILED = "❌ Failed to place the order. Please try again later."
PAYMENT_LINK = "💳 Complete your payment using the following link:\n{link}"

DATE_FORMAT = "%d-%m-%Y"

NUMBER_PATTERN = re.compile(r"^\d+$")
# ids, indices and quantities never need more digits than this
MAX_DIGITS = 9
CART_PATTERN = re.compile(r"^\d{1,9}\*\d{1,9}(,\d{1,9}\*\d{1,9})*$")

CONFIRM_REPLIES = ("✅", "1", "confirm")
EDIT_REPLIES = ("✏️", "2", "edit")
CANCEL_REPLIES = ("❌", "3", "cancel")


def format_amount(amount: Decimal) -> str:
    """₹ amounts print without decimals when whole: 50 -> '50', 12.5 -> '12.50'."""
    amount = Decimal(amount)
    if amount == amount.to_integral_value():
        return str(amount.quantize(Decimal("1")))
    return str(amount.quantize(Decimal("0.01")))


# =============================================================================
# CATALOG SNAPSHOTS
# =============================================================================

@dataclass(frozen=True)
class CanteenOption:
    id: int
    name: str


@dataclass(frozen=True)
class MenuOption:
    id: int
    name: str
    menu_configuration_id: Optional[int] = None


@dataclass(frozen=True)
class ItemOption:
    id: int
    name: str
    price: Decimal


@dataclass(frozen=True)
class CartLine:
    item_id: int
    name: str
    price: Decimal
    quantity: int

    @property
    def total(self) -> Decimal:
        return self.price * self.quantity


# =============================================================================
# STATES
# =============================================================================

@dataclass(frozen=True)
class ChoosingCanteen:
    stage = "menu_selection"
    canteens: tuple[CanteenOption, ...] = ()


@dataclass(frozen=True)
class ChoosingDate:
    stage = "date_selection"
    canteen: CanteenOption
    dates: tuple[date, date]


@dataclass(frozen=True)
class ChoosingMenu:
    stage = "item_selection"
    canteen: CanteenOption
    day: date
    menus: tuple[MenuOption, ...]


@dataclass(frozen=True)
class ChoosingItems:
    stage = "cart_selection"
    canteen: CanteenOption
    day: date
    menu: MenuOption
    items: tuple[ItemOption, ...]
    cart: tuple[CartLine, ...] = ()


@dataclass(frozen=True)
class ReviewingCart:
    stage = "cart_review"
    canteen: CanteenOption
    day: date
    menu: MenuOption
    items: tuple[ItemOption, ...]
    cart: tuple[CartLine, ...]

    @property
    def total(self) -> Decimal:
        return sum((line.total for line in self.cart), Decimal("0"))


State = Union[ChoosingCanteen, ChoosingDate, ChoosingMenu, ChoosingItems, ReviewingCart]


@dataclass(frozen=True)
class Transition:
    state: Optional[State]
    reply: str


# =============================================================================
# COMMANDS
# =============================================================================

@dataclass(frozen=True)
class Restart:
    pass


@dataclass(frozen=True)
class SelectCanteen:
    canteen: CanteenOption


@dataclass(frozen=True)
class SelectDate:
    day: date


@dataclass(frozen=True)
class SelectMenu:
    menu: MenuOption


@dataclass(frozen=True)
class UpdateCart:
    selections: tuple[tuple[int, int], ...]


@dataclass(frozen=True)
class ConfirmOrder:
    pass


@dataclass(frozen=True)
class EditCart:
    pass


@dataclass(frozen=True)
class CancelOrder:
    pass


@dataclass(frozen=True)
class Reject:
    """Input not accepted in the current stage; the state does not change."""
    reply: str = RESTART_HINT


Command = Union[
    Restart, SelectCanteen, SelectDate, SelectMenu, UpdateCart,
    ConfirmOrder, EditCart, CancelOrder, Reject,
]


# =============================================================================
# INTERPRETATION
# =============================================================================

def _pick(options: tuple, msg: str):
    """1-based lookup into the list shown last; None when out of bounds."""
    if len(msg) > MAX_DIGITS:
        return None
    index = int(msg)
    if 1 <= index <= len(options):
        return options[index - 1]
    return None


def parse_cart(msg: str) -> list[tuple[int, int]]:
    """'1*2,3*1' -> [(1, 2), (3, 1)]"""
    pairs = []
    for chunk in msg.split(","):
        item_id, quantity = chunk.split("*")
        pairs.append((int(item_id), int(quantity)))
    return pairs


def interpret(state: State, text: str) -> Command:
    """Map a raw reply to a command for the given state."""
    msg = (text or "").strip().lower()

    if msg == "hi":
        return Restart()

    if isinstance(state, ChoosingCanteen) and NUMBER_PATTERN.match(msg):
        canteen = _pick(state.canteens, msg)
        return SelectCanteen(canteen) if canteen else Reject(INVALID_CANTEEN)

    if isinstance(state, ChoosingDate) and NUMBER_PATTERN.match(msg):
        if msg in ("1", "2"):
            return SelectDate(state.dates[int(msg) - 1])
        return Reject(INVALID_DATE)

    if isinstance(state, ChoosingMenu) and NUMBER_PATTERN.match(msg):
        menu = _pick(state.menus, msg)
        return SelectMenu(menu) if menu else Reject(INVALID_MENU)

    if isinstance(state, ChoosingItems) and CART_PATTERN.match(msg):
        selections = parse_cart(msg)
        known = {item.id for item in state.items}
        invalid = [str(item_id) for item_id, _ in selections if item_id not in known]
        if invalid:
            return Reject(
                f"⚠️ Invalid item number(s): {', '.join(invalid)}. "
                "Please select valid item numbers from the list above."
            )
        return UpdateCart(tuple(selections))

    if isinstance(state, ReviewingCart):
        if msg in CONFIRM_REPLIES:
            return ConfirmOrder()
        if msg in EDIT_REPLIES:
            return EditCart()
        if msg in CANCEL_REPLIES:
            return CancelOrder()

    return Reject()


# =============================================================================
# TRANSITIONS
# =============================================================================

def _item_list(items: tuple[ItemOption, ...]) -> str:
    return "\n".join(f"{item.id}. {item.name} - ₹{format_amount(item.price)}" for item in items)


def _cart_summary(cart: tuple[CartLine, ...]) -> str:
    lines = "\n".join(
        f"- {line.name} x{line.quantity} = ₹{format_amount(line.total)}" for line in cart
    )
    total = sum((line.total for line in cart), Decimal("0"))
    return (
        f"🧾 Your Cart:\n{lines}\nTotal = ₹{format_amount(total)}\n\n"
        "Reply:\n1. ✅ Confirm\n2. ✏️ Edit\n3. ❌ Cancel"
    )


def show_canteens(canteens: list[CanteenOption], title: str) -> Transition:
    if not canteens:
        return Transition(ChoosingCanteen(), NO_CANTEENS)
    listing = "\n".join(f"{idx}. {c.name}" for idx, c in enumerate(canteens, start=1))
    return Transition(
        ChoosingCanteen(tuple(canteens)),
        f"🍽️ Welcome To {title}! Choose a canteen:\n{listing}",
    )


def choose_canteen(canteen: CanteenOption, today: date) -> Transition:
    tomorrow = today + timedelta(days=1)
    return Transition(
        ChoosingDate(canteen=canteen, dates=(today, tomorrow)),
        "📅 Please select a date:\n"
        f"1. Today ({today.strftime(DATE_FORMAT)})\n"
        f"2. Tomorrow ({tomorrow.strftime(DATE_FORMAT)})",
    )


def show_menus(state: ChoosingDate, day: date, menus: list[MenuOption]) -> Transition:
    if not menus:
        return Transition(
            state,
            f"❌ No menus available for {state.canteen.name}. Please try again or select "
            "another date by replying with 1 for Today or 2 for Tomorrow, "
            'or type "hi" to restart.',
        )
    listing = "\n".join(f"{idx}. {m.name}" for idx, m in enumerate(menus, start=1))
    return Transition(
        ChoosingMenu(canteen=state.canteen, day=day, menus=tuple(menus)),
        f"🍴 {state.canteen.name.upper()} MENU:\n{listing}\n\nSend menu number to proceed.",
    )


def show_items(state: ChoosingMenu, menu: MenuOption, items: list[ItemOption]) -> Transition:
    if not items:
        # Stay on the menu list so another menu can be picked
        return Transition(
            state,
            f"❌ No items available for {menu.name}. Please pick another menu "
            'or type "hi" to restart.',
        )
    return Transition(
        ChoosingItems(canteen=state.canteen, day=state.day, menu=menu, items=tuple(items)),
        f"🛒 {menu.name.upper()} ITEMS:\n{_item_list(tuple(items))}\n\n{CART_HINT}",
    )


def update_cart(state: ChoosingItems, selections: tuple[tuple[int, int], ...]) -> Transition:
    """
    Merge selections into the cart.

    The last quantity given for an item id wins; quantity 0 drops the line.
    """
    items = {item.id: item for item in state.items}
    cart = {line.item_id: line for line in state.cart}

    for item_id, quantity in selections:
        if quantity == 0:
            cart.pop(item_id, None)
            continue
        item = items[item_id]
        cart[item_id] = CartLine(item_id=item.id, name=item.name, price=item.price, quantity=quantity)

    lines = tuple(cart.values())
    if not lines:
        return Transition(replace(state, cart=()), EMPTY_CART)

    return Transition(
        ReviewingCart(
            canteen=state.canteen,
            day=state.day,
            menu=state.menu,
            items=state.items,
            cart=lines,
        ),
        _cart_summary(lines),
    )


def edit_cart(state: ReviewingCart) -> Transition:
    return Transition(
        ChoosingItems(
            canteen=state.canteen,
            day=state.day,
            menu=state.menu,
            items=state.items,
            cart=state.cart,
        ),
        f"✏️ Edit Items:\n{_item_list(state.items)}\n\n{CART_HINT}",
    )


def cancel() -> Transition:
    return Transition(None, ORDER_CANCELLED)
