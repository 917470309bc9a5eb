from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from canteen.core.config import get_settings
from canteen.exceptions import EmptyCart, InsufficientBalance, OrderNumberExhausted
from canteen.models import (
    Cart,
    CartItem,
    Order,
    OrderItem,
    OrderStatus,
    Payment,
    PaymentMethod,
    PaymentStatus,
    User,
    WalletEntry,
    WalletEntryType,
)
from canteen.services import cart as cart_service
from canteen.services import orders as orders_module
from canteen.services.orders import CheckoutCart, CheckoutLine
from canteen.services.wallet import get_wallet_balance


async def fill_cart(db, seed, dosa=2, tea=1):
    await cart_service.add_to_cart(db, seed.user_id, seed.menu_id, seed.dosa_id, dosa, seed.today)
    await cart_service.add_to_cart(db, seed.user_id, seed.menu_id, seed.tea_id, tea, seed.today)


async def count(db, model):
    return (await db.execute(select(func.count()).select_from(model))).scalar_one()


async def test_wallet_order_fully_covered_is_placed(db, seed, fund_wallet, order_service, notified):
    await fund_wallet(seed.user_id, "200")
    await fill_cart(db, seed)
    user = await db.get(User, seed.user_id)

    result = await order_service.place_order(db, user, "wallet")

    order = result.order
    assert order.status == OrderStatus.PLACED
    assert order.total_amount == Decimal("130.00")
    assert order.order_no.startswith(f"NV{seed.user_id}")
    assert order.qr_code.startswith("data:image/png;base64,")
    assert [(p.payment_method, p.status, p.amount) for p in result.payments] == [
        (PaymentMethod.WALLET, PaymentStatus.SUCCESS, Decimal("130.00")),
    ]
    assert result.payment_link is None

    assert await get_wallet_balance(db, seed.user_id) == Decimal("70.00")
    debits = (await db.execute(
        select(WalletEntry).where(WalletEntry.type == WalletEntryType.DEBIT)
    )).scalars().all()
    assert [(d.reference_id, d.amount) for d in debits] == [(str(order.id), Decimal("130.00"))]

    assert await count(db, OrderItem) == 2
    assert await count(db, Cart) == 0
    assert await count(db, CartItem) == 0
    assert notified == [order.order_no]


async def test_wallet_short_balance_rejected_without_writes(db, seed, fund_wallet, order_service, notified):
    await fund_wallet(seed.user_id, "100")
    await fill_cart(db, seed)
    user_id = seed.user_id
    user = await db.get(User, user_id)

    with pytest.raises(InsufficientBalance):
        await order_service.place_order(db, user, "wallet")

    assert await count(db, Order) == 0
    assert await count(db, CartItem) == 2
    assert await get_wallet_balance(db, user_id) == Decimal("100.00")
    assert notified == []


async def test_empty_cart(db, seed, order_service):
    user = await db.get(User, seed.user_id)
    with pytest.raises(EmptyCart):
        await order_service.place_order(db, user, "online")


async def test_failure_mid_transaction_rolls_everything_back(db, seed, fund_wallet, order_service, monkeypatch, notified):
    await fund_wallet(seed.user_id, "200")
    await fill_cart(db, seed)
    user_id = seed.user_id
    user = await db.get(User, user_id)

    def broken_record_payment(*args, **kwargs):
        raise RuntimeError("payments table unavailable")

    monkeypatch.setattr(order_service, "_record_payment", broken_record_payment)

    with pytest.raises(RuntimeError):
        await order_service.place_order(db, user, "wallet")

    assert await count(db, Order) == 0
    assert await count(db, OrderItem) == 0
    assert await count(db, Payment) == 0
    assert await count(db, CartItem) == 2
    assert await get_wallet_balance(db, user_id) == Decimal("200.00")
    assert notified == []


async def test_online_order_returns_link_after_commit(db, seed, order_service, gateway, notified):
    await fill_cart(db, seed)
    user = await db.get(User, seed.user_id)

    result = await order_service.place_order(db, user, "online", platform="web")

    assert result.order.status == OrderStatus.INITIATED
    payment = result.payments[0]
    assert (payment.payment_method, payment.status) == (PaymentMethod.ONLINE, PaymentStatus.PENDING)
    assert result.payment_link.startswith(gateway.base_url)
    assert f"canteen_link_{payment.id}" in gateway.links
    assert notified == []


async def test_mobile_order_is_placed_without_link(db, seed, order_service, gateway, notified):
    await fill_cart(db, seed)
    user = await db.get(User, seed.user_id)

    result = await order_service.place_order(db, user, "online", platform="mobile")

    assert result.order.status == OrderStatus.PLACED
    assert result.payments[0].status == PaymentStatus.SUCCESS
    assert result.payment_link is None
    assert gateway.links == {}
    assert notified == [result.order.order_no]


async def test_cash_remainder_is_success(db, seed, order_service):
    await fill_cart(db, seed)
    user = await db.get(User, seed.user_id)

    result = await order_service.place_order(db, user, "cash")

    assert result.payments[0].payment_method == PaymentMethod.CASH
    assert result.payments[0].status == PaymentStatus.SUCCESS
    assert result.payment_link is None


async def test_gateway_failure_keeps_committed_order(db, seed, order_service, gateway):
    gateway.failure_rate = 1.0
    await fill_cart(db, seed)
    user = await db.get(User, seed.user_id)

    result = await order_service.place_order(db, user, "online")

    assert result.payment_link is None
    assert result.payment_link_error == "Simulated gateway failure"
    assert await count(db, Order) == 1


async def test_paid_link_sync_places_order(db, seed, order_service, gateway, notified):
    await fill_cart(db, seed)
    user = await db.get(User, seed.user_id)
    placed = await order_service.place_order(db, user, "online")
    link_id = order_service.payment_link_id(placed.payments[0].id)

    unpaid = await order_service.sync_payment_link(db, link_id)
    assert unpaid.order.status == OrderStatus.INITIATED
    assert notified == []

    gateway.mark_paid(link_id)
    synced = await order_service.sync_payment_link(db, link_id)

    assert synced.link_status == "PAID"
    assert synced.payment.status == PaymentStatus.SUCCESS
    assert synced.order.status == OrderStatus.PLACED
    assert notified == [placed.order.order_no]

    # a second sync does not notify twice
    await order_service.sync_payment_link(db, link_id)
    assert notified == [placed.order.order_no]


async def test_create_payment_link_reuses_existing_link(db, seed, order_service, gateway):
    await fill_cart(db, seed)
    user = await db.get(User, seed.user_id)
    placed = await order_service.place_order(db, user, "online")

    again = await order_service.create_payment_link(db, placed.order.id, user_id=seed.user_id)

    assert again.link_url == placed.payment_link
    assert len(gateway.links) == 1


async def test_order_number_exhaustion_rolls_back(db, seed, fund_wallet, order_service, monkeypatch):
    await fund_wallet(seed.user_id, "500")
    await fill_cart(db, seed)
    user = await db.get(User, seed.user_id)
    await order_service.place_order(db, user, "wallet")
    taken = (await db.execute(select(Order.order_no))).scalar_one()

    await fill_cart(db, seed)
    monkeypatch.setattr(order_service, "_order_number", lambda user_id: taken)

    with pytest.raises(OrderNumberExhausted):
        await order_service.place_order(db, user, "wallet")

    assert await count(db, Order) == 1
    assert await count(db, CartItem) == 2


async def test_order_number_retry_recovers(db, seed, order_service, monkeypatch):
    await fill_cart(db, seed)
    user = await db.get(User, seed.user_id)
    first = await order_service.place_order(db, user, "cash")

    numbers = iter([first.order.order_no, first.order.order_no, "NV-fresh"])
    monkeypatch.setattr(order_service, "_order_number", lambda user_id: next(numbers))
    await fill_cart(db, seed)

    second = await order_service.place_order(db, user, "cash")
    assert second.order.order_no == "NV-fresh"


def test_order_number_format(order_service, monkeypatch):
    tz = get_settings().tz
    monkeypatch.setattr(order_service, "now", lambda: datetime(2026, 8, 14, 9, 5, 7, 42000, tzinfo=tz))
    assert order_service._order_number(17) == "NV17260814090507042"


async def test_whatsapp_order_creates_guest_user(db, seed, order_service):
    checkout = CheckoutCart(
        canteen_id=seed.canteen_id,
        order_date=seed.today + timedelta(days=1),
        menu_configuration_id=seed.config_id,
        lines=[CheckoutLine(item_id=seed.tea_id, quantity=2, price=Decimal("30"))],
    )

    result = await order_service.place_whatsapp_order(db, "919000000001", checkout)

    guest = (await db.execute(select(User).where(User.mobile == "9000000001"))).scalar_one()
    assert (guest.first_name, guest.last_name) == ("Guest", "User")
    assert result.order.user_id == guest.id
    assert result.payments[0].payment_method == PaymentMethod.UPI
    assert result.payment_link is not None


def test_parse_payment_link_id(order_service):
    assert order_service.parse_payment_link_id("canteen_link_42") == 42
    assert order_service.parse_payment_link_id("my_shop_link_7") == 7


def test_parse_payment_link_id_rejects_garbage(order_service):
    from canteen.exceptions import ValidationError

    with pytest.raises(ValidationError):
        order_service.parse_payment_link_id("link-42")


async def test_wallet_is_locked_before_balance_check(db, seed, fund_wallet, order_service, monkeypatch):
    await fund_wallet(seed.user_id, "200")
    await fill_cart(db, seed)
    user = await db.get(User, seed.user_id)
    calls = []

    async def record_lock(session, user_id):
        calls.append(("lock", user_id))

    async def record_balance(session, user_id):
        calls.append(("balance", user_id))
        return Decimal("200.00")

    monkeypatch.setattr(orders_module, "lock_wallet", record_lock)
    monkeypatch.setattr(orders_module, "get_wallet_balance", record_balance)

    await order_service.place_order(db, user, "wallet")

    assert calls == [("lock", seed.user_id), ("balance", seed.user_id)]


async def test_non_wallet_order_takes_no_wallet_lock(db, seed, order_service, monkeypatch):
    await fill_cart(db, seed)
    user = await db.get(User, seed.user_id)
    calls = []

    async def record_lock(session, user_id):
        calls.append(user_id)

    monkeypatch.setattr(orders_module, "lock_wallet", record_lock)

    await order_service.place_order(db, user, "cash")

    assert calls == []
