from datetime import datetime, time, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import select

from canteen.core.config import get_settings
from canteen.exceptions import (
    CancellationWindowClosed,
    MissingMenuConfiguration,
    NotFound,
    OrderAlreadyFinal,
)
from canteen.models import (
    Order,
    OrderStatus,
    Payment,
    PaymentMethod,
    PaymentStatus,
    User,
    WalletEntry,
    WalletEntryType,
)
from canteen.services import cart as cart_service
from canteen.services.orders import CheckoutCart, CheckoutLine
from canteen.services.wallet import get_wallet_balance


def at(day, hour, minute=0):
    return datetime.combine(day, time(hour, minute), tzinfo=get_settings().tz)


async def place_wallet_order(db, seed, order_service):
    await cart_service.add_to_cart(db, seed.user_id, seed.menu_id, seed.dosa_id, 2, seed.today)
    await cart_service.add_to_cart(db, seed.user_id, seed.menu_id, seed.tea_id, 1, seed.today)
    user = await db.get(User, seed.user_id)
    result = await order_service.place_order(db, user, "wallet")
    return result.order


async def test_cancel_refunds_wallet(db, seed, fund_wallet, order_service):
    await fund_wallet(seed.user_id, "200")
    order = await place_wallet_order(db, seed, order_service)
    assert await get_wallet_balance(db, seed.user_id) == Decimal("70.00")

    result = await order_service.cancel_order(db, order.id, user_id=seed.user_id, now=at(seed.today, 11))

    assert result.order_status == OrderStatus.CANCELLED
    assert result.total_refund_amount == Decimal("130.00")
    assert result.to_dict() == {"orderId": order.id, "orderStatus": "cancelled", "totalRefundAmount": 130.0}
    assert await get_wallet_balance(db, seed.user_id) == Decimal("200.00")

    payment = (await db.execute(select(Payment).where(Payment.order_id == order.id))).scalar_one()
    assert payment.status == PaymentStatus.REFUNDED


async def test_second_cancel_is_rejected_without_double_credit(db, seed, fund_wallet, order_service):
    await fund_wallet(seed.user_id, "200")
    order = await place_wallet_order(db, seed, order_service)
    await order_service.cancel_order(db, order.id, now=at(seed.today, 11))

    with pytest.raises(OrderAlreadyFinal):
        await order_service.cancel_order(db, order.id, now=at(seed.today, 11))

    credits = (await db.execute(
        select(WalletEntry).where(
            WalletEntry.type == WalletEntryType.CREDIT,
            WalletEntry.reference_id == str(order.id),
        )
    )).scalars().all()
    assert len(credits) == 1
    assert await get_wallet_balance(db, seed.user_id) == Decimal("200.00")


async def test_cancel_window_closes_at_configuration_end(db, seed, fund_wallet, order_service):
    await fund_wallet(seed.user_id, "200")
    order = await place_wallet_order(db, seed, order_service)

    with pytest.raises(CancellationWindowClosed):
        await order_service.cancel_order(db, order.id, now=at(seed.today, 14))

    refreshed = (await db.execute(
        select(Order).where(Order.id == order.id).execution_options(populate_existing=True)
    )).scalar_one()
    assert refreshed.status == OrderStatus.PLACED
    assert await get_wallet_balance(db, seed.user_id) == Decimal("70.00")


async def test_cancel_rejected_the_day_after(db, seed, fund_wallet, order_service):
    await fund_wallet(seed.user_id, "200")
    order = await place_wallet_order(db, seed, order_service)

    with pytest.raises(CancellationWindowClosed):
        await order_service.cancel_order(db, order.id, now=at(seed.today + timedelta(days=1), 9))


async def test_cancel_without_menu_configuration(db, seed, fund_wallet, order_service):
    await fund_wallet(seed.user_id, "200")
    user = await db.get(User, seed.user_id)
    checkout = CheckoutCart(
        canteen_id=seed.canteen_id,
        order_date=seed.today,
        lines=[CheckoutLine(item_id=seed.tea_id, quantity=1, price=Decimal("30"))],
    )
    placed = await order_service.place_order(db, user, "wallet", cart=checkout)

    with pytest.raises(MissingMenuConfiguration):
        await order_service.cancel_order(db, placed.order.id, now=at(seed.today, 9))


async def test_initiated_order_cannot_be_cancelled(db, seed, order_service):
    await cart_service.add_to_cart(db, seed.user_id, seed.menu_id, seed.tea_id, 1, seed.today)
    user = await db.get(User, seed.user_id)
    placed = await order_service.place_order(db, user, "online")

    with pytest.raises(OrderAlreadyFinal):
        await order_service.cancel_order(db, placed.order.id, now=at(seed.today, 9))


async def test_cancel_someone_elses_order(db, seed, fund_wallet, order_service):
    await fund_wallet(seed.user_id, "200")
    order = await place_wallet_order(db, seed, order_service)

    with pytest.raises(NotFound):
        await order_service.cancel_order(db, order.id, user_id=seed.user_id + 100, now=at(seed.today, 9))


async def test_cancel_credits_each_successful_payment_once(db, seed, fund_wallet, order_service, session_maker):
    await fund_wallet(seed.user_id, "200")
    order = await place_wallet_order(db, seed, order_service)

    async with session_maker() as s:
        s.add_all([
            Payment(
                order_id=order.id, user_id=seed.user_id, payment_method=PaymentMethod.UPI,
                amount=Decimal("20"), total_amount=Decimal("20"), status=PaymentStatus.SUCCESS,
            ),
            Payment(
                order_id=order.id, user_id=seed.user_id, payment_method=PaymentMethod.ONLINE,
                amount=Decimal("15"), total_amount=Decimal("15"), status=PaymentStatus.PENDING,
            ),
        ])
        await s.commit()

    result = await order_service.cancel_order(db, order.id, now=at(seed.today, 11))

    assert result.total_refund_amount == Decimal("150.00")
    credits = (await db.execute(
        select(WalletEntry.amount).where(
            WalletEntry.type == WalletEntryType.CREDIT,
            WalletEntry.reference_id == str(order.id),
        ).order_by(WalletEntry.amount)
    )).scalars().all()
    assert credits == [Decimal("20.00"), Decimal("130.00")]
    assert await get_wallet_balance(db, seed.user_id) == Decimal("220.00")

    async with session_maker() as s:
        statuses = (await s.execute(
            select(Payment.payment_method, Payment.status)
            .where(Payment.order_id == order.id)
            .order_by(Payment.id)
        )).all()
    assert statuses == [
        (PaymentMethod.WALLET, PaymentStatus.REFUNDED),
        (PaymentMethod.UPI, PaymentStatus.REFUNDED),
        (PaymentMethod.ONLINE, PaymentStatus.PENDING),
    ]
