"""
Order / Payment Orchestrator

Turns a finalized cart into an order, its order items and payment rows
inside a single transaction, then performs every non-database side
effect strictly after commit:

    cart → order (unique order_no) → items → wallet debit / payments
         → cart cleared → COMMIT → payment link → placed-order notification

Cancellation reverses a placed order into wallet credits, again in one
transaction. Any exception before commit rolls the whole unit back.

Version: 1.0.0
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from functools import lru_cache
from typing import Any, Callable, Optional

from sqlalchemy import select, delete, update, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from canteen.core.config import get_settings
from canteen.exceptions import (
    CancellationWindowClosed,
    EmptyCart,
    ExternalServiceError,
    InsufficientBalance,
    MissingMenuConfiguration,
    NotFound,
    OrderAlreadyFinal,
    OrderNumberExhausted,
    ValidationError,
)
from canteen.models import (
    Canteen,
    Cart,
    CartItem,
    CartStatus,
    Item,
    MenuConfiguration,
    Order,
    OrderItem,
    OrderStatus,
    Payment,
    PaymentMethod,
    PaymentStatus,
    User,
)
from canteen.services.payment import BasePaymentGateway, PaymentLinkResult, get_payment_gateway
from canteen.services.phone import normalize_mobile
from canteen.services.qr import order_qr_payload, qr_data_url
from canteen.services.wallet import ZERO, add_credit, add_debit, get_wallet_balance, lock_wallet
from canteen.tasks import send_order_placed_notification

logger = logging.getLogger(__name__)

ONLINE_METHODS = (PaymentMethod.ONLINE, PaymentMethod.UPI)
MOBILE_PLATFORM = "mobile"


def money(value: Any) -> Decimal:
    return Decimal(str(value)).quantize(ZERO, rounding=ROUND_HALF_UP)


# =============================================================================
# VALUE OBJECTS
# =============================================================================

@dataclass
class CheckoutLine:
    item_id: int
    quantity: int
    price: Decimal

    @property
    def total(self) -> Decimal:
        return money(self.price * self.quantity)


@dataclass
class CheckoutCart:
    """
    Cart handed to place_order.

    cart_id is set for persisted web carts (deleted on success) and left
    empty for the ephemeral carts built by the WhatsApp flow.
    """
    canteen_id: int
    order_date: date
    lines: list[CheckoutLine]
    menu_configuration_id: Optional[int] = None
    cart_id: Optional[int] = None

    @property
    def amount(self) -> Decimal:
        return money(sum((line.total for line in self.lines), ZERO))


@dataclass
class PlaceOrderResult:
    order: Order
    payments: list[Payment] = field(default_factory=list)
    payment_link: Optional[str] = None
    payment_link_error: Optional[str] = None


@dataclass
class CancelOrderResult:
    order_id: int
    order_status: OrderStatus
    total_refund_amount: Decimal

    def to_dict(self) -> dict:
        return {
            "orderId": self.order_id,
            "orderStatus": self.order_status.value,
            "totalRefundAmount": float(self.total_refund_amount),
        }


@dataclass
class PaymentSyncResult:
    link_status: Optional[str]
    payment: Payment
    order: Order


@dataclass
class WalkinLine:
    item_id: int
    quantity: int
    unit_price: Decimal
    total_price: Optional[Decimal] = None


@dataclass
class WalkinOrder:
    contact_number: str
    lines: list[WalkinLine]
    total_amount: Decimal
    payment_method: PaymentMethod = PaymentMethod.CASH
    customer_name: Optional[str] = None
    menu_configuration_id: Optional[int] = None
    final_amount: Optional[Decimal] = None
    notes: Optional[str] = None


# =============================================================================
# POST-COMMIT NOTIFICATION
# =============================================================================

def dispatch_order_placed(order: Order, user: User) -> None:
    """Queue the QR/WhatsApp notification; broker failures are logged, not raised."""
    try:
        send_order_placed_notification.delay(
            order.id,
            order.order_no,
            user.mobile,
            user.first_name or "Customer",
        )
        logger.info(f"Queued placed-order notification for {order.order_no}")
    except Exception as e:
        logger.error(f"Could not queue notification for order {order.order_no}: {e}")


# =============================================================================
# ORCHESTRATOR
# =============================================================================

class OrderService:
    """
    Order placement, payment links, cancellation and order queries.

    Example:
        >>> service = get_order_service()
        >>> result = await service.place_order(db, user, "online")
        >>> result.payment_link
        'https://payments.cashfree.com/links/...'
    """

    def __init__(
        self,
        payment_gateway: Optional[BasePaymentGateway] = None,
        notifier: Callable[[Order, User], None] = dispatch_order_placed,
    ):
        self.settings = get_settings()
        self.payment_gateway = payment_gateway or get_payment_gateway()
        self.notifier = notifier

        logger.info(f"OrderService initialized (gateway={self.payment_gateway.provider_name})")

    def now(self) -> datetime:
        return datetime.now(self.settings.tz)

    # =========================================================================
    # ORDER NUMBERS
    # =========================================================================

    def _order_number(self, user_id: int) -> str:
        now = self.now()
        return (
            f"{self.settings.order_number_prefix}{user_id}"
            f"{now:%y%m%d%H%M%S}{now.microsecond // 1000:03d}"
        )

    async def _insert_order(self, db: AsyncSession, order: Order) -> Order:
        """
        Insert `order` under a fresh order number.

        Each attempt runs in a SAVEPOINT so a unique violation on order_no
        only discards that attempt, not the surrounding transaction.
        """
        # Anything already pending must not be flushed (and lost) inside the savepoint
        await db.flush()

        attempts = self.settings.order_number_max_attempts
        for attempt in range(1, attempts + 1):
            order.order_no = self._order_number(order.user_id)
            try:
                async with db.begin_nested():
                    db.add(order)
                return order
            except IntegrityError:
                logger.warning(
                    f"Order number {order.order_no} already taken "
                    f"(attempt {attempt}/{attempts})"
                )
                await asyncio.sleep(self.settings.order_number_retry_delay_ms / 1000)

        raise OrderNumberExhausted()

    # =========================================================================
    # PLACE ORDER
    # =========================================================================

    async def load_active_cart(self, db: AsyncSession, user_id: int) -> Optional[CheckoutCart]:
        result = await db.execute(
            select(Cart)
            .where(Cart.user_id == user_id, Cart.status == CartStatus.ACTIVE)
            .options(selectinload(Cart.cart_items))
            .order_by(Cart.id.desc())
            .limit(1)
            .execution_options(populate_existing=True)
        )
        cart = result.scalar_one_or_none()
        if cart is None:
            return None

        return CheckoutCart(
            canteen_id=cart.canteen_id,
            order_date=cart.order_date,
            menu_configuration_id=cart.menu_configuration_id,
            cart_id=cart.id,
            lines=[
                CheckoutLine(item_id=ci.item_id, quantity=ci.quantity, price=money(ci.price))
                for ci in cart.cart_items
            ],
        )

    def _record_payment(
        self,
        db: AsyncSession,
        order: Order,
        user: User,
        method: PaymentMethod,
        amount: Decimal,
        status: PaymentStatus,
        gateway_charges: Decimal = ZERO,
    ) -> Payment:
        payment = Payment(
            order_id=order.id,
            user_id=user.id,
            payment_method=method,
            amount=amount,
            total_amount=amount,
            gateway_percentage=Decimal(str(self.settings.gateway_percentage)),
            gateway_charges=gateway_charges,
            currency=self.settings.currency,
            status=status,
            created_by_id=user.id,
        )
        db.add(payment)
        return payment

    async def place_order(
        self,
        db: AsyncSession,
        user: User,
        payment_method: str,
        platform: Optional[str] = None,
        cart: Optional[CheckoutCart] = None,
    ) -> PlaceOrderResult:
        """
        Place an order from the user's active cart (or an ephemeral cart).

        payment_method may combine wallet with a remainder method, e.g.
        "wallet", "online", "wallet+online", "cash" or "upi".

        Raises:
            EmptyCart: No cart or no line items
            InsufficientBalance: Wallet requested but balance does not cover the total
            OrderNumberExhausted: No unique order number after the configured attempts
        """
        method = (payment_method or "").strip().lower()
        use_wallet = "wallet" in method
        if "cash" in method:
            remainder_method = PaymentMethod.CASH
        elif "upi" in method:
            remainder_method = PaymentMethod.UPI
        else:
            remainder_method = PaymentMethod.ONLINE
        is_mobile = (platform or "").strip().lower() == MOBILE_PLATFORM

        payments: list[Payment] = []
        try:
            checkout = cart if cart is not None else await self.load_active_cart(db, user.id)
            if checkout is None or not checkout.lines:
                raise EmptyCart()

            amount = checkout.amount
            gateway_percentage = Decimal(str(self.settings.gateway_percentage))
            gateway_charges = money(amount * gateway_percentage / 100)
            total_amount = amount + gateway_charges

            wallet_balance = ZERO
            if use_wallet:
                await lock_wallet(db, user.id)
                wallet_balance = await get_wallet_balance(db, user.id)
                if wallet_balance <= 0 or wallet_balance < total_amount:
                    raise InsufficientBalance(
                        f"Insufficient wallet balance: ₹{wallet_balance} available, ₹{total_amount} required."
                    )

            order = await self._insert_order(db, Order(
                user_id=user.id,
                canteen_id=checkout.canteen_id,
                menu_configuration_id=checkout.menu_configuration_id,
                total_amount=total_amount,
                status=OrderStatus.PLACED if is_mobile else OrderStatus.INITIATED,
                order_date=checkout.order_date,
                created_by_id=user.id,
            ))
            order.qr_code = qr_data_url(order_qr_payload(order.id))

            db.add_all([
                OrderItem(
                    order_id=order.id,
                    item_id=line.item_id,
                    quantity=line.quantity,
                    price=line.price,
                    total=line.total,
                    created_by_id=user.id,
                )
                for line in checkout.lines
            ])

            remaining = total_amount
            if use_wallet:
                wallet_amount = min(wallet_balance, total_amount)
                add_debit(db, user.id, order.id, wallet_amount)
                payments.append(self._record_payment(
                    db, order, user, PaymentMethod.WALLET, wallet_amount, PaymentStatus.SUCCESS,
                ))
                remaining = total_amount - wallet_amount
                if remaining == 0:
                    order.status = OrderStatus.PLACED

            if remaining > 0:
                if remainder_method == PaymentMethod.CASH or is_mobile:
                    status = PaymentStatus.SUCCESS
                else:
                    status = PaymentStatus.PENDING
                payments.append(self._record_payment(
                    db, order, user, remainder_method, remaining, status, gateway_charges,
                ))

            if checkout.cart_id is not None:
                await db.execute(delete(CartItem).where(CartItem.cart_id == checkout.cart_id))
                await db.execute(delete(Cart).where(Cart.id == checkout.cart_id))

            await db.commit()

        except Exception:
            await db.rollback()
            raise

        logger.info(
            f"Order {order.order_no} committed: status={order.status.value} "
            f"total=₹{order.total_amount} payments={[p.payment_method.value for p in payments]}"
        )

        result = PlaceOrderResult(order=order, payments=payments)

        pending_online = [
            p for p in payments
            if p.status == PaymentStatus.PENDING and p.payment_method in ONLINE_METHODS
        ]
        if pending_online and not is_mobile:
            link = await self.request_payment_link(pending_online[0], user)
            if link.success:
                result.payment_link = link.link_url
            else:
                result.payment_link_error = link.error_message

        if order.status == OrderStatus.PLACED:
            self.notifier(order, user)

        return result

    async def place_whatsapp_order(
        self,
        db: AsyncSession,
        mobile: str,
        cart: CheckoutCart,
    ) -> PlaceOrderResult:
        """Place a WhatsApp-flow order, creating a guest user for unknown numbers."""
        user = await self.get_or_create_user(db, mobile)
        return await self.place_order(db, user, PaymentMethod.UPI.value, cart=cart)

    async def get_or_create_user(
        self,
        db: AsyncSession,
        mobile: str,
        first_name: str = "Guest",
        last_name: str = "User",
    ) -> User:
        mobile = normalize_mobile(mobile)
        result = await db.execute(select(User).where(User.mobile == mobile))
        user = result.scalar_one_or_none()
        if user is None:
            user = User(mobile=mobile, first_name=first_name, last_name=last_name)
            db.add(user)
            await db.flush()
            logger.info(f"Created guest user #{user.id} for {mobile}")
        return user

    # =========================================================================
    # PAYMENT LINKS
    # =========================================================================

    def payment_link_id(self, payment_id: int) -> str:
        return f"{self.settings.payment_link_prefix}_link_{payment_id}"

    @staticmethod
    def parse_payment_link_id(link_id: str) -> int:
        _, sep, tail = (link_id or "").rpartition("_link_")
        if not sep or not tail.isdigit():
            raise ValidationError("Invalid payment link id.", errors=[f"Unrecognised link id: {link_id}"])
        return int(tail)

    async def request_payment_link(self, payment: Payment, user: User) -> PaymentLinkResult:
        """Create a gateway link for a committed pending payment. Never called inside a transaction."""
        link_id = self.payment_link_id(payment.id)
        existing = await self.payment_gateway.get_payment_link(link_id)
        if existing.success and existing.link_url:
            return existing

        result = await self.payment_gateway.create_payment_link(
            link_id=link_id,
            amount=money(payment.amount),
            customer_name=user.full_name or "Guest User",
            customer_phone=normalize_mobile(user.mobile),
            customer_email=user.email,
            currency=payment.currency,
            purpose=f"Canteen order payment #{payment.order_id}",
        )
        if not result.success:
            logger.error(
                f"Payment link for payment #{payment.id} failed: "
                f"{result.error_code} - {result.error_message}"
            )
        return result

    async def create_payment_link(self, db: AsyncSession, order_id: int, user_id: Optional[int] = None) -> PaymentLinkResult:
        """(Re)issue the payment link for an order's pending online payment."""
        order = await self._get_order(db, order_id, user_id, with_details=True)
        pending = [
            p for p in order.payments
            if p.status == PaymentStatus.PENDING and p.payment_method in ONLINE_METHODS
        ]
        if not pending:
            raise ValidationError("No pending online payment for this order.")
        user = await db.get(User, order.user_id)
        # Release the read transaction before calling out
        await db.commit()

        result = await self.request_payment_link(pending[-1], user)
        if not result.success:
            raise ExternalServiceError(
                "Failed to create payment link.",
                provider=self.payment_gateway.provider_name,
                response_body=result.error_message,
            )
        return result

    async def sync_payment_link(self, db: AsyncSession, link_id: str) -> PaymentSyncResult:
        """
        Reconcile a payment link with the gateway.

        The gateway is queried before any database work; a PAID link moves
        the payment to success and the order to placed in one transaction.
        """
        payment_id = self.parse_payment_link_id(link_id)

        link = await self.payment_gateway.get_payment_link(link_id)
        if not link.success:
            raise ExternalServiceError(
                "Failed to fetch payment link details.",
                provider=self.payment_gateway.provider_name,
                response_body=link.error_message,
            )

        newly_placed = False
        try:
            payment = await db.get(Payment, payment_id, with_for_update=True)
            if payment is None:
                raise NotFound(f"Payment #{payment_id} not found.")
            order = await db.get(Order, payment.order_id, with_for_update=True)
            if order is None:
                raise NotFound(f"Order #{payment.order_id} not found.")

            if link.is_paid:
                if payment.status == PaymentStatus.PENDING:
                    payment.status = PaymentStatus.SUCCESS
                    payment.transaction_id = link.link_id
                if order.status == OrderStatus.INITIATED:
                    order.status = OrderStatus.PLACED
                    newly_placed = True
                if not order.qr_code:
                    order.qr_code = qr_data_url(order_qr_payload(order.id))

            await db.commit()
        except Exception:
            await db.rollback()
            raise

        if newly_placed:
            logger.info(f"Order {order.order_no} placed after payment link {link_id} was paid")
            user = await db.get(User, order.user_id)
            self.notifier(order, user)

        return PaymentSyncResult(link_status=link.link_status, payment=payment, order=order)

    # =========================================================================
    # CANCELLATION & REFUND
    # =========================================================================

    async def cancel_order(
        self,
        db: AsyncSession,
        order_id: int,
        user_id: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> CancelOrderResult:
        """
        Cancel a placed order and refund its successful payments to the wallet.

        Raises:
            NotFound: Unknown order (or not owned by user_id)
            OrderAlreadyFinal: Order is not in placed status
            MissingMenuConfiguration: No menu configuration / end time to derive the window
            CancellationWindowClosed: Past the order day's configured end time
        """
        now = now or self.now()
        try:
            result = await db.execute(
                select(Order)
                .where(Order.id == order_id)
                .options(selectinload(Order.payments))
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            order = result.scalar_one_or_none()
            if order is None or (user_id is not None and order.user_id != user_id):
                raise NotFound(f"Order #{order_id} not found.")

            if order.status != OrderStatus.PLACED:
                raise OrderAlreadyFinal(
                    f"Order #{order_id} is {order.status.value}; only placed orders can be cancelled."
                )

            config = None
            if order.menu_configuration_id is not None:
                config = await db.get(MenuConfiguration, order.menu_configuration_id)
            if config is None or config.default_end_time is None:
                raise MissingMenuConfiguration()

            deadline = datetime.combine(order.order_date, config.default_end_time, tzinfo=self.settings.tz)
            if now >= deadline:
                raise CancellationWindowClosed(
                    f"Cancellation closed at {deadline:%d-%m-%Y %I:%M %p}."
                )

            total_refund = ZERO
            for payment in order.payments:
                if payment.status != PaymentStatus.SUCCESS:
                    continue
                add_credit(db, order.user_id, order.id, money(payment.amount))
                payment.status = PaymentStatus.REFUNDED
                payment.updated_by_id = user_id
                total_refund += money(payment.amount)

            order.status = OrderStatus.CANCELLED
            order.updated_by_id = user_id
            await db.commit()

        except Exception:
            await db.rollback()
            raise

        logger.info(f"Order {order.order_no} cancelled, refunded ₹{total_refund} to wallet")
        return CancelOrderResult(
            order_id=order.id,
            order_status=order.status,
            total_refund_amount=total_refund,
        )

    # =========================================================================
    # ADMIN OPERATIONS
    # =========================================================================

    async def update_order_status(self, db: AsyncSession, order_ids: list[int]) -> int:
        """Mark the given orders completed; returns the number updated."""
        if not order_ids:
            raise ValidationError(errors=["orderIds must be a non-empty array"])
        try:
            result = await db.execute(
                update(Order)
                .where(Order.id.in_(order_ids))
                .values(status=OrderStatus.COMPLETED)
            )
            if result.rowcount == 0:
                raise NotFound("Order not found.")
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(f"Orders completed: {order_ids}")
        return result.rowcount

    async def create_walkin_orders(
        self,
        db: AsyncSession,
        canteen_id: int,
        entries: list[WalkinOrder],
    ) -> list[Order]:
        """
        Record counter sales as completed orders with completed payments.

        Entries without a contact number or without items are skipped, as are
        lines referencing unknown items.
        """
        if not entries:
            raise ValidationError(errors=["Order data is required"])

        processed: list[Order] = []
        try:
            if await db.get(Canteen, canteen_id) is None:
                raise NotFound("Canteen not found.")

            for entry in entries:
                if not entry.contact_number or not entry.lines:
                    continue

                user = await self.get_or_create_user(
                    db, entry.contact_number, first_name=entry.customer_name or "Guest"
                )
                order = await self._insert_order(db, Order(
                    user_id=user.id,
                    canteen_id=canteen_id,
                    menu_configuration_id=entry.menu_configuration_id,
                    total_amount=money(entry.total_amount),
                    status=OrderStatus.COMPLETED,
                    order_date=self.now().date(),
                    notes=entry.notes or "",
                    created_by_id=user.id,
                ))
                order.qr_code = qr_data_url(order_qr_payload(order.id))

                known = set((await db.execute(
                    select(Item.id).where(Item.id.in_([line.item_id for line in entry.lines]))
                )).scalars())
                for line in entry.lines:
                    if line.item_id not in known:
                        logger.warning(f"Walk-in line skipped, unknown item {line.item_id}")
                        continue
                    db.add(OrderItem(
                        order_id=order.id,
                        item_id=line.item_id,
                        quantity=line.quantity,
                        price=money(line.unit_price),
                        total=money(line.total_price if line.total_price is not None
                                    else line.unit_price * line.quantity),
                        created_by_id=user.id,
                    ))

                db.add(Payment(
                    order_id=order.id,
                    user_id=user.id,
                    payment_method=entry.payment_method,
                    amount=money(entry.total_amount),
                    total_amount=money(entry.final_amount if entry.final_amount is not None
                                       else entry.total_amount),
                    gateway_percentage=ZERO,
                    gateway_charges=ZERO,
                    currency=self.settings.currency,
                    status=PaymentStatus.COMPLETED,
                    created_by_id=user.id,
                ))
                processed.append(order)

            if not processed:
                raise ValidationError("No valid orders to process.")

            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(f"Walk-in orders recorded: {len(processed)}/{len(entries)} for canteen {canteen_id}")
        return processed

    # =========================================================================
    # QUERIES
    # =========================================================================

    async def _get_order(
        self,
        db: AsyncSession,
        order_id: int,
        user_id: Optional[int] = None,
        with_details: bool = False,
    ) -> Order:
        query = select(Order).where(Order.id == order_id)
        if user_id is not None:
            query = query.where(Order.user_id == user_id)
        if with_details:
            query = query.options(
                selectinload(Order.order_items).selectinload(OrderItem.item),
                selectinload(Order.payments),
            ).execution_options(populate_existing=True)
        order = (await db.execute(query)).scalar_one_or_none()
        if order is None:
            raise NotFound(f"Order #{order_id} not found.")
        return order

    async def get_order(self, db: AsyncSession, order_id: int, user_id: Optional[int] = None) -> Order:
        return await self._get_order(db, order_id, user_id, with_details=True)

    async def list_orders(self, db: AsyncSession, user_id: int) -> list[Order]:
        result = await db.execute(
            select(Order)
            .where(Order.user_id == user_id)
            .options(
                selectinload(Order.order_items).selectinload(OrderItem.item),
                selectinload(Order.payments),
            )
            .order_by(Order.id.desc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def list_all_orders(
        self,
        db: AsyncSession,
        skip: int = 0,
        limit: int = 20,
        status: Optional[OrderStatus] = None,
    ) -> tuple[int, list[Order]]:
        query = select(Order).order_by(Order.id.desc())
        count_query = select(func.count(Order.id))
        if status is not None:
            query = query.where(Order.status == status)
            count_query = count_query.where(Order.status == status)

        total = (await db.execute(count_query)).scalar() or 0
        result = await db.execute(query.offset(skip).limit(limit))
        return total, list(result.scalars().all())

    async def todays_orders(self, db: AsyncSession, canteen_id: int) -> list[Order]:
        result = await db.execute(
            select(Order)
            .where(
                Order.canteen_id == canteen_id,
                Order.status == OrderStatus.PLACED,
                Order.order_date == self.now().date(),
            )
            .options(
                selectinload(Order.order_items).selectinload(OrderItem.item),
                selectinload(Order.payments),
            )
            .order_by(Order.id.desc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def orders_summary(self, db: AsyncSession) -> dict:
        result = await db.execute(
            select(func.count(Order.id), func.coalesce(func.sum(Order.total_amount), 0))
            .where(Order.status == OrderStatus.PLACED)
        )
        count, amount = result.one()
        return {"totalOrders": count, "totalAmount": float(amount)}

    async def orders_by_canteen(self, db: AsyncSession) -> list[dict]:
        result = await db.execute(
            select(
                Canteen.canteen_name,
                func.count(Order.id),
                func.coalesce(func.sum(Order.total_amount), 0),
            )
            .join(Canteen, Canteen.id == Order.canteen_id)
            .where(Order.status == OrderStatus.PLACED)
            .group_by(Canteen.canteen_name)
        )
        return [
            {"canteenName": name, "totalOrders": count, "totalAmount": float(amount)}
            for name, count, amount in result.all()
        ]


@lru_cache()
def get_order_service() -> OrderService:
    """Get the shared OrderService instance."""
    return OrderService()
