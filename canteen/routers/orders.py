"""
Cart, order, wallet, payment and WhatsApp webhook endpoints.
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from canteen.core.config import get_settings
from canteen.database import get_db
from canteen.exceptions import ExternalServiceError, ValidationError
from canteen.models import OrderStatus, User
from canteen.routers.deps import current_user, current_user_id, ok, order_service, webhook_dispatcher
from canteen.schemas import (
    ApiResponse,
    CartAdd,
    CartItemRemove,
    CartItemUpdate,
    CartOut,
    GatewayOrderOut,
    GatewayOrderRequest,
    OrderDetailOut,
    OrderIdRequest,
    OrderListOut,
    OrderOut,
    OrderStatusUpdate,
    PaymentLinkOut,
    PaymentLinkSyncRequest,
    PaymentOut,
    PaymentSyncOut,
    PlaceOrderOut,
    PlaceOrderRequest,
    WalkinOrdersRequest,
    WalletBalanceOut,
    WalletEntryOut,
    WhatsAppWebhookPayload,
)
from canteen.services import cart as cart_service
from canteen.services.chat import WebhookDispatcher
from canteen.services.orders import OrderService, WalkinLine, WalkinOrder
from canteen.services.phone import normalize_mobile
from canteen.services.wallet import get_wallet_balance, get_wallet_transactions

logger = logging.getLogger(__name__)

cart_router = APIRouter(prefix="/api/cart", tags=["Cart"])
order_router = APIRouter(prefix="/api/order", tags=["Orders"])
paymentsdk_router = APIRouter(prefix="/api/paymentsdk", tags=["Payment SDK"])
webhook_router = APIRouter(tags=["WhatsApp Webhook"])


def _cart_out(cart) -> Optional[CartOut]:
    return CartOut.model_validate(cart) if cart is not None else None


# =============================================================================
# CART
# =============================================================================

@cart_router.post("/addCartData", response_model=ApiResponse[CartOut])
async def add_cart_data(
    body: CartAdd,
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    cart = await cart_service.add_to_cart(
        db, user_id, body.menu_id, body.item_id, body.quantity, body.order_date
    )
    return ok("Item added to cart successfully.", _cart_out(cart))


@cart_router.get("/getCart", response_model=ApiResponse[CartOut])
async def get_cart(
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    cart = await cart_service.get_cart(db, user_id)
    return ok("Cart fetched successfully." if cart else "Cart is empty.", _cart_out(cart))


@cart_router.post("/updateCartItem", response_model=ApiResponse[CartOut])
async def update_cart_item(
    body: CartItemUpdate,
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    cart = await cart_service.update_cart_item(db, user_id, body.cart_item_id, body.quantity)
    return ok("Cart updated successfully.", _cart_out(cart))


@cart_router.post("/removeCartItem", response_model=ApiResponse[CartOut])
async def remove_cart_item(
    body: CartItemRemove,
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    cart = await cart_service.remove_cart_item(db, user_id, body.cart_item_id)
    return ok("Item removed from cart successfully.", _cart_out(cart))


@cart_router.post("/clearCart", response_model=ApiResponse[None])
async def clear_cart(
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    await cart_service.clear_cart(db, user_id)
    return ok("Cart cleared successfully.")


# =============================================================================
# ORDER PLACEMENT & PAYMENTS
# =============================================================================

@order_router.post("/placeOrder", response_model=ApiResponse[PlaceOrderOut])
async def place_order(
    body: PlaceOrderRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(current_user),
    service: OrderService = Depends(order_service),
):
    result = await service.place_order(db, user, body.payment_method, platform=body.platform)

    message = "Order placed successfully."
    if result.payment_link_error:
        message = "Order created, but the payment link could not be generated. Please retry payment."

    return ok(message, PlaceOrderOut(
        order=OrderOut.model_validate(result.order),
        payments=[PaymentOut.model_validate(p) for p in result.payments],
        payment_link=result.payment_link,
    ))


@order_router.post("/createPaymentLink", response_model=ApiResponse[PaymentLinkOut])
async def create_payment_link(
    body: OrderIdRequest,
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(current_user_id),
    service: OrderService = Depends(order_service),
):
    link = await service.create_payment_link(db, body.order_id, user_id=user_id)
    return ok("Payment link created successfully.", PaymentLinkOut(
        link_id=link.link_id,
        link_url=link.link_url,
        link_status=link.link_status,
        amount=link.amount,
    ))


@order_router.post("/CashfreePaymentLinkDetails", response_model=ApiResponse[PaymentSyncOut])
async def payment_link_details(
    body: PaymentLinkSyncRequest,
    db: AsyncSession = Depends(get_db),
    service: OrderService = Depends(order_service),
):
    result = await service.sync_payment_link(db, body.link_id)
    return ok("Payment link details fetched successfully.", PaymentSyncOut(
        link_status=result.link_status,
        payment_status=result.payment.status,
        order_status=result.order.status,
        order_id=result.order.id,
    ))


@order_router.api_route("/cashfreecallback", methods=["GET", "POST"], response_model=ApiResponse[dict])
async def cashfree_callback(request: Request):
    """Gateway redirect / notification target; records what the gateway reported."""
    payload: dict[str, Any] = dict(request.query_params)
    if request.method == "POST":
        try:
            body = await request.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            payload.update(body)

    data = {
        "order_id": payload.get("order_id"),
        "payment_status": payload.get("payment_status"),
        "transaction_id": payload.get("transaction_id"),
    }
    logger.info(f"Cashfree callback ({request.method}): {data}")
    return ok("Callback received.", data)


# =============================================================================
# CANCELLATION & WALLET
# =============================================================================

@order_router.post("/cancelOrder", response_model=ApiResponse[dict])
async def cancel_order(
    body: OrderIdRequest,
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(current_user_id),
    service: OrderService = Depends(order_service),
):
    result = await service.cancel_order(db, body.order_id, user_id=user_id)
    return ok("Order cancelled and amount refunded to wallet.", result.to_dict())


@order_router.get("/getWalletBalance", response_model=ApiResponse[WalletBalanceOut])
async def wallet_balance(
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    balance = await get_wallet_balance(db, user_id)
    return ok("Wallet balance fetched successfully.", WalletBalanceOut(balance=balance))


@order_router.get("/getWalletTransactions", response_model=ApiResponse[list[WalletEntryOut]])
async def wallet_transactions(
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    entries = await get_wallet_transactions(db, user_id)
    return ok("Wallet transactions fetched successfully.", [WalletEntryOut.model_validate(e) for e in entries])


# =============================================================================
# ORDER QUERIES & ADMIN
# =============================================================================

@order_router.get("/listOrders", response_model=ApiResponse[list[OrderDetailOut]])
async def list_orders(
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(current_user_id),
    service: OrderService = Depends(order_service),
):
    orders = await service.list_orders(db, user_id)
    return ok("Orders fetched successfully.", [OrderDetailOut.model_validate(o) for o in orders])


@order_router.get("/getAllOrders", response_model=ApiResponse[OrderListOut])
async def get_all_orders(
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    status: Optional[OrderStatus] = Query(None),
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(current_user_id),
    service: OrderService = Depends(order_service),
):
    total, orders = await service.list_all_orders(db, skip=skip, limit=limit, status=status)
    return ok("Orders fetched successfully.", OrderListOut(
        total=total,
        orders=[OrderOut.model_validate(o) for o in orders],
    ))


@order_router.get("/getOrderById", response_model=ApiResponse[OrderDetailOut])
async def get_order_by_id(
    order_id: int = Query(..., alias="id"),
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(current_user_id),
    service: OrderService = Depends(order_service),
):
    order = await service.get_order(db, order_id, user_id=user_id)
    return ok("Order fetched successfully.", OrderDetailOut.model_validate(order))


@order_router.get("/ordersSummary", response_model=ApiResponse[dict])
async def orders_summary(
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(current_user_id),
    service: OrderService = Depends(order_service),
):
    return ok("Orders summary fetched successfully.", await service.orders_summary(db))


@order_router.get("/getOrdersByCanteen", response_model=ApiResponse[list[dict]])
async def orders_by_canteen(
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(current_user_id),
    service: OrderService = Depends(order_service),
):
    return ok("Orders by canteen fetched successfully.", await service.orders_by_canteen(db))


@order_router.get("/getTodaysOrdersByCateen/{canteen_id}", response_model=ApiResponse[list[OrderDetailOut]])
async def todays_orders(
    canteen_id: int,
    db: AsyncSession = Depends(get_db),
    service: OrderService = Depends(order_service),
):
    orders = await service.todays_orders(db, canteen_id)
    return ok("Today's orders fetched successfully.", [OrderDetailOut.model_validate(o) for o in orders])


@order_router.post("/updateOrderStatus", response_model=ApiResponse[dict])
async def update_order_status(
    body: OrderStatusUpdate,
    db: AsyncSession = Depends(get_db),
    service: OrderService = Depends(order_service),
):
    updated = await service.update_order_status(db, body.order_ids)
    return ok("Order status updated successfully.", {"updated": updated})


@order_router.post("/createWalkinOrders", response_model=ApiResponse[list[OrderOut]])
async def create_walkin_orders(
    body: WalkinOrdersRequest,
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(current_user_id),
    service: OrderService = Depends(order_service),
):
    entries = [
        WalkinOrder(
            contact_number=normalize_mobile(o.contact_number or ""),
            customer_name=o.customer_name,
            menu_configuration_id=o.menu_configuration_id,
            lines=[
                WalkinLine(
                    item_id=line.item_id,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                    total_price=line.total_price,
                )
                for line in o.order_items
            ],
            total_amount=o.total_amount,
            final_amount=o.final_amount,
            payment_method=o.payment_method,
            notes=o.notes,
        )
        for o in body.orders
    ]
    orders = await service.create_walkin_orders(db, body.canteen_id, entries)
    return ok(
        f"{len(orders)} walk-in order(s) created successfully.",
        [OrderOut.model_validate(o) for o in orders],
    )


@order_router.get("/{order_id:int}", response_model=ApiResponse[OrderDetailOut])
async def scan_order(
    order_id: int,
    db: AsyncSession = Depends(get_db),
    service: OrderService = Depends(order_service),
):
    """Target of the order QR code scanned at the counter."""
    order = await service.get_order(db, order_id)
    return ok("Order fetched successfully.", OrderDetailOut.model_validate(order))


# =============================================================================
# PAYMENT SDK
# =============================================================================

@paymentsdk_router.post("/createOrder", response_model=ApiResponse[GatewayOrderOut])
async def create_gateway_order(
    body: GatewayOrderRequest,
    service: OrderService = Depends(order_service),
):
    """Create a Cashfree PG order for the mobile checkout SDK."""
    result = await service.payment_gateway.create_order(
        amount=body.amount,
        customer_id=body.customer_id,
        customer_phone=normalize_mobile(body.customer_phone),
        customer_email=body.customer_email,
        customer_name=body.customer_name or "Customer",
        return_url=get_settings().payment_return_url,
        note=body.note,
    )
    if not result.success:
        raise ExternalServiceError(
            "Failed to create payment order.",
            provider=service.payment_gateway.provider_name,
            response_body=result.error_message,
        )
    return ok("Payment order created successfully.", GatewayOrderOut(
        order_id=result.order_id,
        cf_order_id=result.cf_order_id,
        payment_session_id=result.payment_session_id,
        order_status=result.order_status,
    ))


# =============================================================================
# WHATSAPP WEBHOOK
# =============================================================================

@webhook_router.post("/webhook", response_model=ApiResponse[dict])
async def whatsapp_webhook(
    payload: WhatsAppWebhookPayload,
    dispatcher: WebhookDispatcher = Depends(webhook_dispatcher),
):
    """Inbound WhatsApp messages; only RECEIVED messages are processed."""
    if payload.msg_status != "RECEIVED":
        return ok("Webhook ignored.")

    if not payload.source_address or not payload.text:
        raise ValidationError("Invalid webhook payload.")

    logger.info(f"📨 WhatsApp message from {payload.source_address} to {payload.recipient_address}")
    reply = await dispatcher.dispatch(payload.recipient_address, payload.source_address, payload.text)
    return ok("Webhook processed.", {"reply": reply})
