"""
Pydantic Schemas for Request/Response Validation

Wire format is camelCase (canteenId, orderDate, ...); Python attributes
stay snake_case. Every model accepts either spelling on input.

Dates are accepted as DD-MM-YYYY (the format the clients and the chat
flow display) or ISO 8601.

Version: 1.0.0
"""

from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from canteen.models import OrderStatus, PaymentMethod, PaymentStatus, RecordStatus, WalletEntryType

T = TypeVar("T")


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


def parse_date(value: Any) -> Any:
    """Accept 'DD-MM-YYYY' as well as ISO dates."""
    if isinstance(value, str) and len(value) == 10 and value[2] == "-" and value[5] == "-":
        try:
            return datetime.strptime(value, "%d-%m-%Y").date()
        except ValueError:
            raise ValueError("Invalid date format. Use DD-MM-YYYY format.")
    return value


# =============================================================================
# ENVELOPE
# =============================================================================

class ApiResponse(BaseModel, Generic[T]):
    """Every JSON response: {"message": ..., "data": ...}."""
    message: str
    data: Optional[T] = None


# =============================================================================
# WEBHOOK
# =============================================================================

class WebhookText(BaseModel):
    body: Optional[str] = None


class WebhookMessageParameters(BaseModel):
    text: Optional[WebhookText] = None


class WhatsAppWebhookPayload(CamelModel):
    """Inbound message notification from the WhatsApp provider."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    msg_status: Optional[str] = None
    recipient_address: Optional[str] = None
    source_address: Optional[str] = None
    message_parameters: Optional[WebhookMessageParameters] = None

    @property
    def text(self) -> Optional[str]:
        if self.message_parameters and self.message_parameters.text:
            return self.message_parameters.text.body
        return None


# =============================================================================
# CATALOG REQUESTS
# =============================================================================

class CanteenCreate(CamelModel):
    canteen_name: str = Field(..., min_length=1, max_length=100, examples=["Main Canteen"])
    canteen_code: str = Field(..., min_length=1, max_length=50, examples=["MC01"])
    admin_mobile: Optional[str] = Field(None, examples=["9876543210"])
    admin_first_name: Optional[str] = None
    admin_last_name: Optional[str] = None
    admin_email: Optional[str] = None


class CanteenUpdate(CamelModel):
    canteen_id: int
    canteen_name: Optional[str] = Field(None, min_length=1, max_length=100)
    canteen_code: Optional[str] = Field(None, min_length=1, max_length=50)
    status: Optional[RecordStatus] = None


class CategoryCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None


class CategoryDelete(CamelModel):
    id: int


class ItemCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100, examples=["Masala Dosa"])
    price: Decimal = Field(..., gt=0, examples=[50])
    description: Optional[str] = None
    type: Optional[str] = Field(None, examples=["veg"])
    quantity: Optional[int] = Field(None, ge=0)
    quantity_unit: Optional[str] = None
    category_id: Optional[int] = None
    currency: Optional[str] = Field(None, max_length=3)


class ItemUpdate(CamelModel):
    id: int
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    price: Optional[Decimal] = Field(None, gt=0)
    description: Optional[str] = None
    type: Optional[str] = None
    quantity: Optional[int] = Field(None, ge=0)
    quantity_unit: Optional[str] = None
    category_id: Optional[int] = None


class ItemDelete(CamelModel):
    id: int


class MenuConfigurationCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100, examples=["Lunch"])
    default_start_time: time = Field(..., examples=["12:00"])
    default_end_time: time = Field(..., examples=["15:00"])


class MenuItemIn(CamelModel):
    item_id: int
    min_quantity: int = Field(default=1, ge=1)
    max_quantity: int = Field(default=10, ge=1)


class MenuCreate(CamelModel):
    canteen_id: int
    menu_configuration_id: int
    start_date: date = Field(..., examples=["01-08-2026"])
    end_date: date = Field(..., examples=["31-08-2026"])
    description: Optional[str] = None
    items: list[MenuItemIn] = Field(..., min_length=1)

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def parse_dates(cls, v: Any) -> Any:
        return parse_date(v)


class MenuUpdate(CamelModel):
    items: list[MenuItemIn] = Field(..., min_length=1)
    description: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def parse_dates(cls, v: Any) -> Any:
        return parse_date(v)


class MenuDelete(CamelModel):
    menu_id: int


# =============================================================================
# CART & ORDER REQUESTS
# =============================================================================

class CartAdd(CamelModel):
    menu_id: int
    item_id: int
    quantity: int = Field(..., ge=1, le=99)
    order_date: date = Field(..., examples=["15-08-2026"])

    @field_validator("order_date", mode="before")
    @classmethod
    def parse_dates(cls, v: Any) -> Any:
        return parse_date(v)


class CartItemUpdate(CamelModel):
    cart_item_id: int
    quantity: int = Field(..., ge=0, le=99)


class CartItemRemove(CamelModel):
    cart_item_id: int


class PlaceOrderRequest(CamelModel):
    payment_method: str = Field(
        ...,
        pattern=r"^(wallet|online|cash|upi)(\+(online|cash|upi))?$",
        examples=["wallet", "online", "wallet+online"],
    )
    platform: Optional[str] = Field(None, examples=["web", "mobile"])

    @field_validator("payment_method", mode="before")
    @classmethod
    def normalize_method(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v


class OrderIdRequest(CamelModel):
    order_id: int


class OrderStatusUpdate(CamelModel):
    order_ids: list[int] = Field(..., min_length=1)


class PaymentLinkSyncRequest(CamelModel):
    link_id: str = Field(..., min_length=1, examples=["canteen_link_42"])


class WalkinOrderItemIn(CamelModel):
    item_id: int = Field(..., alias="menuItemId")
    quantity: int = Field(..., ge=1)
    unit_price: Decimal = Field(..., ge=0)
    total_price: Optional[Decimal] = Field(None, ge=0)


class WalkinOrderIn(CamelModel):
    contact_number: Optional[str] = None
    customer_name: Optional[str] = None
    menu_configuration_id: Optional[int] = None
    order_items: list[WalkinOrderItemIn] = Field(default_factory=list)
    total_amount: Decimal = Field(..., ge=0)
    final_amount: Optional[Decimal] = Field(None, ge=0)
    payment_method: PaymentMethod = PaymentMethod.CASH
    notes: Optional[str] = None

    @field_validator("payment_method", mode="before")
    @classmethod
    def normalize_method(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v


class WalkinOrdersRequest(CamelModel):
    canteen_id: int
    orders: list[WalkinOrderIn] = Field(..., min_length=1)


class GatewayOrderRequest(CamelModel):
    amount: Decimal = Field(..., gt=0)
    customer_id: str = Field(..., min_length=1)
    customer_phone: str = Field(..., min_length=10, max_length=15)
    customer_email: Optional[str] = None
    customer_name: Optional[str] = None
    note: Optional[str] = None


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class CanteenOut(CamelModel):
    id: int
    canteen_name: str
    canteen_code: str
    status: RecordStatus


class WhatsAppCanteenOut(CamelModel):
    id: int
    canteen_name: str


class CategoryOut(CamelModel):
    id: int
    name: str
    description: Optional[str] = None


class ItemOut(CamelModel):
    id: int
    name: str
    description: Optional[str] = None
    type: Optional[str] = None
    quantity: Optional[int] = None
    quantity_unit: Optional[str] = None
    category_id: Optional[int] = None
    price: float
    currency: str
    status: RecordStatus


class MenuConfigurationOut(CamelModel):
    id: int
    name: str
    default_start_time: Optional[time] = None
    default_end_time: Optional[time] = None
    status: RecordStatus


class MenuItemOut(CamelModel):
    id: int
    item_id: int
    min_quantity: int
    max_quantity: int
    status: RecordStatus
    item: Optional[ItemOut] = None


class MenuOut(CamelModel):
    id: int
    name: str
    description: Optional[str] = None
    canteen_id: int
    menu_configuration_id: int
    start_date: date
    end_date: date
    status: RecordStatus


class MenuWithConfigurationOut(MenuOut):
    configuration: Optional[MenuConfigurationOut] = None


class MenuDetailOut(MenuWithConfigurationOut):
    menu_items: list[MenuItemOut] = Field(default_factory=list)


class WhatsAppMenuItemOut(CamelModel):
    id: int
    name: str
    description: Optional[str] = None
    price: float
    currency: str
    min_quantity: int
    max_quantity: int


class CartItemOut(CamelModel):
    id: int
    item_id: int
    quantity: int
    price: float
    total: float
    item: Optional[ItemOut] = None


class CartOut(CamelModel):
    id: int
    canteen_id: int
    menu_configuration_id: Optional[int] = None
    menu_id: Optional[int] = None
    order_date: date
    total_amount: float
    cart_items: list[CartItemOut] = Field(default_factory=list)


class PaymentOut(CamelModel):
    id: int
    order_id: int
    payment_method: PaymentMethod
    transaction_id: Optional[str] = None
    amount: float
    total_amount: float
    gateway_charges: float
    currency: str
    status: PaymentStatus


class OrderItemOut(CamelModel):
    id: int
    item_id: int
    quantity: int
    price: float
    total: float
    item: Optional[ItemOut] = None


class OrderOut(CamelModel):
    id: int
    order_no: str
    user_id: int
    canteen_id: int
    menu_configuration_id: Optional[int] = None
    total_amount: float
    status: OrderStatus
    order_date: date
    qr_code: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None


class OrderDetailOut(OrderOut):
    order_items: list[OrderItemOut] = Field(default_factory=list)
    payments: list[PaymentOut] = Field(default_factory=list)


class PlaceOrderOut(CamelModel):
    order: OrderOut
    payments: list[PaymentOut]
    payment_link: Optional[str] = None


class OrderListOut(CamelModel):
    total: int
    orders: list[OrderOut]


class WalletEntryOut(CamelModel):
    id: int
    reference_id: str
    type: WalletEntryType
    amount: float
    created_at: Optional[datetime] = None


class WalletBalanceOut(CamelModel):
    balance: float


class PaymentLinkOut(CamelModel):
    link_id: Optional[str] = None
    link_url: Optional[str] = None
    link_status: Optional[str] = None
    amount: Optional[float] = None


class PaymentSyncOut(CamelModel):
    link_status: Optional[str] = None
    payment_status: PaymentStatus
    order_status: OrderStatus
    order_id: int


class GatewayOrderOut(CamelModel):
    order_id: Optional[str] = None
    cf_order_id: Optional[str] = None
    payment_session_id: Optional[str] = None
    order_status: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    database: str
    redis: str
    payment_service: str
    messaging_service: str
    timestamp: datetime
