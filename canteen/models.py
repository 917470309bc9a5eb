"""
SQLAlchemy Database Models

Canteen ordering domain:
- Catalog: canteens, categories, items, menu configurations, menus
- Web carts persisted per user until checkout
- Orders with one-to-many payments
- Append-only wallet ledger

Version: 1.0.0
"""

import enum

from sqlalchemy import (
    Column,
    Integer,
    String,
    Numeric,
    Date,
    Time,
    DateTime,
    Text,
    Enum,
    ForeignKey,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from canteen.database import Base


# =============================================================================
# ENUMS
# =============================================================================

class RecordStatus(str, enum.Enum):
    """Soft-delete flag shared by catalog rows."""
    ACTIVE = "active"
    INACTIVE = "inactive"


class OrderStatus(str, enum.Enum):
    """Order status workflow."""
    INITIATED = "initiated"
    PLACED = "placed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentMethod(str, enum.Enum):
    WALLET = "wallet"
    ONLINE = "online"
    CASH = "cash"
    UPI = "upi"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    SUCCESS = "success"
    REFUNDED = "refunded"
    COMPLETED = "completed"


class WalletEntryType(str, enum.Enum):
    CREDIT = "credit"
    DEBIT = "debit"


class CartStatus(str, enum.Enum):
    ACTIVE = "active"
    CHECKED_OUT = "checked_out"


# =============================================================================
# USERS & CANTEENS
# =============================================================================

class Canteen(Base):
    """A physical food outlet, the tenant unit of the platform."""
    __tablename__ = "canteens"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    canteen_name = Column(String(100), nullable=False)
    canteen_code = Column(String(50), nullable=False, unique=True, index=True)
    status = Column(Enum(RecordStatus), default=RecordStatus.ACTIVE, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<Canteen #{self.id} - {self.canteen_code}>"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    email = Column(String(255), nullable=True)
    mobile = Column(String(20), nullable=False, unique=True, index=True)
    canteen_id = Column(Integer, ForeignKey("canteens.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)

    def __repr__(self):
        return f"<User #{self.id} - {self.mobile}>"


# =============================================================================
# CATALOG
# =============================================================================

class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(100), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Item(Base):
    """A sellable dish; price lives on the item in the shop currency."""
    __tablename__ = "items"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    type = Column(String(20), nullable=True)  # veg / non-veg
    quantity = Column(Integer, nullable=True)
    quantity_unit = Column(String(20), nullable=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True)
    price = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), default="INR", nullable=False)
    status = Column(Enum(RecordStatus), default=RecordStatus.ACTIVE, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    category = relationship("Category", lazy="raise")

    def __repr__(self):
        return f"<Item #{self.id} - {self.name}>"


class MenuConfiguration(Base):
    """
    A named serving window template (breakfast, lunch, ...).

    default_end_time bounds the cancellation window for orders placed
    against menus built on this configuration.
    """
    __tablename__ = "menu_configurations"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    default_start_time = Column(Time, nullable=True)
    default_end_time = Column(Time, nullable=True)
    status = Column(Enum(RecordStatus), default=RecordStatus.ACTIVE, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Menu(Base):
    """A canteen-specific instantiation of a menu configuration for a date range."""
    __tablename__ = "menus"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    canteen_id = Column(Integer, ForeignKey("canteens.id"), nullable=False, index=True)
    menu_configuration_id = Column(
        Integer, ForeignKey("menu_configurations.id"), nullable=False
    )
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    status = Column(Enum(RecordStatus), default=RecordStatus.ACTIVE, nullable=False, index=True)
    created_by_id = Column(Integer, nullable=True)
    updated_by_id = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    configuration = relationship("MenuConfiguration", lazy="raise")
    menu_items = relationship(
        "MenuItem",
        back_populates="menu",
        cascade="all, delete-orphan",
        lazy="raise",
    )

    def __repr__(self):
        return f"<Menu #{self.id} - {self.name} ({self.start_date} → {self.end_date})>"


class MenuItem(Base):
    __tablename__ = "menu_items"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    menu_id = Column(Integer, ForeignKey("menus.id"), nullable=False, index=True)
    item_id = Column(Integer, ForeignKey("items.id"), nullable=False)
    min_quantity = Column(Integer, default=1, nullable=False)
    max_quantity = Column(Integer, default=10, nullable=False)
    status = Column(Enum(RecordStatus), default=RecordStatus.ACTIVE, nullable=False)

    menu = relationship("Menu", back_populates="menu_items", lazy="raise")
    item = relationship("Item", lazy="raise")


# =============================================================================
# CART (web flow)
# =============================================================================

class Cart(Base):
    __tablename__ = "carts"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    canteen_id = Column(Integer, ForeignKey("canteens.id"), nullable=False)
    menu_configuration_id = Column(
        Integer, ForeignKey("menu_configurations.id"), nullable=True
    )
    menu_id = Column(Integer, ForeignKey("menus.id"), nullable=True)
    order_date = Column(Date, nullable=False)
    status = Column(Enum(CartStatus), default=CartStatus.ACTIVE, nullable=False)
    total_amount = Column(Numeric(12, 2), default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    cart_items = relationship(
        "CartItem",
        back_populates="cart",
        cascade="all, delete-orphan",
        lazy="raise",
    )


class CartItem(Base):
    __tablename__ = "cart_items"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    cart_id = Column(Integer, ForeignKey("carts.id"), nullable=False, index=True)
    item_id = Column(Integer, ForeignKey("items.id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    price = Column(Numeric(12, 2), nullable=False)
    total = Column(Numeric(12, 2), nullable=False)

    cart = relationship("Cart", back_populates="cart_items", lazy="raise")
    item = relationship("Item", lazy="raise")


# =============================================================================
# ORDERS & PAYMENTS
# =============================================================================

class Order(Base):
    """
    Placed customer order.

    order_no is unique at the database level; generation retries on
    violation instead of trusting a read-then-insert check.
    """
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    order_no = Column(String(40), nullable=False, unique=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    canteen_id = Column(Integer, ForeignKey("canteens.id"), nullable=False, index=True)
    menu_configuration_id = Column(
        Integer, ForeignKey("menu_configurations.id"), nullable=True
    )

    # =========================================================================
    # PRICING & STATUS
    # =========================================================================
    total_amount = Column(Numeric(12, 2), nullable=False)
    status = Column(
        Enum(OrderStatus),
        default=OrderStatus.INITIATED,
        nullable=False,
        index=True
    )
    order_date = Column(Date, nullable=False, index=True)
    qr_code = Column(Text, nullable=True)  # PNG data URL
    notes = Column(Text, nullable=True)

    # =========================================================================
    # AUDIT
    # =========================================================================
    created_by_id = Column(Integer, nullable=True)
    updated_by_id = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    order_items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="raise",
    )
    payments = relationship(
        "Payment",
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="raise",
    )
    canteen = relationship("Canteen", lazy="raise")
    user = relationship("User", lazy="raise")

    def __repr__(self):
        return f"<Order #{self.id} - {self.order_no} - {self.status.value}>"


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    item_id = Column(Integer, ForeignKey("items.id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    price = Column(Numeric(12, 2), nullable=False)
    total = Column(Numeric(12, 2), nullable=False)
    created_by_id = Column(Integer, nullable=True)

    order = relationship("Order", back_populates="order_items", lazy="raise")
    item = relationship("Item", lazy="raise")


class Payment(Base):
    """One payment attempt against an order; an order may carry several."""
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    payment_method = Column(Enum(PaymentMethod), nullable=False)
    transaction_id = Column(String(100), nullable=True)
    amount = Column(Numeric(12, 2), nullable=False)
    total_amount = Column(Numeric(12, 2), nullable=False)
    gateway_percentage = Column(Numeric(5, 2), default=0, nullable=False)
    gateway_charges = Column(Numeric(12, 2), default=0, nullable=False)
    currency = Column(String(3), default="INR", nullable=False)
    status = Column(
        Enum(PaymentStatus),
        default=PaymentStatus.PENDING,
        nullable=False,
        index=True
    )
    created_by_id = Column(Integer, nullable=True)
    updated_by_id = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    order = relationship("Order", back_populates="payments", lazy="raise")

    def __repr__(self):
        return (
            f"<Payment #{self.id} - order {self.order_id} - "
            f"{self.payment_method.value} {self.amount} {self.status.value}>"
        )


# =============================================================================
# WALLET LEDGER
# =============================================================================

class WalletEntry(Base):
    """
    Immutable credit/debit record.

    There is no stored running balance: the balance is always
    sum(credit) - sum(debit) over the user's entries.
    """
    __tablename__ = "wallets"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    reference_id = Column(String(50), nullable=False)  # order id
    type = Column(Enum(WalletEntryType), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<WalletEntry #{self.id} - user {self.user_id} - {self.type.value} {self.amount}>"
