import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./.pytest_canteen.db"
os.environ["ENV_MODE"] = "development"

from dataclasses import dataclass
from datetime import date, time, timedelta
from decimal import Decimal

import httpx
import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from canteen.database import Base, get_db
from canteen.models import Canteen, Item, Menu, MenuConfiguration, MenuItem, User
from canteen.routers import deps
from canteen.services.chat import OrderingConversation, SessionStore, WebhookDispatcher
from canteen.services.messaging import MockMessagingService
from canteen.services.orders import OrderService
from canteen.services.payment import MockPaymentGateway
from canteen.services.wallet import add_credit


@pytest.fixture
async def session_maker(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'canteen.db'}", poolclass=NullPool)

    # sqlite3's implicit transaction handling breaks SAVEPOINT; emit BEGIN explicitly
    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
async def db(session_maker):
    async with session_maker() as session:
        yield session


@dataclass
class Seed:
    canteen_id: int
    config_id: int
    menu_id: int
    dosa_id: int
    tea_id: int
    user_id: int
    today: date


@pytest.fixture
async def seed(session_maker):
    """One canteen serving a lunch menu (dosa ₹50, tea ₹30) this week and a customer."""
    today = date.today()
    async with session_maker() as s:
        canteen = Canteen(canteen_name="Main Canteen", canteen_code="MC01")
        config = MenuConfiguration(name="Lunch", default_start_time=time(12, 0), default_end_time=time(14, 0))
        dosa = Item(name="Masala Dosa", price=Decimal("50.00"))
        tea = Item(name="Tea", price=Decimal("30.00"))
        user = User(first_name="Asha", last_name="Rao", mobile="9876543210")
        s.add_all([canteen, config, dosa, tea, user])
        await s.flush()

        menu = Menu(
            name="Lunch",
            canteen_id=canteen.id,
            menu_configuration_id=config.id,
            start_date=today - timedelta(days=1),
            end_date=today + timedelta(days=7),
        )
        s.add(menu)
        await s.flush()
        s.add_all([
            MenuItem(menu_id=menu.id, item_id=dosa.id, min_quantity=1, max_quantity=5),
            MenuItem(menu_id=menu.id, item_id=tea.id, min_quantity=1, max_quantity=5),
        ])
        await s.commit()

        return Seed(
            canteen_id=canteen.id,
            config_id=config.id,
            menu_id=menu.id,
            dosa_id=dosa.id,
            tea_id=tea.id,
            user_id=user.id,
            today=today,
        )


@pytest.fixture
def fund_wallet(session_maker):
    async def _fund(user_id: int, amount: str, reference: str = "topup") -> None:
        async with session_maker() as s:
            add_credit(s, user_id, reference, Decimal(amount))
            await s.commit()
    return _fund


@pytest.fixture
def gateway():
    return MockPaymentGateway()


@pytest.fixture
def messaging():
    return MockMessagingService()


@pytest.fixture
def notified():
    return []


@pytest.fixture
def order_service(gateway, notified):
    return OrderService(
        payment_gateway=gateway,
        notifier=lambda order, user: notified.append(order.order_no),
    )


@pytest.fixture
def conversation(session_maker, order_service):
    return OrderingConversation(
        sessions=SessionStore(ttl_minutes=30),
        session_factory=session_maker,
        order_service=order_service,
    )


@pytest.fixture
async def client(session_maker, order_service, conversation, messaging):
    from canteen.main import app

    async def override_get_db():
        async with session_maker() as session:
            yield session

    dispatcher = WebhookDispatcher(conversation=conversation, messaging=messaging)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[deps.order_service] = lambda: order_service
    app.dependency_overrides[deps.webhook_dispatcher] = lambda: dispatcher

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
