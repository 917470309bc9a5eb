"""
WhatsApp Webhook Handlers

OrderingConversation drives the canteen ordering chat: it loads the
sender's session, interprets the reply, runs whatever catalog lookup or
order placement the command needs and stores the next state. Messages for
the same sender are serialized through the session store's per-key lock.

WebhookDispatcher routes inbound messages by recipient number and sends
the reply back through the messaging service.
"""

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from canteen.core.config import get_settings
from canteen.database import async_session_maker
from canteen.services import catalog
from canteen.services.chat import flow
from canteen.services.chat.flow import (
    CanteenOption,
    ItemOption,
    MenuOption,
    ReviewingCart,
    State,
    Transition,
)
from canteen.services.chat.session_store import SessionStore
from canteen.services.messaging import BaseMessagingService, get_messaging_service
from canteen.services.orders import CheckoutCart, CheckoutLine, OrderService, get_order_service

logger = logging.getLogger(__name__)


class OrderingConversation:
    """
    Canteen ordering flow for the WhatsApp ordering number.

    Example:
        >>> conversation = OrderingConversation()
        >>> await conversation.handle_message("919876543210", "hi")
        '🍽️ Welcome To ...! Choose a canteen:\\n1. Main Canteen'
    """

    def __init__(
        self,
        sessions: Optional[SessionStore] = None,
        session_factory: async_sessionmaker[AsyncSession] = async_session_maker,
        order_service: Optional[OrderService] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.settings = get_settings()
        self.sessions = sessions or SessionStore(ttl_minutes=self.settings.chat_session_ttl_minutes)
        self.session_factory = session_factory
        self._order_service = order_service
        self._clock = clock or (lambda: datetime.now(self.settings.tz))

    @property
    def order_service(self) -> OrderService:
        if self._order_service is None:
            self._order_service = get_order_service()
        return self._order_service

    def now(self) -> datetime:
        return self._clock()

    def today(self) -> date:
        return self.now().date()

    async def handle_message(self, session_key: str, raw_text: str) -> str:
        """Advance the sender's conversation by one reply and return the answer."""
        async with self.sessions.lock(session_key):
            state = self.sessions.get(session_key) or flow.ChoosingCanteen()
            command = flow.interpret(state, raw_text)
            logger.debug(f"Chat {session_key}: stage={state.stage} command={type(command).__name__}")

            transition = await self._execute(session_key, state, command)

            if transition.state is None:
                self.sessions.delete(session_key)
            else:
                self.sessions.set(session_key, transition.state)
            return transition.reply

    async def _execute(self, session_key: str, state: State, command: flow.Command) -> Transition:
        handlers = {
            flow.Restart: self._restart,
            flow.SelectCanteen: self._select_canteen,
            flow.SelectDate: self._select_date,
            flow.SelectMenu: self._select_menu,
            flow.UpdateCart: self._update_cart,
            flow.EditCart: self._edit_cart,
            flow.CancelOrder: self._cancel,
            flow.ConfirmOrder: self._confirm,
            flow.Reject: self._reject,
        }
        return await handlers[type(command)](session_key, state, command)

    # =========================================================================
    # COMMAND HANDLERS
    # =========================================================================

    async def _restart(self, session_key, state, command) -> Transition:
        try:
            async with self.session_factory() as db:
                canteens = await catalog.list_canteens_for_whatsapp(db)
        except SQLAlchemyError as e:
            logger.error(f"Error fetching canteens: {e}")
            canteens = []
        return flow.show_canteens(
            [CanteenOption(id=c.id, name=c.canteen_name) for c in canteens],
            title=self.settings.canteen_display_name,
        )

    async def _select_canteen(self, session_key, state, command) -> Transition:
        return flow.choose_canteen(command.canteen, self.today())

    async def _select_date(self, session_key, state, command) -> Transition:
        try:
            async with self.session_factory() as db:
                menus = await catalog.menus_for_canteen(db, state.canteen.id, command.day, now=self.now())
        except SQLAlchemyError as e:
            logger.error(f"Error fetching menus for canteen {state.canteen.id}: {e}")
            menus = []
        return flow.show_menus(
            state,
            command.day,
            [MenuOption(id=m.id, name=m.name, menu_configuration_id=m.menu_configuration_id) for m in menus],
        )

    async def _select_menu(self, session_key, state, command) -> Transition:
        try:
            async with self.session_factory() as db:
                menu_items = await catalog.menu_items_for_whatsapp(db, command.menu.id)
        except SQLAlchemyError as e:
            logger.error(f"Error fetching items for menu {command.menu.id}: {e}")
            menu_items = []
        return flow.show_items(
            state,
            command.menu,
            [
                ItemOption(id=mi.item.id, name=mi.item.name, price=Decimal(str(mi.item.price)))
                for mi in menu_items
            ],
        )

    async def _update_cart(self, session_key, state, command) -> Transition:
        return flow.update_cart(state, command.selections)

    async def _edit_cart(self, session_key, state, command) -> Transition:
        return flow.edit_cart(state)

    async def _cancel(self, session_key, state, command) -> Transition:
        return flow.cancel()

    async def _reject(self, session_key, state, command) -> Transition:
        return Transition(state, command.reply)

    async def _confirm(self, session_key: str, state: ReviewingCart, command) -> Transition:
        """Place the order and answer with the payment link; the session ends either way."""
        checkout = CheckoutCart(
            canteen_id=state.canteen.id,
            order_date=state.day,
            menu_configuration_id=state.menu.menu_configuration_id,
            lines=[
                CheckoutLine(item_id=line.item_id, quantity=line.quantity, price=line.price)
                for line in state.cart
            ],
        )
        try:
            async with self.session_factory() as db:
                result = await self.order_service.place_whatsapp_order(db, session_key, checkout)
        except Exception as e:
            logger.exception(f"Error placing WhatsApp order for {session_key}: {e}")
            return Transition(None, flow.ORDER_FAILED)

        if not result.payment_link:
            logger.error(
                f"Order {result.order.order_no} committed without a payment link: "
                f"{result.payment_link_error}"
            )
            return Transition(None, flow.ORDER_FAILED)

        logger.info(f"WhatsApp order {result.order.order_no} placed for {session_key}")
        return Transition(None, flow.PAYMENT_LINK.format(link=result.payment_link))


def generic_reply(text: str, ordering_number: str) -> str:
    """Reply for messages sent to any number other than the ordering line."""
    if (text or "").strip().lower() == "hi":
        return (
            "👋 Welcome! To order food from the canteen, message \"hi\" to "
            f"+{ordering_number} on WhatsApp."
        )
    return flow.RESTART_HINT


class WebhookDispatcher:
    """Routes inbound WhatsApp messages and delivers the reply."""

    def __init__(
        self,
        conversation: Optional[OrderingConversation] = None,
        messaging: Optional[BaseMessagingService] = None,
    ):
        self.settings = get_settings()
        self.conversation = conversation or OrderingConversation()
        self._messaging = messaging

    @property
    def messaging(self) -> BaseMessagingService:
        if self._messaging is None:
            self._messaging = get_messaging_service()
        return self._messaging

    async def dispatch(self, recipient: Optional[str], source: str, text: str) -> str:
        if recipient == self.settings.whatsapp_ordering_number:
            reply = await self.conversation.handle_message(source, text)
        else:
            reply = generic_reply(text, self.settings.whatsapp_ordering_number)

        sent = await self.messaging.send_text(
            to=source,
            text=reply,
            from_number=self.settings.whatsapp_from_number,
        )
        if not sent.success:
            logger.error(f"❌ Error sending reply to {source}: {sent.error_message}")
        return reply


# Singleton instance
_dispatcher_instance: Optional[WebhookDispatcher] = None


def get_webhook_dispatcher() -> WebhookDispatcher:
    """Get the webhook dispatcher instance."""
    global _dispatcher_instance

    if _dispatcher_instance is None:
        _dispatcher_instance = WebhookDispatcher()

    return _dispatcher_instance
