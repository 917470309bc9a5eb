"""
WhatsApp chat ordering: pure conversation flow, session store and the
webhook handlers that connect them to the catalog and order services.
"""

from canteen.services.chat.session_store import SessionStore
from canteen.services.chat.handler import (
    OrderingConversation,
    WebhookDispatcher,
    generic_reply,
    get_webhook_dispatcher,
)

__all__ = [
    "SessionStore",
    "OrderingConversation",
    "WebhookDispatcher",
    "generic_reply",
    "get_webhook_dispatcher",
]
