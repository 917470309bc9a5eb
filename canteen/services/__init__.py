"""
                        Services Module

Business logic behind the API and the WhatsApp webhook. External
collaborators follow the hybrid pattern: a Mock implementation in
development and the real provider otherwise.

Services:
    - payment: Cashfree payment links and PG orders
    - messaging: Airtel IQ WhatsApp text, media and template messages
    - chat: WhatsApp ordering conversation and webhook routing
    - orders: order placement, payment sync and cancellation
    - catalog / cart / wallet: catalog CRUD, web carts, wallet ledger
"""
