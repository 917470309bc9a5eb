"""
                Welfare Canteen Ordering Platform

Multi-tenant canteen ordering backend: menus, carts, orders, wallet
and online payments, plus a WhatsApp conversational ordering flow.

Version: 1.0.0
"""

__version__ = "1.0.0"
