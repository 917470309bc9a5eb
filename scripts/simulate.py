"""
WhatsApp Conversation Simulation Script

Drives many concurrent customers through the WhatsApp ordering flow by
posting provider-style webhook payloads to a running server.
Run from project root: python scripts/simulate.py --customers 20

Requires ENV_MODE=development on the server so payments and outbound
messages go to the mock collaborators, and at least one canteen with a
menu for today or tomorrow.

Version: 1.0.0
"""

import argparse
import asyncio
import random
import sys
import time
from datetime import datetime
from typing import Any

import httpx

# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Configuration
API_BASE_URL = "http://localhost:8001"
ORDERING_NUMBER = "918686078782"
TOTAL_CUSTOMERS = 20


def webhook_payload(source: str, text: str, recipient: str = ORDERING_NUMBER) -> dict[str, Any]:
    """Build an inbound message notification."""
    return {
        "msgStatus": "RECEIVED",
        "sourceAddress": source,
        "recipientAddress": recipient,
        "messageParameters": {"text": {"body": text}},
    }


def random_customer_number() -> str:
    return f"91{random.choice('6789')}{random.randint(100000000, 999999999)}"


def conversation_script() -> list[str]:
    """hi → canteen → date → menu → cart → confirm."""
    cart = ",".join(f"{i}*{random.randint(1, 3)}" for i in sorted(random.sample(range(1, 4), k=random.randint(1, 2))))
    return ["hi", "1", random.choice(["1", "2"]), "1", cart, "1"]


async def run_customer(client: httpx.AsyncClient, customer_num: int) -> dict[str, Any]:
    """Walk one customer through the flow and report the last reply."""
    source = random_customer_number()
    start_time = time.time()
    reply = ""

    try:
        for text in conversation_script():
            response = await client.post(
                f"{API_BASE_URL}/webhook",
                json=webhook_payload(source, text),
                timeout=30.0,
            )
            if response.status_code != 200:
                return {
                    "customer_num": customer_num,
                    "success": False,
                    "error": response.text[:100],
                    "time": round(time.time() - start_time, 3),
                }
            reply = (response.json().get("data") or {}).get("reply") or ""

        return {
            "customer_num": customer_num,
            "success": "payment" in reply.lower(),
            "error": None if "payment" in reply.lower() else reply[:100],
            "time": round(time.time() - start_time, 3),
        }
    except httpx.HTTPError as e:
        return {
            "customer_num": customer_num,
            "success": False,
            "error": str(e)[:100],
            "time": round(time.time() - start_time, 3),
        }


async def run_simulation(num_customers: int = TOTAL_CUSTOMERS) -> dict[str, Any]:
    print("=" * 70)
    print("💬 WHATSAPP ORDERING SIMULATION")
    print("=" * 70)
    print(f"👥 Customers: {num_customers}")
    print(f"🎯 Target: {API_BASE_URL}/webhook")
    print(f"⏰ Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    start_time = time.time()
    async with httpx.AsyncClient() as client:
        results = await asyncio.gather(*[run_customer(client, i + 1) for i in range(num_customers)])
    total_time = round(time.time() - start_time, 2)

    successful = [r for r in results if r["success"]]
    failed = [r for r in results if not r["success"]]

    print(f"\n✅ Orders reaching payment: {len(successful)}/{num_customers}")
    print(f"❌ Failed conversations: {len(failed)}/{num_customers}")
    print(f"⏱️  Total Time: {total_time}s")

    if successful:
        avg_time = round(sum(r["time"] for r in successful) / len(successful), 3)
        print(f"   Average conversation: {avg_time}s")

    if failed:
        print("\n⚠️  Failed conversation details (showing first 5):")
        for f in failed[:5]:
            print(f"   Customer #{f['customer_num']}: {f.get('error')}")

    print("=" * 70)
    return {
        "total": num_customers,
        "successful": len(successful),
        "failed": len(failed),
        "total_time": total_time,
    }


def main() -> None:
    global API_BASE_URL, ORDERING_NUMBER

    parser = argparse.ArgumentParser(description="Simulate concurrent WhatsApp ordering conversations")
    parser.add_argument("--customers", type=int, default=TOTAL_CUSTOMERS, help="Number of concurrent customers")
    parser.add_argument("--url", default=API_BASE_URL, help="Base URL of the running API")
    parser.add_argument("--ordering-number", default=ORDERING_NUMBER, help="Business number that runs the ordering flow")
    args = parser.parse_args()

    API_BASE_URL = args.url.rstrip("/")
    ORDERING_NUMBER = args.ordering_number
    asyncio.run(run_simulation(args.customers))


if __name__ == "__main__":
    main()
