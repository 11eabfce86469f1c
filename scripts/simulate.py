"""
Dining Room Rush Simulation

Fires concurrent orders and staff calls from many tables, walks some
orders through the kitchen workflow, settles a few tables and checks that
the active table list and kitchen queue agree with what was sent.

Run from project root (server must be running): python scripts/simulate.py
"""

import asyncio
import sys
import random
import time
import argparse
from datetime import datetime
from typing import Any

import httpx

# Configuration
API_BASE_URL = "http://localhost:3000"
TOTAL_ORDERS = 50
TABLE_COUNT = 12

# Used when the menu endpoint returns nothing
FALLBACK_ITEMS = [
    {"id": "sim-ramen", "name": "Shoyu Ramen", "price": 900, "options": [{"name": "Extra egg", "price": 100}]},
    {"id": "sim-gyoza", "name": "Gyoza", "price": 450, "options": []},
    {"id": "sim-tea", "name": "Green Tea", "price": 300, "options": []},
]


def flatten_menu(catalog: dict[str, Any]) -> list[dict[str, Any]]:
    return [item for category in catalog.get("categories", []) for item in category["items"]]


def generate_random_items(menu: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Pick 1-4 random lines, sometimes with options."""
    lines = []
    for _ in range(random.randint(1, 4)):
        item = random.choice(menu)
        options = item.get("options") or []
        chosen = random.sample(options, k=random.randint(0, len(options))) if options else []
        lines.append({
            "menuItemId": item["id"],
            "name": item["name"],
            "price": item["price"],
            "quantity": random.randint(1, 3),
            "selectedOptions": chosen,
        })
    return lines


def expected_total(lines: list[dict[str, Any]]) -> float:
    return sum(
        (line["price"] + sum(o["price"] for o in line["selectedOptions"])) * line["quantity"]
        for line in lines
    )


async def send_order(
    client: httpx.AsyncClient,
    order_num: int,
    menu: list[dict[str, Any]],
) -> dict[str, Any]:
    """Place one order from a random table."""
    table = random.randint(1, TABLE_COUNT)
    lines = generate_random_items(menu)
    start_time = time.time()

    try:
        response = await client.post(
            f"{API_BASE_URL}/api/orders",
            json={"tableNumber": table, "items": lines},
            timeout=30.0,
        )
        elapsed = round(time.time() - start_time, 3)

        if response.status_code == 201:
            data = response.json()
            return {
                "order_num": order_num,
                "success": True,
                "order_id": data["id"],
                "table": table,
                "total": data["totalPrice"],
                "total_matches": abs(data["totalPrice"] - expected_total(lines)) < 1e-6,
                "time": elapsed,
                "mode": "order",
            }
        return {
            "order_num": order_num,
            "success": False,
            "error": response.text[:100],
            "time": elapsed,
            "mode": "order",
        }
    except httpx.HTTPError as e:
        elapsed = round(time.time() - start_time, 3)
        return {
            "order_num": order_num,
            "success": False,
            "error": str(e)[:100],
            "time": elapsed,
            "mode": "order",
        }


async def send_staff_call(client: httpx.AsyncClient, order_num: int) -> dict[str, Any]:
    table = random.randint(1, TABLE_COUNT)
    start_time = time.time()
    try:
        response = await client.post(
            f"{API_BASE_URL}/api/call",
            json={"tableNumber": table},
            timeout=30.0,
        )
        elapsed = round(time.time() - start_time, 3)
        return {
            "order_num": order_num,
            "success": response.status_code == 201,
            "order_id": response.json().get("id") if response.status_code == 201 else None,
            "table": table,
            "total": 0,
            "total_matches": True,
            "error": None if response.status_code == 201 else response.text[:100],
            "time": elapsed,
            "mode": "call",
        }
    except httpx.HTTPError as e:
        return {
            "order_num": order_num,
            "success": False,
            "error": str(e)[:100],
            "time": round(time.time() - start_time, 3),
            "mode": "call",
        }


async def advance(client: httpx.AsyncClient, order_id: int, status: str) -> bool:
    response = await client.put(
        f"{API_BASE_URL}/api/orders/{order_id}/status",
        json={"status": status},
        timeout=30.0,
    )
    return response.status_code == 200


# =============================================================================
# MAIN SIMULATION RUNNER
# =============================================================================

async def run_simulation(num_orders: int = TOTAL_ORDERS, call_ratio: float = 0.1) -> dict[str, Any]:
    """
    Run the rush simulation.

    Args:
        num_orders: Number of requests (orders + staff calls)
        call_ratio: Share of requests that are staff calls
    """
    print("=" * 70)
    print("🔥 DINING ROOM RUSH SIMULATION")
    print("=" * 70)
    print(f"📋 Requests: {num_orders} across {TABLE_COUNT} tables")
    print(f"🎯 Target: {API_BASE_URL}")
    print(f"⏰ Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    start_time = time.time()

    async with httpx.AsyncClient() as client:
        catalog = (await client.get(f"{API_BASE_URL}/api/menu")).json()
        menu = flatten_menu(catalog) or FALLBACK_ITEMS

        tasks = [
            send_staff_call(client, i + 1) if random.random() < call_ratio
            else send_order(client, i + 1, menu)
            for i in range(num_orders)
        ]
        results = await asyncio.gather(*tasks)

        successful = [r for r in results if r["success"]]

        # Kitchen works through half of the orders
        for r in successful[: len(successful) // 2]:
            for status in ("PREPARING", "READY", "SERVED"):
                await advance(client, r["order_id"], status)

        # Settle every order of two tables
        settled_tables = sorted({r["table"] for r in successful})[:2]
        for r in successful:
            if r["table"] in settled_tables:
                await advance(client, r["order_id"], "SETTLED")

        active = (await client.get(f"{API_BASE_URL}/api/tables")).json()
        kitchen = (await client.get(f"{API_BASE_URL}/api/kitchen/orders")).json()

    total_time = round(time.time() - start_time, 2)
    failed = [r for r in results if not r["success"]]
    wrong_totals = [r for r in successful if not r["total_matches"]]

    print("\n" + "=" * 70)
    print("📊 SIMULATION RESULTS")
    print("=" * 70)
    print(f"\n✅ Successful: {len(successful)}/{num_orders}")
    print(f"❌ Failed: {len(failed)}/{num_orders}")
    print(f"🔔 Staff calls: {len([r for r in successful if r['mode'] == 'call'])}")
    print(f"⏱️  Total Time: {total_time}s")

    if successful:
        avg_time = round(sum(r["time"] for r in successful) / len(successful), 3)
        print(f"\n📈 Average Response: {avg_time}s")
        print(f"   💰 Ordered: {sum(r['total'] for r in successful):,.0f}")

    print(f"\n🍽️  Active tables: {active}")
    print(f"   Settled tables: {settled_tables} (should not be listed above)")
    print(f"👨‍🍳 Kitchen queue: {len(kitchen)} orders")

    if wrong_totals:
        print(f"\n⚠️  {len(wrong_totals)} orders came back with an unexpected total")
    if any(t in active for t in settled_tables):
        print("\n⚠️  A settled table is still listed as active")

    if failed:
        print("\n⚠️  Failed request details (showing first 5):")
        for f in failed[:5]:
            print(f"   #{f['order_num']} [{f['mode']}]: {f.get('error', 'Unknown error')}")

    print("=" * 70)

    return {
        "total": num_orders,
        "successful": len(successful),
        "failed": len(failed),
        "total_time": total_time,
        "active_tables": active,
    }


async def check_single_flows() -> bool:
    """Pre-flight checks before the rush."""
    print("\n" + "=" * 70)
    print("🧪 PRE-FLIGHT CHECKS")
    print("=" * 70)

    async with httpx.AsyncClient() as client:
        print("\n1️⃣ Health Check...")
        response = await client.get(f"{API_BASE_URL}/health")
        if response.status_code != 200:
            print(f"   ❌ Failed: {response.text}")
            return False
        data = response.json()
        print(f"   ✅ Status: {data.get('status')}")
        print(f"   Database: {data.get('database')}")

        print("\n2️⃣ Menu...")
        response = await client.get(f"{API_BASE_URL}/api/menu")
        categories = response.json().get("categories", [])
        print(f"   ✅ {len(categories)} categories")

        print("\n3️⃣ Rejects an empty order...")
        response = await client.post(
            f"{API_BASE_URL}/api/orders",
            json={"tableNumber": 1, "items": []},
        )
        if response.status_code == 400:
            print(f"   ✅ {response.json().get('error')}")
        else:
            print(f"   ❌ Unexpected response: {response.status_code}")
            return False

    print("\n" + "=" * 70)
    return True


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Dining room rush simulation")
    parser.add_argument("--orders", type=int, default=TOTAL_ORDERS, help="Number of requests")
    parser.add_argument("--call-ratio", type=float, default=0.1, help="Share of staff calls")
    parser.add_argument("--skip-checks", action="store_true", help="Skip pre-flight checks")
    args = parser.parse_args()

    if not args.skip_checks:
        if not asyncio.run(check_single_flows()):
            print("\n❌ Pre-flight checks failed. Fix issues before running the simulation.")
            sys.exit(1)
        print("\n✅ Pre-flight checks passed!")

    asyncio.run(run_simulation(num_orders=args.orders, call_ratio=args.call_ratio))
