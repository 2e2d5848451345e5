"""Concurrent status-update traffic against a running order service.

Creates (or reuses) a set of orders, then several HTTP workers hammer
``PUT /orders/{order_id}/status`` with random status pairs, many of them
``completed`` + ``paid`` at the same time. When the workers stop, every
order is forced to ``completed`` + ``paid`` and checked through
``GET /orders/{order_id}/ledger``: each must have exactly one sale whose
total matches the order.

Knobs (environment):

* HTTP_BASE_URL: base URL of the API, e.g. http://127.0.0.1:8000
* ORDERS: how many orders to create (default 5)
* HTTP_WORKERS: concurrent workers (default 8)
* DURATION: seconds of traffic (default 10)
* HTTP_SLEEP: pause between requests per worker (default 0.05)
"""
from __future__ import annotations

import os
import random
import string
import sys
import threading
import time
from typing import Dict, List
from urllib.parse import urljoin

import requests

HTTP_BASE_URL = os.getenv("HTTP_BASE_URL", "http://127.0.0.1:8000")
ORDERS = int(os.getenv("ORDERS", "5"))
HTTP_WORKERS = int(os.getenv("HTTP_WORKERS", "8"))
DURATION = float(os.getenv("DURATION", "10"))
HTTP_DELAY = float(os.getenv("HTTP_SLEEP", "0.05"))

ORDER_STATUSES = ["pending", "confirmed", "processing", "shipped", "delivered", "completed", "cancelled"]
PAYMENT_STATUSES = ["pending", "paid", "failed"]


def rand_order_id(prefix: str = "ORD", length: int = 6) -> str:
    return f"{prefix}-" + "".join(random.choices(string.ascii_uppercase + string.digits, k=length))


def create_order(session: requests.Session, order_id: str) -> Dict:
    payload = {
        "id": order_id,
        "customer_name": "Load Test",
        "customer_phone": "000-0000",
        "delivery_address": "Nowhere 1",
        "payment_method": "cash",
        "delivery_fee": 2000,
        "items": [
            {"product_id": 1, "product_name": "Item A", "quantity": 2, "unit_price": 5000},
            {"product_id": 2, "product_name": "Item B", "quantity": 1, "unit_price": 3000},
        ],
    }
    resp = session.post(urljoin(HTTP_BASE_URL, "/orders"), json=payload, timeout=5)
    resp.raise_for_status()
    return resp.json()


def http_worker(name: str, order_ids: List[str], counters: Dict[int, int], stop: threading.Event) -> None:
    session = requests.Session()
    while not stop.is_set():
        order_id = random.choice(order_ids)
        if random.random() < 0.5:
            body = {"order_status": "completed", "payment_status": "paid"}
        else:
            body = {
                "order_status": random.choice(ORDER_STATUSES),
                "payment_status": random.choice(PAYMENT_STATUSES),
            }
        url = urljoin(HTTP_BASE_URL, f"/orders/{order_id}/status")
        try:
            resp = session.put(url, json=body, timeout=5)
            with COUNTERS_LOCK:
                counters[resp.status_code] = counters.get(resp.status_code, 0) + 1
        except requests.RequestException as exc:
            print(f"[http:{name}] error calling PUT {url}: {exc}")
        finally:
            time.sleep(HTTP_DELAY)


COUNTERS_LOCK = threading.Lock()


def verify(session: requests.Session, orders: Dict[str, int]) -> int:
    failures = 0
    for order_id, total in orders.items():
        url = urljoin(HTTP_BASE_URL, f"/orders/{order_id}/status")
        resp = session.put(url, json={"order_status": "completed", "payment_status": "paid"}, timeout=5)
        resp.raise_for_status()

        ledger = session.get(urljoin(HTTP_BASE_URL, f"/orders/{order_id}/ledger"), timeout=5)
        if ledger.status_code != 200:
            print(f"[fail] {order_id}: no ledger sale ({ledger.status_code})")
            failures += 1
            continue
        sale = ledger.json()
        lines_total = sum(i["total_price"] for i in sale["items"])
        if sale["total_amount"] != total:
            print(f"[fail] {order_id}: sale total {sale['total_amount']} != order total {total}")
            failures += 1
        else:
            print(f"[ok] {order_id} -> {sale['transaction_number']} total={sale['total_amount']} lines={lines_total}")
    return failures


def main() -> int:
    session = requests.Session()
    orders: Dict[str, int] = {}
    for _ in range(ORDERS):
        created = create_order(session, rand_order_id())
        orders[created["id"]] = created["total_amount"]
    print(f"[info] {len(orders)} orders created against {HTTP_BASE_URL}")

    counters: Dict[int, int] = {}
    stop = threading.Event()
    threads = [
        threading.Thread(
            target=http_worker,
            name=f"http-{idx}",
            args=(f"w{idx}", list(orders), counters, stop),
            daemon=True,
        )
        for idx in range(HTTP_WORKERS)
    ]
    for thread in threads:
        thread.start()

    try:
        time.sleep(DURATION)
    except KeyboardInterrupt:
        print("\n[info] Stopped by user")
    finally:
        stop.set()
        for thread in threads:
            thread.join(timeout=6.0)

    print(f"[info] responses by status code: {dict(sorted(counters.items()))}")
    failures = verify(session, orders)
    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
