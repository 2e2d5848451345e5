# orders/publisher.py
import json
import logging

import pika
from pika.exceptions import AMQPError
from django.conf import settings

logger = logging.getLogger(__name__)


def _connection_parameters() -> pika.ConnectionParameters:
    """Short timeouts and few retries: a slow or absent broker must not hold the request."""
    return pika.ConnectionParameters(
        host=settings.RABBIT_HOST,
        port=settings.RABBIT_PORT,
        virtual_host=settings.RABBIT_VHOST,
        credentials=pika.PlainCredentials(settings.RABBIT_USER, settings.RABBIT_PASS),
        heartbeat=30,
        blocked_connection_timeout=5,
        socket_timeout=5,
        connection_attempts=3,
        retry_delay=2.0,
    )


def _publish(routing_key: str, payload: dict) -> bool:
    """Publish best-effort. Returns False when the event was not delivered to the broker."""
    if not settings.RABBIT_HOST:
        logger.debug("RABBIT_HOST not set; %s event skipped", routing_key)
        return False

    conn = None
    try:
        conn = pika.BlockingConnection(_connection_parameters())
        ch = conn.channel()
        ch.exchange_declare(exchange=settings.RABBIT_EXCHANGE, exchange_type="topic", durable=True)
        ch.basic_publish(
            exchange=settings.RABBIT_EXCHANGE,
            routing_key=routing_key,
            body=json.dumps(payload).encode("utf-8"),
            properties=pika.BasicProperties(
                content_type="application/json",
                delivery_mode=2,  # persistente si la cola es durable
            ),
        )
        return True
    except (AMQPError, OSError) as e:
        logger.warning("Error publishing %s: %s", routing_key, e)
        return False
    finally:
        if conn is not None and conn.is_open:
            conn.close()


def publish_order_created(order_id: str, order_status: str) -> bool:
    return _publish("order.created", {"order_id": order_id, "order_status": order_status})


def publish_order_status_updated(
    order_id: str, order_status: str, payment_status: str, version: int, meta: dict | None = None
) -> bool:
    payload = {
        "order_id": order_id,
        "order_status": order_status,
        "payment_status": payment_status,
        "version": int(version),
    }
    if meta:
        payload["meta"] = meta
    return _publish("order.status.updated", payload)


def publish_ledger_transaction_created(order_id: str, transaction_number: str, total_amount: int) -> bool:
    return _publish(
        "ledger.transaction.created",
        {
            "order_id": order_id,
            "transaction_number": transaction_number,
            "total_amount": int(total_amount),
        },
    )
