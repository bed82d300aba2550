import os
import json
from typing import Any, Dict

import aio_pika
from dotenv import load_dotenv

from logger import get_logger

load_dotenv()

logger = get_logger(__name__)

# Unset disables publishing entirely
RABBITMQ_URL = os.getenv("RABBITMQ_URL")
EVENTS_EXCHANGE = os.getenv("EVENTS_EXCHANGE", "events")

RECALCULATION_REQUESTED = "cases.recalculation_requested"


async def publish_event(routing_key: str, payload: Dict[str, Any]) -> None:
    """Publish an event to a topic exchange.

    This is a simple, per-call connect/publish helper suitable for low volume
    usage. For higher throughput, reuse the connection and channel.
    """
    connection = await aio_pika.connect_robust(RABBITMQ_URL)
    async with connection:
        channel = await connection.channel()
        exchange = await channel.declare_exchange(EVENTS_EXCHANGE, aio_pika.ExchangeType.TOPIC, durable=True)
        message = aio_pika.Message(
            body=json.dumps(payload).encode("utf-8"),
            content_type="application/json",
            delivery_mode=aio_pika.DeliveryMode.PERSISTENT,
        )
        await exchange.publish(message, routing_key=routing_key)


async def notify_recalculation_requested(case_id: str, user_id: int, upload_id: str) -> None:
    """Tell the PMI worker a case needs recalculating. Never raises."""
    payload = {"case_id": case_id, "user_id": user_id, "upload_id": upload_id}
    if not RABBITMQ_URL:
        logger.debug("[events-disabled] %s %s", RECALCULATION_REQUESTED, payload)
        return
    try:
        await publish_event(RECALCULATION_REQUESTED, payload)
    except Exception as exc:
        logger.warning("[events] publish failed: %s", exc)
