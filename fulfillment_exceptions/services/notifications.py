"""Decoding of pick completion messages and partitioning of message batches."""

from typing import List, Optional, Sequence, TypeVar

from pydantic import ValidationError

from fulfillment_exceptions.models.messages import Message, PickCompleteNotification
from fulfillment_exceptions.observability.logging import ContextualLogger
from fulfillment_exceptions.observability.metrics import pick_completion_notifications_total


logger = ContextualLogger(__name__)

T = TypeVar("T")


def repair_body(body: str) -> str:
    """Close a payload that upstream truncated before its final brace."""
    if not body.endswith("}"):
        return body + "}"
    return body


def decode_notification(message: Message) -> Optional[PickCompleteNotification]:
    """Decode one message; None for empty or undecodable bodies."""
    if not message.body:
        return None

    body = repair_body(message.body)
    repaired = body != message.body

    try:
        notification = PickCompleteNotification.model_validate_json(body)
    except ValidationError as e:
        logger.error(
            "Failed to parse a pick completion notification",
            error=str(e),
            body=message.body,
        )
        pick_completion_notifications_total.labels(outcome="dropped").inc()
        return None

    pick_completion_notifications_total.labels(outcome="repaired" if repaired else "decoded").inc()
    return notification


def decode_notifications(messages: Sequence[Message]) -> List[PickCompleteNotification]:
    notifications = []
    for message in messages:
        notification = decode_notification(message)
        if notification is not None:
            notifications.append(notification)
    return notifications


def partition_batch(items: Sequence[T], max_chunks: int) -> List[List[T]]:
    """
    Split ``items`` into chunks of ``len(items) // max_chunks`` items.

    When that chunk size is 1 or less the whole batch becomes one chunk.
    The last chunk may be shorter, and when the division leaves a remainder
    there are more than ``max_chunks`` chunks.
    """
    if not items:
        return []

    items = list(items)
    chunk_size = len(items) // max_chunks

    if chunk_size <= 1:
        return [items]

    return [items[start:start + chunk_size] for start in range(0, len(items), chunk_size)]
