import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer

logger = logging.getLogger(__name__)

ORDER_GROUP = "orders"

ORDER_PLACED = "order.placed"
ORDER_COMPLETED = "order.completed"
ORDER_CANCELLED = "order.cancelled"
ORDER_DELETED = "order.deleted"


def order_summary(order):
    """Small JSON-safe view of an order for the live feed."""
    return {
        "id": str(order.id),
        "status": order.status,
        "table": order.table.name if order.table_id else None,
        "items": [f"{line.quantity} x {line.menu_item.name}" for line in order.items.all()],
        "total": str(order.total),
    }


def broadcast_order_event(event, summary):
    """
    Push an order event to every connected screen.

    Runs after the database commit; a broken channel layer is logged and
    never turns a committed order into a failed request.
    """
    channel_layer = get_channel_layer()
    if channel_layer is None:
        logger.debug("No channel layer configured, dropping %s", event)
        return
    try:
        async_to_sync(channel_layer.group_send)(
            ORDER_GROUP,
            {
                "type": "order_event",
                "event": event,
                "order": summary,
            },
        )
    except Exception:
        logger.exception("Failed to broadcast %s for order %s", event, summary.get("id"))
