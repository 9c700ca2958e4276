import logging
from typing import Any, Dict, Optional

from ..models.order import Order, OrderEvent
from ..utils.time import get_local_time

logger = logging.getLogger(__name__)


def branch_channel(branch_id: str) -> str:
    return f"branch:{branch_id}"


class RealtimeNotifier:
    """Publishes events to listeners.

    ``channel=None`` means every connected listener.
    """

    async def publish(self, event: str, data: Dict[str, Any], channel: Optional[str] = None):
        raise NotImplementedError


async def broadcast_order(notifier: RealtimeNotifier, event: OrderEvent, order: Order):
    """Send the order snapshot to its branch group, then to everyone.

    Listener failures are logged, never raised to the caller.
    """
    data = order.to_public()
    try:
        if order.branch_id:
            await notifier.publish(event.value, data, branch_channel(order.branch_id))
        await notifier.publish(event.value, data)
    except Exception:
        logger.exception("Broadcast of %s failed for order %s", event.value, order.id)


def build_message(event: str, data: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "event": event,
        "data": data,
        "timestamp": get_local_time().isoformat(),
    }
