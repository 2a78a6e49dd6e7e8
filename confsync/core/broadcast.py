# confsync/core/broadcast.py
"""
Shared broadcast connection for cluster notifications.

One Broadcaster instance per worker process. In production the URL points
at Redis so every node sees every message; ``memory://`` keeps notifications
inside the process (single node, tests).
"""
import logging
from typing import Optional

from broadcaster import Broadcast

logger = logging.getLogger(__name__)

_broadcast: Optional[Broadcast] = None


async def connect_broadcast(url: str) -> Broadcast:
    """
    Connect the shared Broadcaster.

    Call during application startup (in lifespan manager).
    """
    global _broadcast

    _broadcast = Broadcast(url)
    await _broadcast.connect()
    logger.info("[BROADCAST] Connected for config notifications: %s", url.split("@")[-1])
    return _broadcast


async def disconnect_broadcast() -> None:
    """
    Disconnect the shared Broadcaster.

    Call during application shutdown.
    """
    global _broadcast

    if _broadcast is not None:
        await _broadcast.disconnect()
        _broadcast = None
        logger.info("[BROADCAST] Disconnected")
