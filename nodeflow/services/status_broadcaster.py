"""Node Status Broadcaster Service.

Channels are partitioned by node family (see ``constants.NODE_STATUS_CHANNELS``)
so an observer interested only in HTTP nodes never receives manual-trigger
events. Publishing is fire-and-forget from the engine's point of view: a
failing or slow subscriber is logged and dropped, never raised to the run.
"""

import asyncio
from collections import defaultdict
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional, Set

from nodeflow.constants import ALL_STATUS_CHANNELS
from nodeflow.core.logging import get_logger
from nodeflow.models import NodeStatus, StatusMessage

logger = get_logger(__name__)


class StatusBroadcaster:
    """In-process pub/sub of node status messages, one queue per subscriber."""

    def __init__(self, queue_size: int = 1000):
        self.queue_size = queue_size
        self._subscribers: Dict[str, Set[asyncio.Queue]] = defaultdict(set)
        self._lock = asyncio.Lock()

        # (run_id, node_id) -> last status message, kept in memory only
        self._status: Dict[tuple, Dict[str, Any]] = {}

    @property
    def channels(self) -> frozenset:
        return ALL_STATUS_CHANNELS

    async def publish(self, channel: str, message: StatusMessage) -> None:
        """Deliver ``message`` to every subscriber of ``channel``.

        Never raises.
        """
        try:
            payload = message.to_wire()
            payload["channel"] = channel
            self._status[(message.run_id, message.node_id)] = payload

            async with self._lock:
                subscribers = list(self._subscribers.get(channel, ()))

            for queue in subscribers:
                try:
                    queue.put_nowait(payload)
                except asyncio.QueueFull:
                    logger.warning("[StatusBroadcaster] Subscriber queue full, dropping message",
                                   channel=channel, node_id=message.node_id)
                except Exception as e:
                    logger.warning("[StatusBroadcaster] Subscriber delivery failed",
                                   channel=channel, node_id=message.node_id, error=str(e))
        except Exception as e:
            logger.warning("[StatusBroadcaster] Publish failed",
                           channel=channel, error=str(e))

    @asynccontextmanager
    async def subscribe(self, channel: str) -> AsyncIterator[asyncio.Queue]:
        """Subscribe to a channel for the duration of the ``async with`` block."""
        if channel not in ALL_STATUS_CHANNELS:
            raise KeyError(f"Unknown status channel: {channel}")

        queue: asyncio.Queue = asyncio.Queue(maxsize=self.queue_size)
        async with self._lock:
            self._subscribers[channel].add(queue)
        logger.info("[StatusBroadcaster] Subscriber added", channel=channel,
                    total=len(self._subscribers[channel]))
        try:
            yield queue
        finally:
            async with self._lock:
                self._subscribers[channel].discard(queue)
            logger.info("[StatusBroadcaster] Subscriber removed", channel=channel)

    def get_node_status(self, run_id: str, node_id: str) -> Optional[Dict[str, Any]]:
        """Last status published for a node in a run."""
        return self._status.get((run_id, node_id))

    def clear_run(self, run_id: str) -> int:
        """Forget the transient statuses of a finished run."""
        keys = [key for key in self._status if key[0] == run_id]
        for key in keys:
            del self._status[key]
        return len(keys)

    def subscriber_count(self, channel: Optional[str] = None) -> int:
        if channel is not None:
            return len(self._subscribers.get(channel, ()))
        return sum(len(queues) for queues in self._subscribers.values())


class RunStatusPublisher:
    """Publisher handed to executors, bound to one run id."""

    def __init__(self, broadcaster: StatusBroadcaster, run_id: str):
        self.broadcaster = broadcaster
        self.run_id = run_id

    async def publish(self, channel: str, node_id: str, status: NodeStatus,
                      data: Optional[Dict[str, Any]] = None) -> None:
        await self.broadcaster.publish(channel, StatusMessage(
            node_id=node_id,
            status=status,
            run_id=self.run_id,
            data=data,
        ))


@asynccontextmanager
async def track_status(publisher: RunStatusPublisher, channel: str, node_id: str):
    """Publish ``loading`` on entry, then ``success`` or ``error`` on exit."""
    await publisher.publish(channel, node_id, NodeStatus.LOADING)
    try:
        yield
    except BaseException as e:
        await publisher.publish(channel, node_id, NodeStatus.ERROR, {"error": str(e)})
        raise
    await publisher.publish(channel, node_id, NodeStatus.SUCCESS)
