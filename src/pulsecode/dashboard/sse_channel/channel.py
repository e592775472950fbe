"""Output broadcaster for workspace events.

Delivers terminal output and workspace status changes to observers,
decoupled from the supervisor's internal state:
- In-process listeners (sync or async callables)
- SSE subscribers with bounded queues (drop oldest when full)
- Heartbeat for connection health

Event types:
    workspace_updated: {"workspace": <summary>}
    workspace_removed: {"workspace_id": ...}
    terminal_output:   {"workspace_id": ..., "text": ..., "is_error": ...}
"""

import asyncio
import json
import logging
import time
from collections.abc import AsyncGenerator, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pulsecode.core.async_utils import maybe_await

if TYPE_CHECKING:
    from pulsecode.dashboard.manager.workspace import Workspace

logger = logging.getLogger(__name__)

# Default channel configuration
DEFAULT_MAX_QUEUE_SIZE = 1000
DEFAULT_HEARTBEAT_INTERVAL = 15  # seconds

WORKSPACE_UPDATED = "workspace_updated"
WORKSPACE_REMOVED = "workspace_removed"
TERMINAL_OUTPUT = "terminal_output"

Listener = Callable[["BroadcastEvent"], Any]


@dataclass
class BroadcastEvent:
    """Represents a single event.

    Attributes:
        event: Event type name.
        data: Event payload (dict).
        id: Monotonic event id for SSE reconnection.
        retry: Optional retry interval in milliseconds.

    """

    event: str
    data: dict[str, Any]
    id: str | None = None
    retry: int | None = None

    @property
    def workspace_id(self) -> str | None:
        """Workspace the event concerns, if any."""
        if "workspace_id" in self.data:
            return self.data["workspace_id"]
        workspace = self.data.get("workspace")
        if isinstance(workspace, dict):
            return workspace.get("id")
        return None

    def format(self) -> str:
        """Render as one SSE message terminated by a blank line."""
        fields: list[tuple[str, str]] = []
        if self.id:
            fields.append(("id", self.id))
        if self.retry:
            fields.append(("retry", str(self.retry)))
        fields.append(("event", self.event))
        fields.extend(("data", line) for line in json.dumps(self.data).split("\n"))
        return "".join(f"{name}: {value}\n" for name, value in fields) + "\n"


class OutputBroadcaster:
    """Fan-out of workspace events to listeners and SSE subscribers.

    Events are delivered to each observer in publish order. Listeners are
    invoked inline; a failing listener is logged and skipped.

    Attributes:
        max_queue_size: Maximum events queued per SSE subscriber.
        heartbeat_interval: Seconds between heartbeats.

    """

    def __init__(
        self,
        max_queue_size: int = DEFAULT_MAX_QUEUE_SIZE,
        heartbeat_interval: int = DEFAULT_HEARTBEAT_INTERVAL,
    ) -> None:
        """Initialize broadcaster.

        Args:
            max_queue_size: Maximum queue size per subscriber.
            heartbeat_interval: Seconds between heartbeat messages.

        """
        self.max_queue_size = max_queue_size
        self.heartbeat_interval = heartbeat_interval

        self._queues: set[asyncio.Queue[BroadcastEvent | None]] = set()
        self._listeners: list[Listener] = []
        self._message_counter = 0

    @property
    def subscriber_count(self) -> int:
        """Get number of active SSE subscribers."""
        return len(self._queues)

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        """Register an in-process observer.

        Args:
            listener: Called with each BroadcastEvent; may be async.

        Returns:
            Function that unregisters the listener.

        """
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    async def subscribe(self, workspace_id: str | None = None) -> AsyncGenerator[str, None]:
        """Subscribe to the SSE stream.

        Args:
            workspace_id: Only forward events for this workspace (None = all).

        Yields:
            Formatted SSE messages as strings.

        """
        queue: asyncio.Queue[BroadcastEvent | None] = asyncio.Queue(maxsize=self.max_queue_size)
        self._queues.add(queue)
        logger.info("SSE client connected (total: %d)", len(self._queues))

        try:
            yield BroadcastEvent(
                event="connected",
                data={"connected": True, "workspace_id": workspace_id, "timestamp": time.time()},
                retry=3000,
            ).format()

            while True:
                try:
                    event = await asyncio.wait_for(queue.get(), timeout=self.heartbeat_interval)
                except TimeoutError:
                    yield BroadcastEvent(event="heartbeat", data={"timestamp": time.time()}).format()
                    continue

                if event is None:
                    # Shutdown signal
                    break
                if workspace_id is not None and event.workspace_id != workspace_id:
                    continue
                yield event.format()
        finally:
            self._queues.discard(queue)
            logger.info("SSE client disconnected (remaining: %d)", len(self._queues))

    async def publish(self, event: str, data: dict[str, Any]) -> int:
        """Broadcast an event to all observers.

        Args:
            event: Event type name.
            data: Event payload.

        Returns:
            Number of observers the event was delivered to.

        """
        self._message_counter += 1
        broadcast_event = BroadcastEvent(
            event=event,
            data={"ts": time.time(), **data},
            id=str(self._message_counter),
        )

        sent_count = 0
        for queue in list(self._queues):
            try:
                queue.put_nowait(broadcast_event)
                sent_count += 1
            except asyncio.QueueFull:
                # Drop oldest, add newest
                try:
                    queue.get_nowait()
                    queue.put_nowait(broadcast_event)
                    sent_count += 1
                except (asyncio.QueueEmpty, asyncio.QueueFull):
                    pass

        for listener in list(self._listeners):
            try:
                await maybe_await(listener(broadcast_event))
                sent_count += 1
            except Exception:
                logger.exception("Event listener failed for %s", event)

        return sent_count

    async def workspace_updated(self, workspace: "Workspace") -> int:
        """Broadcast a workspace status/metadata change.

        Args:
            workspace: Snapshot of the workspace after the change.

        Returns:
            Number of observers.

        """
        return await self.publish(WORKSPACE_UPDATED, {"workspace": workspace.to_summary()})

    async def workspace_removed(self, workspace_id: str) -> int:
        """Broadcast workspace removal."""
        return await self.publish(WORKSPACE_REMOVED, {"workspace_id": workspace_id})

    async def terminal_output(self, workspace_id: str, text: str, is_error: bool = False) -> int:
        """Broadcast session output or a supervisor notice.

        Args:
            workspace_id: Workspace the text belongs to.
            text: Display text (escape sequences already stripped).
            is_error: True for stderr output and failure notices.

        Returns:
            Number of observers.

        """
        return await self.publish(
            TERMINAL_OUTPUT,
            {"workspace_id": workspace_id, "text": text, "is_error": is_error},
        )

    async def shutdown(self) -> None:
        """Disconnect all subscribers and drop listeners."""
        for queue in list(self._queues):
            try:
                queue.put_nowait(None)
            except asyncio.QueueFull:
                queue.get_nowait()
                queue.put_nowait(None)

        logger.info("Broadcaster shutdown, disconnected %d clients", len(self._queues))
        self._listeners.clear()
