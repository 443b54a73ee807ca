# chitchat/infrastructure/broadcaster.py
import asyncio
import logging

from chitchat.domain.events import Event
from chitchat.infrastructure.event_dispatcher import EventDispatcher


class EventBroadcaster:
    """Fire-and-forget fan-out of room events.

    ``publish`` never blocks and never raises: the event goes to the room's
    queue and a per-room worker hands it to the dispatcher. One worker per room
    keeps the events of a room in publish order; rooms do not wait on each
    other. Delivery failures are logged and the event is dropped.
    """

    def __init__(self, dispatcher: EventDispatcher, logger: logging.Logger):
        self.dispatcher = dispatcher
        self.logger = logger
        self._queues: dict[int, asyncio.Queue[Event]] = {}
        self._workers: dict[int, asyncio.Task] = {}

    def publish(self, event: Event) -> None:
        queue = self._queues.get(event.room_id)
        if queue is None:
            queue = asyncio.Queue()
            self._queues[event.room_id] = queue
            self._workers[event.room_id] = asyncio.create_task(
                self._drain(event.room_id, queue)
            )
        queue.put_nowait(event)

    async def _drain(self, room_id: int, queue: asyncio.Queue[Event]) -> None:
        while True:
            event = await queue.get()
            try:
                await self.dispatcher.dispatch(event)
            except Exception as e:
                self.logger.error(
                    f"Dropped {event.kind.value} event for room {room_id}: {e!s}"
                )
            finally:
                queue.task_done()
            if queue.empty():
                # no await between this check and the removal, so publish()
                # cannot slip an event into a queue nobody drains
                self._queues.pop(room_id, None)
                self._workers.pop(room_id, None)
                return

    async def flush(self) -> None:
        for queue in list(self._queues.values()):
            await queue.join()

    async def close(self) -> None:
        await self.flush()
        for task in list(self._workers.values()):
            task.cancel()
        self._workers.clear()
        self._queues.clear()
