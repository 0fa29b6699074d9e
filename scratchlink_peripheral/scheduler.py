import asyncio
import itertools
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from websockets.exceptions import ConnectionClosed

from .util import b64

CHARACTERISTIC_DID_CHANGE = "characteristicDidChange"


@dataclass
class Subscription:
    handle: int
    service_id: Any
    characteristic_id: Any
    task: asyncio.Task


class NotificationScheduler:
    """Periodic characteristicDidChange emitter.

    Every subscription is an asyncio task owned by a Connection; tasks are
    only ever cancelled through ``stop``, and the session calls
    ``stop(connection)`` when the socket closes.
    """

    def __init__(self, interval: float = 0.1):
        self.interval = interval
        self._ids = itertools.count(1)

    def start(self, connection, service_id, characteristic_id,
              state_provider: Callable[[], bytes]) -> int:
        handle = next(self._ids)
        task = asyncio.create_task(
            self._push_loop(connection, handle, service_id, characteristic_id, state_provider)
        )
        connection.subscriptions[handle] = Subscription(handle, service_id, characteristic_id, task)
        connection.current = handle
        connection.mark_subscribed()
        logging.info(f"[NOTIFY] start #{handle} svc={service_id} char={characteristic_id} "
                     f"every {self.interval * 1000:.0f}ms")
        return handle

    def stop(self, connection, handle: Optional[int] = None):
        if handle is None:
            handles = list(connection.subscriptions)
        else:
            handles = [handle]

        for h in handles:
            sub = connection.subscriptions.pop(h, None)
            if sub is None:
                continue
            sub.task.cancel()
            logging.info(f"[NOTIFY] stop #{h} char={sub.characteristic_id}")

        self._settle(connection)

    def find(self, connection, service_id=None, characteristic_id=None):
        def same(a, b):
            if isinstance(a, str) and isinstance(b, str):
                return a.lower() == b.lower()
            return a == b

        return [
            h for h, sub in connection.subscriptions.items()
            if (characteristic_id is None or same(sub.characteristic_id, characteristic_id))
            and (service_id is None or same(sub.service_id, service_id))
        ]

    @staticmethod
    def active_count(connection) -> int:
        return len(connection.subscriptions)

    @staticmethod
    def _settle(connection):
        if connection.current not in connection.subscriptions:
            connection.current = None
        if not connection.subscriptions:
            connection.mark_unsubscribed()

    async def _push_loop(self, connection, handle, service_id, characteristic_id, state_provider):
        try:
            while True:
                await asyncio.sleep(self.interval)
                await connection.channel.send_notification(CHARACTERISTIC_DID_CHANGE, {
                    "serviceId": service_id,
                    "characteristicId": characteristic_id,
                    "message": b64(state_provider()),
                    "encoding": "base64",
                })
        except ConnectionClosed:
            logging.debug(f"[NOTIFY] #{handle} socket closed, leaving push loop")
            connection.subscriptions.pop(handle, None)
            self._settle(connection)
        except Exception as e:
            logging.exception(f"[NOTIFY] #{handle} push loop failed: {e}")
            connection.subscriptions.pop(handle, None)
            self._settle(connection)
