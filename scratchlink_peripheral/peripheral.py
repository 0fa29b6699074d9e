import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from http import HTTPStatus
from typing import Any, Dict, FrozenSet, Optional

from websockets import serve
from websockets.exceptions import ConnectionClosedError, ConnectionClosedOK

from .config import SessionConfig
from .jsonrpc import JsonRpcChannel, ParseError, parse_incoming
from .registry import HandlerContext, HandlerRegistry
from .scheduler import NotificationScheduler, Subscription

CLOSE_NO_STATUS = 1005
STATE_SIZE = 10


@dataclass(frozen=True)
class PeripheralIdentity:
    id: int = 0
    name: str = "name"
    rssi: int = -70
    service_ids: FrozenSet[Any] = frozenset()


class SessionState(Enum):
    IDLE = "idle"
    LISTENING = "listening"


class ConnectionState(Enum):
    CONNECTED = "connected"
    DISCOVERING = "discovering"
    SUBSCRIBED = "subscribed"
    DISCONNECTED = "disconnected"


@dataclass(eq=False)
class Connection:
    """State of one accepted websocket.

    ``subscriptions`` holds every live notification task keyed by handle.
    ``current`` only marks the most recently started handle; the scheduler
    clears it when that handle goes away, and nothing stops by it.
    """

    channel: JsonRpcChannel
    subscriptions: Dict[int, Subscription] = field(default_factory=dict)
    current: Optional[int] = None
    state: ConnectionState = ConnectionState.CONNECTED

    def mark_discovering(self):
        if self.state is ConnectionState.CONNECTED:
            self.state = ConnectionState.DISCOVERING

    def mark_subscribed(self):
        if self.state is not ConnectionState.DISCONNECTED:
            self.state = ConnectionState.SUBSCRIBED

    def mark_unsubscribed(self):
        if self.state is ConnectionState.SUBSCRIBED:
            self.state = ConnectionState.CONNECTED


class PeripheralSession:
    """One fake peripheral listening on a Scratch Link websocket path.

    The session owns the identity, the simulated state buffer, the method
    registry and the notification scheduler. Behaviour (which methods exist
    and what they answer) is attached with ``register_handler``; see
    ``microbit.register_microbit``.
    """

    def __init__(self, identity: PeripheralIdentity, config: Optional[SessionConfig] = None,
                 registry: Optional[HandlerRegistry] = None,
                 scheduler: Optional[NotificationScheduler] = None):
        self.identity = identity
        self.config = config or SessionConfig()
        self.registry = registry or HandlerRegistry()
        self.scheduler = scheduler or NotificationScheduler(self.config.send_interval)
        self.peripheral_state = bytearray(STATE_SIZE)
        self.connections = set()
        self.state = SessionState.IDLE
        self.server = None

    @property
    def path(self) -> str:
        return self.config.path

    def register_handler(self, methods, handler):
        self.registry.register(methods, handler)

    def read_state(self) -> bytes:
        return bytes(self.peripheral_state)

    def _check_path(self, connection, request):
        if request.path != self.path:
            logging.warning(f"[SERVER] rejecting request for {request.path!r}, serving {self.path!r}")
            return connection.respond(HTTPStatus.NOT_FOUND, "Not Found\n")
        return None

    async def listen(self):
        host, port = self.config.host, self.config.port
        self.server = await serve(self.handle_connection, host, port, process_request=self._check_path)
        self.state = SessionState.LISTENING
        logging.info(f"* server started, listening on ws://{host}:{port}{self.path}")
        return self.server

    async def start(self):
        await self.listen()
        await asyncio.Future()

    async def close(self):
        if self.server is not None:
            self.server.close()
            await self.server.wait_closed()
            self.server = None
        self.state = SessionState.IDLE

    async def handle_connection(self, websocket):
        connection = Connection(JsonRpcChannel(websocket))
        self.connections.add(connection)
        logging.info("* client connected")
        try:
            async for raw in websocket:
                logging.debug("← %s", raw)
                await self.handle_message(connection, raw)
        except (ConnectionClosedError, ConnectionClosedOK) as e:
            logging.debug(f"* connection closed: {e}")
        finally:
            self.disconnect(connection, getattr(websocket, "close_code", None))

    def disconnect(self, connection: Connection, code=None):
        self.scheduler.stop(connection)
        connection.state = ConnectionState.DISCONNECTED
        self.connections.discard(connection)

        logging.info(f"* client disconnected, {code}")
        if code == CLOSE_NO_STATUS:
            logging.info("* disconnection was most likely intentional")
        else:
            logging.info("* disconnection might've been unintentional")

    async def handle_message(self, connection: Connection, raw) -> int:
        try:
            request = parse_incoming(raw)
        except ParseError as e:
            logging.warning(f"[RPC] dropping malformed message: {e}")
            return 0

        logging.info(f"<-- incoming {request.method!r} request")
        ctx = HandlerContext(
            channel=connection.channel,
            connection=connection,
            method=request.method,
            params=request.params,
            id=request.id,
        )
        try:
            return await self.registry.dispatch(request.method, ctx)
        except (ConnectionClosedError, ConnectionClosedOK):
            raise
        except Exception as e:
            logging.warning(f"RPC error: {e}")
            return 0
