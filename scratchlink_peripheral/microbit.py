import logging
from typing import Optional

from .config import SessionConfig
from .display import decode
from .filters import matches
from .peripheral import PeripheralIdentity, PeripheralSession
from .registry import HandlerContext
from .util import b64_to_bytes

FILTER_REJECTED = -32000
DID_DISCOVER_PERIPHERAL = "didDiscoverPeripheral"


class UUID:
    SERVICE = 0xf005

    CHAR_RX = "5261da01-fa7e-42ab-850b-7c80220097cc"   # read / notify
    CHAR_TX = "5261da02-fa7e-42ab-850b-7c80220097cc"   # write (display)


class BLEMethod:
    GET_VERSION = "getVersion"
    DISCOVER = "discover"
    CONNECT = "connect"
    READ = "read"
    WRITE = "write"
    START_NOTIFICATIONS = "startNotifications"
    STOP_NOTIFICATIONS = "stopNotifications"


def _is_char(char_id, expected: str) -> bool:
    return isinstance(char_id, str) and char_id.lower() == expected.lower()


def _payload(params) -> bytes:
    message = params.get("message")
    if params.get("encoding") == "base64":
        return b64_to_bytes(message or "")
    if isinstance(message, str):
        return message.encode("utf-8")
    if isinstance(message, list):
        return bytes(b & 0xFF for b in message)
    return b""


def register_microbit(session: PeripheralSession):
    """Attach the micro:bit method surface to ``session``."""
    identity = session.identity
    scheduler = session.scheduler

    def subscribe(ctx: HandlerContext):
        svc, char = ctx.params.get("serviceId"), ctx.params.get("characteristicId")
        return scheduler.start(ctx.connection, svc, char, session.read_state)

    async def get_version(ctx: HandlerContext):
        await ctx.channel.send_response(ctx.id, {"protocol": session.config.protocol_version})

    async def discover(ctx: HandlerContext):
        ctx.connection.mark_discovering()
        filters = ctx.params.get("filters") or []
        if matches(identity, filters):
            await ctx.channel.send_response(ctx.id, None)
            logging.info("[DISCOVER] --> outgoing response, successful")
            await ctx.channel.send_notification(DID_DISCOVER_PERIPHERAL, {
                "peripherialId": identity.id,
                "name": identity.name,
                "rssi": identity.rssi,
            })
            logging.info(f"[DISCOVER] --> outgoing {DID_DISCOVER_PERIPHERAL!r} notification")
        else:
            await ctx.channel.send_response(ctx.id, error={
                "code": FILTER_REJECTED,
                "message": "failed to pass filters",
            })
            logging.info(f"[DISCOVER] --> outgoing response, unsuccessful (filters={filters})")

    async def connect(ctx: HandlerContext):
        await ctx.channel.send_response(ctx.id, None)
        logging.info("[CONNECT] --> outgoing response, successful")

    async def read_write(ctx: HandlerContext):
        params = ctx.params
        char = params.get("characteristicId")

        if _is_char(char, UUID.CHAR_RX):
            if ctx.method == BLEMethod.READ:
                await ctx.channel.send_response(ctx.id, None)
                logging.info("[READ] --> outgoing response, successful")
        elif _is_char(char, UUID.CHAR_TX):
            if ctx.method == BLEMethod.WRITE:
                await ctx.channel.send_response(ctx.id, None)
                text = decode(_payload(params))
                logging.info(f"[DISPLAY] display:\n{text}")
        else:
            logging.info(f"[{ctx.method.upper()}] unhandled characteristic {char} params={params}")

        if params.get("startNotifications"):
            subscribe(ctx)

    async def start_notifications(ctx: HandlerContext):
        subscribe(ctx)
        await ctx.channel.send_response(ctx.id, None)

    async def stop_notifications(ctx: HandlerContext):
        svc, char = ctx.params.get("serviceId"), ctx.params.get("characteristicId")
        if char is None:
            scheduler.stop(ctx.connection)
        else:
            for handle in scheduler.find(ctx.connection, svc, char):
                scheduler.stop(ctx.connection, handle)
        await ctx.channel.send_response(ctx.id, None)

    async def fallback(ctx: HandlerContext):
        logging.debug(f"[FALLBACK] method={ctx.method!r} id={ctx.id!r} params={ctx.params}")

    session.register_handler(BLEMethod.GET_VERSION, get_version)
    session.register_handler(BLEMethod.DISCOVER, discover)
    session.register_handler(BLEMethod.CONNECT, connect)
    session.register_handler([BLEMethod.READ, BLEMethod.WRITE], read_write)
    session.register_handler(BLEMethod.START_NOTIFICATIONS, start_notifications)
    session.register_handler(BLEMethod.STOP_NOTIFICATIONS, stop_notifications)
    session.register_handler(None, fallback)
    return session


def create_microbit(config: Optional[SessionConfig] = None,
                    identity: Optional[PeripheralIdentity] = None) -> PeripheralSession:
    identity = identity or PeripheralIdentity(id=0, name="asdf", rssi=-70,
                                              service_ids=frozenset({UUID.SERVICE}))
    return register_microbit(PeripheralSession(identity, config))
