import json
import logging
from dataclasses import dataclass, field
from numbers import Number
from typing import Any, Dict, Optional

JSONRPC_VERSION = "2.0"


class _Unset:
    def __repr__(self):
        return "UNSET"

    def __bool__(self):
        return False


# "no result" marker; None is a legitimate result and serialises as null
UNSET = _Unset()


class ParseError(ValueError):
    pass


@dataclass
class JsonRpcRequest:
    method: Optional[str]
    params: Dict[str, Any] = field(default_factory=dict)
    id: Any = None
    jsonrpc: Any = None

    @property
    def is_notification(self) -> bool:
        return self.id is None


def _is_valid_error(error) -> bool:
    if not isinstance(error, dict):
        return False
    code = error.get("code")
    return (
        isinstance(code, Number) and not isinstance(code, bool)
        and isinstance(error.get("message"), str)
    )


def build_response(msg_id, result=UNSET, error=None) -> Dict[str, Any]:
    msg = {"jsonrpc": JSONRPC_VERSION, "id": msg_id}
    if _is_valid_error(error):
        msg["error"] = error
    elif result is not UNSET:
        msg["result"] = result
    return msg


def build_notification(method: str, params) -> Dict[str, Any]:
    return {"jsonrpc": JSONRPC_VERSION, "method": method, "params": params}


def parse_incoming(text) -> JsonRpcRequest:
    """Decode one inbound text frame.

    The ``jsonrpc`` member is carried through untouched; clients that omit or
    misstate it are still served. Raises ParseError for anything that is not
    a JSON object.
    """
    try:
        msg = json.loads(text)
    except (TypeError, ValueError) as e:
        raise ParseError(f"invalid JSON: {e}") from e
    if not isinstance(msg, dict):
        raise ParseError(f"expected a JSON object, got {type(msg).__name__}")

    params = msg.get("params")
    return JsonRpcRequest(
        method=msg.get("method"),
        params=params if isinstance(params, dict) else {},
        id=msg.get("id"),
        jsonrpc=msg.get("jsonrpc"),
    )


class JsonRpcChannel:
    """JSON-RPC sender bound to one websocket connection."""

    def __init__(self, ws):
        self.ws = ws

    async def send(self, msg: Dict[str, Any]):
        if self.ws is None:
            return
        raw = json.dumps(msg)
        logging.debug("→ %s", raw)
        await self.ws.send(raw)

    async def send_response(self, msg_id, result=UNSET, error=None):
        await self.send(build_response(msg_id, result, error))

    async def send_notification(self, method: str, params):
        await self.send(build_notification(method, params))
