import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Union

from websockets.exceptions import ConnectionClosed

from .jsonrpc import JsonRpcChannel


@dataclass
class HandlerContext:
    channel: JsonRpcChannel
    connection: Any
    method: Optional[str]
    params: Dict[str, Any] = field(default_factory=dict)
    id: Any = None


Handler = Callable[[HandlerContext], Awaitable[None]]


class HandlerRegistry:
    """Method name → ordered handler chain, plus one fallback chain.

    Registration only appends. Every handler in a chain runs, in the order it
    was registered.
    """

    def __init__(self):
        self.handlers: Dict[str, List[Handler]] = {}
        self.fallback: List[Handler] = []

    def register(self, methods: Union[None, str, Iterable[str]], handler: Handler):
        if methods is None:
            self.fallback.append(handler)
            return
        if isinstance(methods, str):
            methods = [methods]
        for method in methods:
            self.handlers.setdefault(method, []).append(handler)

    def has_handlers(self, method) -> bool:
        return method in self.handlers

    async def dispatch(self, method, context: HandlerContext) -> int:
        chain = self.handlers.get(method) if isinstance(method, str) else None
        if chain is None:
            logging.warning(f"? no handler for method {method!r}, calling fallback handlers instead")
            chain = self.fallback

        for handler in chain:
            try:
                await handler(context)
            except ConnectionClosed:
                raise
            except Exception as e:
                logging.warning(f"RPC error: {e}")
        return len(chain)
