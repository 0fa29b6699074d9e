import os
from dataclasses import dataclass

SOCKET_PATHS = {
    "ble": "/scratch/ble",
    "bt": "/scratch/bt",
}


@dataclass(frozen=True)
class SessionConfig:
    """Protocol values a PeripheralSession is built with.

    ``timeout`` mirrors the idle timeout real Scratch Link peripherals
    advertise; nothing enforces it yet.
    """

    type: str = "ble"
    host: str = "127.0.0.1"
    port: int = 20111
    protocol_version: str = "1.3"
    send_interval: float = 0.1
    timeout: float = 4.5

    def __post_init__(self):
        kind = (self.type or "").lower()
        if kind not in SOCKET_PATHS:
            raise ValueError(f"unknown peripheral type {self.type!r} (expected 'ble' or 'bt')")
        object.__setattr__(self, "type", kind)
        if self.send_interval <= 0:
            raise ValueError("send_interval must be positive")

    @property
    def path(self) -> str:
        return SOCKET_PATHS[self.type]

    @classmethod
    def from_env(cls) -> "SessionConfig":
        return cls(
            type=os.getenv("SL_TYPE", "ble"),
            host=os.getenv("SL_HOST", "127.0.0.1"),
            port=int(os.getenv("SL_PORT", "20111")),
            protocol_version=os.getenv("SL_PROTOCOL_VERSION", "1.3"),
            send_interval=float(os.getenv("SL_SEND_INTERVAL_MS", "100")) / 1000.0,
        )
