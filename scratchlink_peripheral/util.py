import base64
import binascii
import logging


def b64(payload: bytes) -> str:
    return base64.b64encode(bytes(payload)).decode("ascii")


def b64_to_bytes(s: str) -> bytes:
    if not s:
        return b""
    try:
        return base64.b64decode(s)
    except (binascii.Error, TypeError, ValueError) as e:
        logging.warning(f"[BASE64] could not decode {s!r}: {e}")
        return b""
