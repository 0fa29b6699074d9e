import logging
from typing import Sequence

CMD_PIN_CONFIG = 0x80
CMD_DISPLAY_TEXT = 0x81
CMD_DISPLAY_LED = 0x82

LED_ROWS = 5


def render_led_rows(rows: Sequence[int]) -> str:
    rows = list(rows[:LED_ROWS]) + [0] * (LED_ROWS - len(rows))
    return "\n".join(format(r, "05b").replace("0", ".") for r in rows)


def decode(message: bytes) -> str:
    """Render a display write as text.

    0x81 carries ASCII text, 0x82 a 5x5 LED bitmap (one byte per row).
    Anything else, CMD_PIN_CONFIG included, yields "" and a warning.
    """
    opcode = message[0] if message else None
    args = bytes(message[1:])

    if opcode == CMD_DISPLAY_TEXT:
        return "".join(chr(b) for b in args)

    if opcode == CMD_DISPLAY_LED:
        return render_led_rows(args)

    logging.warning(f"[DISPLAY] unknown command 0x{(opcode or 0):02X} args={args.hex()}, returning empty data")
    return ""
