import asyncio
import logging
import os

from scratchlink_peripheral.config import SessionConfig
from scratchlink_peripheral.microbit import create_microbit

logging.basicConfig(level=os.getenv("SL_LOG_LEVEL", "DEBUG").upper(),
                    format="[%(asctime)s] [%(levelname)s] %(message)s")


async def main():
    microbit = create_microbit(SessionConfig.from_env())
    await microbit.start()


if __name__ == "__main__":
    asyncio.run(main())
