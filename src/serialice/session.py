# Startup and ownership of the one connection to the target
import logging
from typing import Optional

from .exceptions import ConfigurationError
from .filter import Filter
from .link import Link
from .mux import Emulator, Mux
from .protocol import SerialICE

logger = logging.getLogger(__name__)

ROM_ALIGN = 64 * 1024

class Session:
    """A live connection to a SerialICE target.

    The link is owned exclusively by the session. Version, mainboard and ROM
    size are fixed once the session is up.
    """

    def __init__(self, link: Link, target: SerialICE, version: str, mainboard: str,
                 rom_size: Optional[int] = None):
        self.link = link
        self.target = target
        self._version = version
        self._mainboard = mainboard
        self._rom_size = rom_size
        self.active = False

    @property
    def version(self) -> str:
        return self._version

    @property
    def mainboard(self) -> str:
        return self._mainboard

    @property
    def rom_size(self) -> Optional[int]:
        return self._rom_size

    def attach(self, emulator: Emulator, filter: Optional[Filter] = None) -> Mux:
        mux = Mux(self.target, emulator, filter)
        # Let the rest of the emulator know we're alive
        self.active = True
        return mux

    def close(self):
        self.active = False
        self.link.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

def check_rom_size(rom_size: int):
    if rom_size <= 0 or rom_size % ROM_ALIGN != 0:
        raise ConfigurationError(f"ROM size 0x{rom_size:x} is not a positive multiple of 64KiB")

def connect(device: Optional[str], rom_size: Optional[int] = None) -> Session:
    if not device:
        raise ConfigurationError("You need to specify a serial device to use SerialICE.")

    logger.info("Open connection to target hardware...")
    if rom_size is not None:
        check_rom_size(rom_size)
        logger.info("ROM size....: 0x%08x", rom_size)

    link = Link.open(device)
    try:
        link.handshake()
        target = SerialICE(link)
        version = target.version()
        logger.info("Version.....: %s", version)
        mainboard = target.mainboard()
        logger.info("Mainboard...: %s", mainboard)
    except BaseException:
        link.close()
        raise
    return Session(link, target, version, mainboard, rom_size)
