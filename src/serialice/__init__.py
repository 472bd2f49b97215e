# Host side of SerialICE: drive real x86 hardware from an emulator over serial
from .exceptions import ConfigurationError, DesyncError, LinkError, SerialICEError
from .filter import Filter, Route
from .link import Link
from .mux import Emulator, Mux, Target
from .protocol import CpuidRegs, SerialICE
from .session import Session, connect

__all__ = [
    "ConfigurationError", "DesyncError", "LinkError", "SerialICEError",
    "Filter", "Route", "Link", "Emulator", "Mux", "Target",
    "CpuidRegs", "SerialICE", "Session", "connect",
]
