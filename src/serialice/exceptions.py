# Error kinds raised by the SerialICE host side
from typing import Optional


class SerialICEError(Exception):
    pass


class ConfigurationError(SerialICEError):
    """The link could not be set up (no device, open/lock/configure failure)."""


class LinkError(SerialICEError):
    """The serial link failed with a hard I/O error."""


class DesyncError(SerialICEError):
    """The target did not answer a command with the expected reply.

    The shell protocol has no way to resynchronize, so the session is over.
    """

    def __init__(self, command: str, received: int, expected: int, reply: bytes,
                 reason: Optional[str] = None):
        self.command = command
        self.received = received
        self.expected = expected
        self.reply = reply
        self.reason = reason
        if reason is not None:
            super().__init__(f"command {command} got an unparsable reply: {reason} {reply!r}")
        else:
            super().__init__(f"command {command} was not answered sufficiently: "
                             f"({received}/{expected} bytes) {reply!r}")
