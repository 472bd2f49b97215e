"""Shared fixtures: fake serial ports standing in for the target."""

import re

import pytest

from serialice.link import Link
from serialice.protocol import SerialICE

PROMPT = b"\n> "


class FakeSerial:
    """Serial port double that echoes every written byte.

    Bytes queued with feed() are handed out after any pending echo. A read
    that runs out of data returns short, like a pyserial read timing out.
    """

    def __init__(self, rx: bytes = b"", echo: bool = True) -> None:
        self.rx = bytearray(rx)
        self.written = bytearray()
        self.echo = echo
        self.is_open = True
        self._echo = bytearray()

    def feed(self, data: bytes) -> None:
        self.rx += data

    def write(self, data: bytes) -> int:
        self.written += data
        if self.echo:
            self._echo += data
        self.on_write()
        return len(data)

    def on_write(self) -> None:
        pass

    def read(self, size: int = 1) -> bytes:
        out = bytearray()
        while len(out) < size and self._echo:
            out.append(self._echo.pop(0))
        take = size - len(out)
        out += self.rx[:take]
        del self.rx[:take]
        return bytes(out)

    def reset_input_buffer(self) -> None:
        pass

    def reset_output_buffer(self) -> None:
        pass

    def close(self) -> None:
        self.is_open = False


_SIZES = {"b": 1, "w": 2, "l": 4, "q": 8}
_HEX8 = "[0-9a-f]{8}"


class FakeShell(FakeSerial):
    """Fake target running the SerialICE shell on an in-memory machine.

    Recognizes each command once its last character arrives, queues the
    reply followed by a fresh prompt, and records the commands it ran.
    """

    def __init__(self, mainboard: str = "MYBOARD", version: str = "SerialICE v1.6",
                 rx: bytes = PROMPT) -> None:
        super().__init__(rx=rx)
        self.mainboard = mainboard
        self.version = version
        self.mem: dict[int, int] = {}
        self.io: dict[int, int] = {}
        self.msrs: dict[int, tuple[int, int]] = {}
        self.commands: list[str] = []
        self._pending = ""

    def on_write(self) -> None:
        c = self.written[-1:]
        if c == b"@":
            self.feed(PROMPT)
            return
        self._pending += c.decode("ascii")
        if not self._pending.startswith("*"):
            self._pending = ""
            return
        reply = self._run(self._pending)
        if reply is not None:
            self.commands.append(self._pending)
            self._pending = ""
            self.feed(reply + PROMPT)

    def _run(self, cmd: str) -> bytes | None:
        if cmd == "*vi":
            return b"\n" + self.version.encode() + b"\n"
        if cmd == "*mb":
            return b"\n" + self.mainboard.ljust(31).encode()
        m = re.fullmatch(r"\*r([im])([0-9a-f]{4}|[0-9a-f]{8})\.([bwlq])", cmd)
        if m and len(m.group(2)) == (4 if m.group(1) == "i" else 8):
            size = _SIZES[m.group(3)]
            store = self.io if m.group(1) == "i" else self.mem
            value = store.get(int(m.group(2), 16), 0) & ((1 << (8 * size)) - 1)
            return b"\n" + f"{value:0{2 * size}x}".encode()
        m = re.fullmatch(r"\*w([im])([0-9a-f]+)\.([bwlq])=([0-9a-f]+)", cmd)
        if m and len(m.group(4)) == 2 * _SIZES[m.group(3)]:
            store = self.io if m.group(1) == "i" else self.mem
            store[int(m.group(2), 16)] = int(m.group(4), 16)
            return b""
        m = re.fullmatch(rf"\*rc({_HEX8})\.({_HEX8})", cmd)
        if m:
            hi, lo = self.msrs.get(int(m.group(1), 16), (0, 0))
            return f"\n{hi:08x}.{lo:08x}".encode()
        m = re.fullmatch(rf"\*wc({_HEX8})\.{_HEX8}=({_HEX8})\.({_HEX8})", cmd)
        if m:
            self.msrs[int(m.group(1), 16)] = (int(m.group(2), 16), int(m.group(3), 16))
            return b""
        m = re.fullmatch(rf"\*ci({_HEX8})\.({_HEX8})", cmd)
        if m:
            return b"\n000006f2.00000001.00001234.12340324"
        return None


@pytest.fixture
def port() -> FakeSerial:
    """A fake port with the first prompt already waiting."""
    return FakeSerial(rx=PROMPT)


@pytest.fixture
def dev(port: FakeSerial) -> SerialICE:
    return SerialICE(Link(port))


@pytest.fixture
def shell() -> FakeShell:
    return FakeShell()


@pytest.fixture
def shell_dev(shell: FakeShell) -> SerialICE:
    return SerialICE(Link(shell))
