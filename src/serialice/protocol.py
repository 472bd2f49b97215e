# Python interface for the SerialICE shell protocol
import logging
import re
from typing import NamedTuple

from .exceptions import DesyncError
from .link import Link

logger = logging.getLogger(__name__)

IO_SUFFIX  = {1: "b", 2: "w", 4: "l"}
MEM_SUFFIX = {1: "b", 2: "w", 4: "l", 8: "q"}

MAINBOARD_LEN = 32
RDMSR_LEN     = 18  # "\n00000000.00000000"
CPUID_LEN     = 36  # "\n000006f2.00000000.00001234.12340324"

# Returned by io_read for an access width the shell does not support
UNSUPPORTED_READ = (1 << 64) - 1

_HEX = re.compile(rb"[0-9a-fA-F]+")

class CpuidRegs(NamedTuple):
    eax: int
    ebx: int
    ecx: int
    edx: int

def _reply_len(size: int) -> int:
    # "\n" followed by two hex digits per byte
    return 1 + 2 * size

def _hex(value: int, size: int) -> str:
    return f"{value & ((1 << (8 * size)) - 1):0{2 * size}x}"

class SerialICE:
    def __init__(self, link: Link):
        self._link = link

    def command(self, command: str, reply_len: int) -> bytes:
        """Send a command at the next prompt and read its fixed-length reply
        """

        self._link.wait_prompt()
        self._link.write(command.encode("ascii"))
        reply = self._link.read(reply_len)

        # Compensate for a CR on the wire
        if reply[:1] == b"\r":
            reply = reply[1:] + self._link.read(1)

        if len(reply) != reply_len:
            raise DesyncError(command, len(reply), reply_len, reply)
        logger.debug("%s -> %s", command, reply.hex(" "))
        return reply

    def _fields(self, command: str, reply: bytes, widths: list[int]) -> list[int]:
        """Split a "\\nXXXX.YYYY..." reply into fixed-width hex fields at fixed columns
        """

        if reply[:1] != b"\n":
            raise DesyncError(command, len(reply), len(reply), reply,
                              "missing leading newline")
        fields = []
        pos = 1
        for i, width in enumerate(widths):
            if i:
                if reply[pos:pos + 1] != b".":
                    raise DesyncError(command, len(reply), len(reply), reply,
                                      f"expected '.' at offset {pos}")
                pos += 1
            field = reply[pos:pos + width]
            if len(field) != width or not _HEX.fullmatch(field):
                raise DesyncError(command, len(reply), len(reply), reply,
                                  f"expected {width} hex digits at offset {pos}")
            fields.append(int(field, 16))
            pos += width
        return fields

    def _read_line(self) -> bytes:
        line = bytearray()
        while True:
            c = self._link.read(1)
            if not c:
                raise DesyncError("*vi", len(line), len(line) + 1, bytes(line))
            if c == b"\n":
                return bytes(line)
            line += c

    def version(self) -> str:
        self.command("*vi", 0)

        # Skip the leading newline of the reply
        first = self._link.read(1)
        if first == b"\r":
            first = self._link.read(1)
        if first != b"\n":
            raise DesyncError("*vi", len(first), 1, first)
        return self._read_line().rstrip(b"\r").decode("ascii", errors="replace")

    def mainboard(self) -> str:
        reply = self.command("*mb", MAINBOARD_LEN)
        return reply[1:].rstrip(b" ").decode("ascii", errors="replace")

    def io_read(self, port: int, size: int) -> int:
        if size not in IO_SUFFIX:
            logger.warning("unknown read access size %d @%08x", size, port)
            return UNSUPPORTED_READ
        cmd = f"*ri{port & 0xffff:04x}.{IO_SUFFIX[size]}"
        return self._fields(cmd, self.command(cmd, _reply_len(size)), [2 * size])[0]

    def io_write(self, port: int, size: int, val: int):
        if size not in IO_SUFFIX:
            logger.warning("unknown write access size %d @%08x", size, port)
            return
        self.command(f"*wi{port & 0xffff:04x}.{IO_SUFFIX[size]}={_hex(val, size)}", 0)

    def load(self, addr: int, size: int) -> int:
        if size not in MEM_SUFFIX:
            logger.warning("unknown read access size %d @%08x", size, addr)
            return 0
        cmd = f"*rm{addr & 0xffffffff:08x}.{MEM_SUFFIX[size]}"
        return self._fields(cmd, self.command(cmd, _reply_len(size)), [2 * size])[0]

    def store(self, addr: int, size: int, val: int):
        if size not in MEM_SUFFIX:
            logger.warning("unknown write access size %d @%08x", size, addr)
            return
        self.command(f"*wm{addr & 0xffffffff:08x}.{MEM_SUFFIX[size]}={_hex(val, size)}", 0)

    def rdmsr(self, addr: int, key: int) -> tuple[int, int]:
        cmd = f"*rc{_hex(addr, 4)}.{_hex(key, 4)}"
        reply = self.command(cmd, RDMSR_LEN)
        hi, lo = self._fields(cmd, reply, [8, 8])
        return hi, lo

    def wrmsr(self, addr: int, key: int, hi: int, lo: int):
        self.command(f"*wc{_hex(addr, 4)}.{_hex(key, 4)}={_hex(hi, 4)}.{_hex(lo, 4)}", 0)

    def cpuid(self, eax: int, ecx: int) -> CpuidRegs:
        cmd = f"*ci{_hex(eax, 4)}.{_hex(ecx, 4)}"
        reply = self.command(cmd, CPUID_LEN)
        return CpuidRegs(*self._fields(cmd, reply, [8, 8, 8, 8]))
