# Serial link to the SerialICE shell running on the target
import logging
import serial

from .exceptions import ConfigurationError, LinkError

logger = logging.getLogger(__name__)

BAUDRATE = 115200
TIMEOUT  = 10
PROMPT   = b"\n> "
TRIGGER  = b"@"

class Link:
    def __init__(self, ser):
        self._ser = ser
        # Readback errors are expected while connecting
        self.handshake_mode = False

    @classmethod
    def open(cls, device: str) -> "Link":
        """Open the target TTY exclusively as 115200 8N1, raw, 10s timeout
        """

        try:
            ser = serial.Serial(device, BAUDRATE,
                                bytesize=serial.EIGHTBITS,
                                parity=serial.PARITY_NONE,
                                stopbits=serial.STOPBITS_ONE,
                                timeout=TIMEOUT,
                                exclusive=True)
            ser.reset_input_buffer()
            ser.reset_output_buffer()
        except (serial.SerialException, OSError, ValueError) as e:
            raise ConfigurationError(f"Could not connect to target TTY {device}: {e}") from e
        return cls(ser)

    def close(self):
        self._ser.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def read(self, n: int) -> bytes:
        """Read up to n bytes, returning short only when the read times out

        A read that gets nothing for TIMEOUT seconds ends here, so a reply
        that stalls mid-stream comes back short and the caller treats it as
        a desync. Waiting for the prompt and for echoes keeps retrying
        across timeouts instead (see _read_byte).
        """

        buf = bytearray()
        while len(buf) < n:
            try:
                chunk = self._ser.read(n - len(buf))
            except InterruptedError:
                continue
            except (serial.SerialException, OSError) as e:
                raise LinkError(f"Could not read from target: {e}") from e
            if not chunk:
                break
            buf += chunk
        return bytes(buf)

    def _read_byte(self) -> int:
        while True:
            data = self.read(1)
            if data:
                return data[0]

    def write(self, data: bytes):
        """Write data one byte at a time, checking each byte the target echoes
        """

        for b in data:
            try:
                self._ser.write(bytes([b]))
            except (serial.SerialException, OSError) as e:
                raise LinkError(f"Could not write to target: {e}") from e
            c = self._read_byte()
            if c != b and not self.handshake_mode:
                logger.warning("Readback error! %x/%x", c, b)

    def wait_prompt(self):
        window = b""
        while window != PROMPT:
            window = (window + bytes([self._read_byte()]))[-len(PROMPT):]

    def handshake(self):
        """Wait until the target shell shows its prompt
        """

        logger.info("Waiting for handshake with target...")
        self.handshake_mode = True
        try:
            # Trigger a prompt and wait for it to appear
            self.write(TRIGGER)
            self.wait_prompt()
            logger.info("target alive!")

            # Every command waits for a prompt first, so trigger one for the
            # first command as we consumed this one
            self.write(TRIGGER)
        finally:
            self.handshake_mode = False
