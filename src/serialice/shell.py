#!/usr/bin/python3
# Command line shell for the SerialICE protocol
import argparse
import logging
import os
import re
import readline  # noqa: F401 (line editing for input())
import sys
from typing import Optional

from .exceptions import SerialICEError
from .protocol import SerialICE
from .session import connect

logger = logging.getLogger(__name__)

IO_WIDTHS  = {"8": 1, "16": 2, "32": 4}
MEM_WIDTHS = {"8": 1, "16": 2, "32": 4, "64": 8}

def execute(dev: SerialICE, line: str) -> Optional[str]:
    """Run one shell command against the target, returning what to print
    """

    args = re.split(r"\s+", line.strip())
    cmd = args[0]
    try:
        nums = [int(x, 0) for x in args[1:]]
        m = re.fullmatch(r"([rw][im])(\d+)", cmd)
        if m:
            kind, bits = m.groups()
            size = (IO_WIDTHS if kind[1] == "i" else MEM_WIDTHS)[bits]
            if kind == "ri":
                (in_port,) = nums
                return f"{dev.io_read(in_port, size):0{2 * size}x}"
            elif kind == "wi":
                in_port, in_val = nums
                dev.io_write(in_port, size, in_val)
            elif kind == "rm":
                (in_addr,) = nums
                return f"{dev.load(in_addr, size):0{2 * size}x}"
            else:
                in_addr, in_val = nums
                dev.store(in_addr, size, in_val)
            return None
        elif cmd == "rdmsr":
            in_addr, in_key = nums + [0] if len(nums) == 1 else nums
            hi, lo = dev.rdmsr(in_addr, in_key)
            return f"HI {hi:08x} LO {lo:08x}"
        elif cmd == "wrmsr":
            in_addr, in_hi, in_lo, in_key = nums + [0] if len(nums) == 3 else nums
            dev.wrmsr(in_addr, in_key, in_hi, in_lo)
            return None
        elif cmd == "cpuid":
            in_eax, in_ecx = nums + [0] if len(nums) == 1 else nums
            regs = dev.cpuid(in_eax, in_ecx)
            return f"EAX {regs.eax:08x} EBX {regs.ebx:08x} ECX {regs.ecx:08x} EDX {regs.edx:08x}"
        elif cmd == "version" and not nums:
            return dev.version()
        elif cmd == "mainboard" and not nums:
            return dev.mainboard()
    except (KeyError, ValueError):
        pass
    return f"Invalid command `{line}`"

def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="SerialICE shell")
    parser.add_argument("-d", "--device", default=os.environ.get("SERIALICE_DEVICE"),
                        help="serial device of the target (default: $SERIALICE_DEVICE)")
    parser.add_argument("--rom-size", type=lambda x: int(x, 0),
                        help="size of the firmware image in bytes")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="dump every reply from the target")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="SerialICE: %(message)s")

    try:
        with connect(args.device, args.rom_size) as session:
            while True:
                try:
                    line = input("> ")
                except EOFError:
                    break
                if not line.strip():
                    continue
                if line.strip() in ("quit", "exit"):
                    break
                out = execute(session.target, line)
                if out is not None:
                    print(out)
    except SerialICEError as e:
        logger.critical("%s", e)
        return 1
    except KeyboardInterrupt:
        pass
    return 0

if __name__ == "__main__":
    sys.exit(main())
