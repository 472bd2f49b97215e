# Routes CPU accesses between the real target and the emulator
from typing import Optional, Protocol

from .filter import Filter, Route
from .protocol import CpuidRegs

class Target(Protocol):
    def version(self) -> str: ...
    def mainboard(self) -> str: ...
    def io_read(self, port: int, size: int) -> int: ...
    def io_write(self, port: int, size: int, val: int): ...
    def load(self, addr: int, size: int) -> int: ...
    def store(self, addr: int, size: int, val: int): ...
    def rdmsr(self, addr: int, key: int) -> tuple[int, int]: ...
    def wrmsr(self, addr: int, key: int, hi: int, lo: int): ...
    def cpuid(self, eax: int, ecx: int) -> CpuidRegs: ...

class Emulator(Protocol):
    # Memory is not part of this interface: load and store report whether
    # the caller's own memory path still has to handle the access.
    def io_read(self, port: int, size: int) -> int: ...
    def io_write(self, port: int, size: int, val: int): ...
    def rdmsr(self, addr: int) -> int: ...
    def wrmsr(self, addr: int, val: int): ...
    def cpuid(self, eax: int, ecx: int) -> CpuidRegs: ...

def mask_data(val: int, size: int) -> int:
    return val & ((1 << (size * 8)) - 1)

class Mux:
    def __init__(self, target: Target, emulator: Emulator, filter: Optional[Filter] = None):
        self.target = target
        self.emulator = emulator
        self.filter = filter if filter is not None else Filter()

    def io_read(self, port: int, size: int) -> int:
        data = 0
        mux = self.filter.io_read_pre(port, size)

        if mux & Route.READ_FROM_TARGET:
            data = self.target.io_read(port, size)
        if mux & Route.READ_FROM_EMULATION:
            data = self.emulator.io_read(port, size)

        data = mask_data(data, size)
        data = self.filter.io_read_post(data)
        return mask_data(data, size)

    def io_write(self, port: int, size: int, data: int):
        data = mask_data(data, size)
        mux, data = self.filter.io_write_pre(port, size, data)
        data = mask_data(data, size)

        if mux & Route.WRITE_TO_EMULATION:
            self.emulator.io_write(port, size, data)
        if mux & Route.WRITE_TO_TARGET:
            self.target.io_write(port, size, data)

        self.filter.io_write_post()

    def load(self, addr: int, size: int) -> tuple[bool, int]:
        """Load from the target if the filter says so.

        Returns (handled, data). When handled is False the emulator's own
        memory has to service the load and data is meaningless.
        """
        data = 0
        mux = self.filter.load_pre(addr, size)

        if mux & Route.READ_FROM_TARGET:
            data = mask_data(self.target.load(addr, size), size)

        handled = not (mux & Route.READ_FROM_EMULATION)
        if handled:
            data = mask_data(self.filter.load_post(data), size)
        return handled, data

    def store(self, addr: int, size: int, data: int) -> bool:
        """Store to the target if the filter says so.

        Returns False when the emulator's own memory has to apply the store
        as well (emulation exclusive or shared), True when the target owns it.
        """
        mux, data = self.filter.store_pre(addr, size, mask_data(data, size))

        if mux & Route.WRITE_TO_TARGET:
            self.target.store(addr, size, mask_data(data, size))

        self.filter.store_post()
        return not (mux & Route.WRITE_TO_EMULATION)

    def rdmsr(self, addr: int, key: int) -> int:
        hi = lo = 0
        mux = self.filter.rdmsr_pre(addr)

        if mux & Route.READ_FROM_TARGET:
            hi, lo = self.target.rdmsr(addr, key)
        if mux & Route.READ_FROM_EMULATION:
            data = self.emulator.rdmsr(addr)
            hi, lo = data >> 32, data & 0xffffffff

        hi, lo = self.filter.rdmsr_post(hi, lo)
        return (hi << 32) | lo

    def wrmsr(self, addr: int, key: int, data: int):
        hi, lo = data >> 32, data & 0xffffffff
        mux, hi, lo = self.filter.wrmsr_pre(addr, hi, lo)

        if mux & Route.WRITE_TO_TARGET:
            self.target.wrmsr(addr, key, hi, lo)
        if mux & Route.WRITE_TO_EMULATION:
            self.emulator.wrmsr(addr, (hi << 32) | lo)

        self.filter.wrmsr_post()

    def cpuid(self, eax: int, ecx: int) -> CpuidRegs:
        ret = CpuidRegs(0, 0, 0, 0)
        mux = self.filter.cpuid_pre(eax, ecx)

        if mux & Route.READ_FROM_TARGET:
            ret = self.target.cpuid(eax, ecx)
        if mux & Route.READ_FROM_EMULATION:
            ret = self.emulator.cpuid(eax, ecx)

        return self.filter.cpuid_post(ret)
