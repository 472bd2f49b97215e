# Routing policy for accesses made by the emulated CPU
import enum

from .protocol import CpuidRegs

class Route(enum.IntFlag):
    READ_FROM_EMULATION = 1 << 0
    READ_FROM_TARGET    = 1 << 1
    WRITE_TO_EMULATION  = 1 << 2
    WRITE_TO_TARGET     = 1 << 3

class Filter:
    """Base policy: every access goes to the target, data passes unchanged.

    Subclasses override the hooks they care about. A pre hook decides the
    route of an access (and for writes may replace the data in transit), the
    matching post hook sees the result before it is handed back to the CPU.
    """

    def io_read_pre(self, port: int, size: int) -> Route:
        return Route.READ_FROM_TARGET

    def io_read_post(self, data: int) -> int:
        return data

    def io_write_pre(self, port: int, size: int, data: int) -> tuple[Route, int]:
        return Route.WRITE_TO_TARGET, data

    def io_write_post(self):
        pass

    def load_pre(self, addr: int, size: int) -> Route:
        return Route.READ_FROM_TARGET

    def load_post(self, data: int) -> int:
        return data

    def store_pre(self, addr: int, size: int, data: int) -> tuple[Route, int]:
        return Route.WRITE_TO_TARGET, data

    def store_post(self):
        pass

    def rdmsr_pre(self, addr: int) -> Route:
        return Route.READ_FROM_TARGET

    def rdmsr_post(self, hi: int, lo: int) -> tuple[int, int]:
        return hi, lo

    def wrmsr_pre(self, addr: int, hi: int, lo: int) -> tuple[Route, int, int]:
        return Route.WRITE_TO_TARGET, hi, lo

    def wrmsr_post(self):
        pass

    def cpuid_pre(self, eax: int, ecx: int) -> Route:
        return Route.READ_FROM_TARGET

    def cpuid_post(self, regs: CpuidRegs) -> CpuidRegs:
        return regs
