"""
Ternary VM — Machine Configuration

Architecture constants for the T6010 variant (6-trit instruction trytes,
10-trit addressable range) and the run-time knobs the CLI exposes.
"""

from dataclasses import dataclass
from enum import Enum


class ISA(Enum):
    T6010 = 'T6010'   # 6-trit instructions, 10-trit addressable


# =============================================================================
#  ADDRESS SPACE
# =============================================================================
ADDRESS_TRITS = 10
ADDRESS_MAX = (3 ** ADDRESS_TRITS - 1) // 2    # 29524
ADDRESS_MIN = -ADDRESS_MAX

# =============================================================================
#  EXECUTION DEFAULTS
# =============================================================================
DEFAULT_ORIGIN = 0
DEFAULT_MAX_STEPS = 100_000


@dataclass
class MachineConfig:
    isa: ISA = ISA.T6010
    origin: int = DEFAULT_ORIGIN
    max_steps: int = DEFAULT_MAX_STEPS
    trace: bool = False
    address_trits: int = ADDRESS_TRITS

    @classmethod
    def from_args(cls, args) -> 'MachineConfig':
        """Build from an argparse namespace; missing attributes keep defaults."""
        cfg = cls()
        for name in ('origin', 'max_steps', 'trace'):
            value = getattr(args, name, None)
            if value is not None:
                setattr(cfg, name, value)
        return cfg

    def build_memory(self):
        from .mem.memory import Memory
        return Memory(self.address_trits)

    def build_cpu(self, memory):
        from .emu import TernaryCPU
        cpu = TernaryCPU(memory, pc=self.origin, isa=self.isa)
        if self.trace:
            cpu.enable_trace()
        return cpu
