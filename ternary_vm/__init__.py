# Ternary VM — T6010 balanced-ternary stack machine emulator
#
# Layout:
#   numerals.py      Tryte / Word value types and balanced-ternary arithmetic
#   mem/memory.py    flat tryte-addressable store
#   cpu/             instruction set + decoder
#   emu.py           fetch-decode-execute engine
#   asm.py           two-pass assembler, disasm.py disassembler
#   cli.py           tvmkit command line
"""T6010 balanced-ternary stack machine emulator."""

__version__ = "0.1.0"

from .errors import (
    TernaryVMError, IllegalInstruction, AddressError, StackUnderflow,
    UnimplementedInstruction,
)
from .numerals import Tryte, Word
from .mem.memory import Memory
from .cpu.instructions import Instr, Opcode
from .cpu.decoder import decode_instruction
from .emu import TernaryCPU, Halt, RunResult, StopReason
