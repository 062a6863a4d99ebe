"""
Ternary VM — T6010 Instruction Set

Each instruction tryte packs two trybbles. The high trybble is decoded
first; the low trybble second, from a wider table.

High position:
  -12           LIT (inline)  value = low trybble, second slot NOP
  simple table  zero-operand operations

Low position:
  -13           HALT
  -12           LIT           operand = next tryte
  -11           WORD          operand = next two trytes (hi, lo)
   8 … 13       RET JMP CALL BMI BZ BPL
  simple table  zero-operand operations

Simple table (shared):
  -10 STORE   -9 ISU   -8 LOAD   -7 INC   -6 MAX   -5 IST
   -1 NEG      0 NOP    1 ADD     2 ROT    3 SWAP   4 DUP
    5 SHL      6 DROP   7 SHR

INC, MAX, IST, ISU, SHL and SHR are reserved: they decode, but have no
execution semantics yet.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from ..numerals import Tryte, Word


class Opcode(Enum):
    NOP = 'NOP'

    # Push
    LIT = 'LIT'
    WORD = 'WORD'

    # Stack operations
    DROP = 'DROP'
    DUP = 'DUP'
    SWAP = 'SWAP'
    ROT = 'ROT'

    # Arithmetic
    ADD = 'ADD'
    NEG = 'NEG'

    # Reserved
    MAX = 'MAX'
    INC = 'INC'
    IST = 'IST'
    ISU = 'ISU'
    SHL = 'SHL'
    SHR = 'SHR'

    # Memory
    LOAD = 'LOAD'
    STORE = 'STORE'

    # Flow control
    JMP = 'JMP'
    CALL = 'CALL'
    RET = 'RET'
    HALT = 'HALT'

    # Conditional branches
    BZ = 'BZ'
    BPL = 'BPL'
    BMI = 'BMI'


RESERVED_OPCODES = frozenset({
    Opcode.MAX, Opcode.INC, Opcode.IST, Opcode.ISU, Opcode.SHL, Opcode.SHR,
})


@dataclass(frozen=True)
class Instr:
    """One decoded operation. Only LIT carries a Tryte, only WORD a Word."""

    opcode: Opcode
    operand: Optional[Union[Tryte, Word]] = None

    def __post_init__(self):
        if self.opcode is Opcode.LIT:
            if not isinstance(self.operand, Tryte):
                raise TypeError("LIT needs a Tryte operand")
        elif self.opcode is Opcode.WORD:
            if not isinstance(self.operand, Word):
                raise TypeError("WORD needs a Word operand")
        elif self.operand is not None:
            raise TypeError(f"{self.opcode.value} takes no operand")

    @classmethod
    def lit(cls, value: Union[int, Tryte]) -> 'Instr':
        if not isinstance(value, Tryte):
            value = Tryte(value)
        return cls(Opcode.LIT, value)

    @classmethod
    def word(cls, value: Union[int, Word]) -> 'Instr':
        if not isinstance(value, Word):
            value = Word(value)
        return cls(Opcode.WORD, value)

    def __str__(self) -> str:
        if self.operand is None:
            return self.opcode.value
        return f"{self.opcode.value} {self.operand}"


NOP = Instr(Opcode.NOP)


# ──────────────────────────────────────────────
# Encoding tables
# ──────────────────────────────────────────────

LIT_INLINE = -12     # high trybble: immediate from low trybble
LIT_TRYTE = -12      # low trybble: immediate from next tryte
LIT_WORD = -11       # low trybble: word from next two trytes

SIMPLE_OPCODES = {
    -10: Opcode.STORE,
    -9:  Opcode.ISU,
    -8:  Opcode.LOAD,
    -7:  Opcode.INC,
    -6:  Opcode.MAX,
    -5:  Opcode.IST,
    -1:  Opcode.NEG,
    0:   Opcode.NOP,
    1:   Opcode.ADD,
    2:   Opcode.ROT,
    3:   Opcode.SWAP,
    4:   Opcode.DUP,
    5:   Opcode.SHL,
    6:   Opcode.DROP,
    7:   Opcode.SHR,
}

# Valid only in low position
LOW_OPCODES = {
    -13: Opcode.HALT,
    8:   Opcode.RET,
    9:   Opcode.JMP,
    10:  Opcode.CALL,
    11:  Opcode.BMI,
    12:  Opcode.BZ,
    13:  Opcode.BPL,
}

# Reverse lookups for the assembler
SIMPLE_CODES = {op: code for code, op in SIMPLE_OPCODES.items()}
LOW_CODES = {op: code for code, op in LOW_OPCODES.items()}
LOW_CODES[Opcode.LIT] = LIT_TRYTE
LOW_CODES[Opcode.WORD] = LIT_WORD
LOW_CODES.update(SIMPLE_CODES)

# Extra trytes consumed after the instruction tryte, by low opcode
OPERAND_TRYTES = {Opcode.LIT: 1, Opcode.WORD: 2}
