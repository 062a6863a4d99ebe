"""
Ternary VM — Instruction Decoder

Turns the tryte at PC into exactly two Instr values and the PC of the
next encoding:

  1. Read tryte at PC, split into high and low trybble.
  2. High trybble = LIT_INLINE → (LIT low, NOP), PC + 1. Low trybble is
     never looked at as an opcode in this case.
  3. Otherwise high → simple table.
  4. Low trybble → LIT (reads PC+1), WORD (reads PC+1, PC+2), low-only
     control ops, or simple table.

The decoder performs no recovery. Store read failures surface as the
store's AddressError, unmapped values as IllegalInstruction carrying the
value and the address of the instruction tryte.
"""

from typing import Tuple

from ..errors import IllegalInstruction
from ..numerals import Tryte, Word
from .instructions import (
    Instr, Opcode, NOP,
    LIT_INLINE, LIT_TRYTE, LIT_WORD, SIMPLE_OPCODES, LOW_OPCODES,
)


def decode_simple(value: int, pc: int) -> Instr:
    """Shared zero-operand table used by both trybble positions."""
    op = SIMPLE_OPCODES.get(value)
    if op is None:
        raise IllegalInstruction(pc, value)
    return Instr(op)


def decode_high(value: int, low: int, pc: int) -> Instr:
    if value == LIT_INLINE:
        return Instr(Opcode.LIT, Tryte.from_trybbles(0, low))
    return decode_simple(value, pc)


def decode_low(value: int, memory, pc: int) -> Tuple[Instr, int]:
    """Decode the low trybble of the tryte at `pc`.

    Returns (instr, cursor) where cursor is the address of the last
    tryte consumed.
    """
    cursor = pc

    if value == LIT_TRYTE:
        cursor += 1
        return Instr(Opcode.LIT, memory.read_tryte(cursor)), cursor

    if value == LIT_WORD:
        cursor += 1
        hi = memory.read_tryte(cursor)
        cursor += 1
        lo = memory.read_tryte(cursor)
        return Instr(Opcode.WORD, Word.from_trytes(hi, lo)), cursor

    op = LOW_OPCODES.get(value)
    if op is not None:
        return Instr(op), cursor

    return decode_simple(value, pc), cursor


def decode_instruction(memory, pc: int) -> Tuple[Instr, Instr, int]:
    """Fetch and decode the encoding at `pc`.

    Returns: (first, second, next_pc)
    """
    op = memory.read_tryte(pc)
    hi, lo = op.hi_value, op.lo_value

    first = decode_high(hi, lo, pc)
    if hi == LIT_INLINE:
        return first, NOP, pc + 1

    second, cursor = decode_low(lo, memory, pc)
    return first, second, cursor + 1
