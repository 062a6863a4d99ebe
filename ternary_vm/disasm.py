"""
Ternary VM — Disassembler

Walks a memory range with the instruction decoder and renders each
encoding as assembler text that re-assembles to the same trytes. An
extended LIT whose value would also fit the inline form prints as
'NOP LIT n' so the operand tryte is kept.

Illegal trytes print as 'DT <value>' and the walk resumes at the next
address, so data tables in the middle of code do not stop the listing.
The walk ends early at the first address the store cannot read.
"""

from typing import Iterator, Tuple

from .cpu.decoder import decode_instruction
from .cpu.instructions import Opcode
from .errors import AddressError, IllegalInstruction
from .numerals import TRYBBLE_MAX


def format_pair(first, second) -> str:
    if first.opcode is Opcode.LIT:
        return str(first)
    if first.opcode is Opcode.NOP and second.opcode is Opcode.LIT \
            and abs(second.operand.value) <= TRYBBLE_MAX:
        return f"{first} {second}"
    if second.opcode is Opcode.NOP and first.opcode is not Opcode.NOP:
        return str(first)
    if first.opcode is Opcode.NOP and second.opcode is not Opcode.NOP:
        return str(second)
    return f"{first} {second}"


def disassemble(memory, start: int, end: int) -> Iterator[Tuple[int, str]]:
    """Yield (address, text) for each encoding starting in [start, end)."""
    pc = start
    while pc < end:
        try:
            first, second, next_pc = decode_instruction(memory, pc)
        except (IllegalInstruction, AddressError):
            # AddressError here: operand trytes run past the end of memory
            try:
                value = memory.read_tryte(pc)
            except AddressError:
                return
            yield pc, f"DT {value.value}"
            pc += 1
            continue
        yield pc, format_pair(first, second)
        pc = next_pc
