"""
Ternary VM — Error Taxonomy

  TernaryVMError              base for every machine error
    IllegalInstruction        decoder hit an unmapped trybble value
    AddressError              store rejected an address
    StackUnderflow            pop with too few entries on estack/cstack
    UnimplementedInstruction  decoded opcode with no execution semantics

Halting is not an error; the engine reports it as a Halt result.

Errors raised while an operation is being dispatched carry the failing
instruction (`instr`) and the address it was fetched from (`pc`). The
engine fills these in before re-raising.
"""

from typing import Optional


class TernaryVMError(Exception):
    """Base for all emulator errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.instr = None
        self.pc: Optional[int] = None


class IllegalInstruction(TernaryVMError):
    """Raised when a trybble value has no opcode mapping."""

    def __init__(self, position: int, value: int):
        self.position = position
        self.value = value
        super().__init__(f"Illegal instruction {value} at {position}")


class AddressError(TernaryVMError):
    """Raised by the store for an address outside its range."""

    def __init__(self, address: int, message: str = ""):
        self.address = address
        super().__init__(message or f"Invalid address {address}")


class StackUnderflow(TernaryVMError):
    def __init__(self, stack: str, needed: int, available: int):
        self.stack = stack
        self.needed = needed
        self.available = available
        super().__init__(
            f"{stack} underflow: needed {needed}, had {available}")


class UnimplementedInstruction(TernaryVMError):
    def __init__(self, instr):
        super().__init__(f"Unimplemented instruction: {instr}")
        self.instr = instr
