"""
Ternary VM — Main Emulator Class

Integrates:
  - Instruction decoder (cpu/decoder.py)
  - Addressable store (mem/memory.py, or any object with read_tryte /
    write_tryte)
  - Evaluation stack (trytes) and call stack (raw PC values)

Execution model, one step:
  1. Decode at PC → (first, second, next_pc)
  2. PC ← next_pc, so relative branches see the post-decode PC
  3. Count + execute first; a Halt result from HALT ends the step
  4. Count + execute second; a Halt result from HALT ends the step
  5. Return the cycle count

Termination:
  - HALT:     HALT operation executed (normal completion)
  - BREAK:    breakpoint address reached (run() only)
  - TIMEOUT:  max_steps exhausted (run() only)

Every other condition (illegal instruction, bad address, stack
underflow, reserved opcode) is raised as a TernaryVMError. The engine
never retries: execution is deterministic, so the same step would fail
the same way.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Set, Tuple, Union

from .config import ISA
from .cpu.decoder import decode_instruction
from .cpu.instructions import Instr, Opcode
from .errors import StackUnderflow, TernaryVMError, UnimplementedInstruction
from .numerals import Tryte, Word

log = logging.getLogger(__name__)


class StopReason(Enum):
    HALT = 'HALT'
    BREAK = 'BREAK'
    TIMEOUT = 'TIMEOUT'


@dataclass(frozen=True)
class Halt:
    """Normal termination: HALT executed after `cycles` operations."""
    cycles: int


@dataclass(frozen=True)
class RunResult:
    reason: StopReason
    cycles: int
    steps: int


class TernaryCPU:
    """T6010 balanced-ternary stack machine.

    Usage:
        mem = Memory()
        mem.load_image(open('prog.tri').read())
        cpu = TernaryCPU(mem, pc=0)
        result = cpu.run(max_steps=1000)
        print(result.reason, cpu.estack)
    """

    def __init__(self, memory, pc: int = 0, isa: ISA = ISA.T6010):
        self.isa = isa
        self.mem = memory
        self.pc: int = pc
        self.estack: List[Tryte] = []
        self.cstack: List[int] = []
        self.cy: int = 0

        self._breakpoints: Set[int] = set()
        self._trace = False
        self._trace_output: List[str] = []

        self._dispatch = self._build_dispatch()

    # ══════════════════════════════════════════════
    # Execution
    # ══════════════════════════════════════════════

    def step(self) -> Union[int, Halt]:
        """Decode one encoding and execute both operations.

        Returns the cycle count, or Halt(cycles) when HALT ran.
        """
        fetch_pc = self.pc
        try:
            first, second, next_pc = decode_instruction(self.mem, fetch_pc)
        except TernaryVMError as e:
            if e.pc is None:
                e.pc = fetch_pc
            log.error("Decode failed at pc=%d: %s", fetch_pc, e)
            raise

        log.debug("%s: %s %s | %s", fetch_pc, first, second, self._stack_text())
        if self._trace:
            self._trace_output.append(
                f"{Word.from_int(fetch_pc).as_nonary_string()}: "
                f"{first} {second} | {self._stack_text()}")

        self.pc = next_pc

        for instr in (first, second):
            self.cy += 1
            halted = self.execute(instr, fetch_pc)
            if halted is not None:
                log.info("Exited cleanly, performed %d operations", self.cy)
                return halted

        return self.cy

    def run(self, max_steps: Optional[int] = None) -> RunResult:
        """Step until HALT, a breakpoint, or `max_steps` steps.

        A breakpoint at the PC the run starts from is ignored so that a
        stopped run can be resumed with another run() call.
        """
        steps = 0
        while max_steps is None or steps < max_steps:
            if steps and self.pc in self._breakpoints:
                log.info("Breakpoint at %d after %d steps", self.pc, steps)
                return RunResult(StopReason.BREAK, self.cy, steps)
            result = self.step()
            steps += 1
            if isinstance(result, Halt):
                return RunResult(StopReason.HALT, result.cycles, steps)

        log.warning("Step limit %d reached at pc=%d", steps, self.pc)
        return RunResult(StopReason.TIMEOUT, self.cy, steps)

    def execute(self, instr: Instr, fetch_pc: Optional[int] = None) -> Optional[Halt]:
        """Dispatch one operation against the stacks and the store.

        Returns Halt(cycles) for HALT, None for every other operation.
        """
        handler = self._dispatch[instr.opcode]
        try:
            return handler(instr)
        except TernaryVMError as e:
            if e.instr is None:
                e.instr = instr
            if e.pc is None:
                e.pc = self.pc if fetch_pc is None else fetch_pc
            log.error("%s (instr=%s, pc=%s)", e, e.instr, e.pc)
            raise

    # ══════════════════════════════════════════════
    # Dispatch table
    # ══════════════════════════════════════════════

    def _build_dispatch(self) -> Dict[Opcode, Callable[[Instr], Optional[Halt]]]:
        table = {
            Opcode.NOP:   self._op_nop,
            Opcode.LIT:   self._op_lit,
            Opcode.WORD:  self._op_word,

            # ── Tryte stack management ──
            Opcode.DROP:  self._op_drop,
            Opcode.DUP:   self._op_dup,
            Opcode.SWAP:  self._op_swap,
            Opcode.ROT:   self._op_rot,

            # ── Arithmetic ──
            Opcode.ADD:   self._op_add,
            Opcode.NEG:   self._op_neg,

            # ── Memory ──
            Opcode.LOAD:  self._op_load,
            Opcode.STORE: self._op_store,

            # ── Flow control ──
            Opcode.JMP:   self._op_jmp,
            Opcode.CALL:  self._op_call,
            Opcode.RET:   self._op_ret,
            Opcode.HALT:  self._op_halt,

            # ── Conditional branches ──
            Opcode.BZ:    self._op_bz,
            Opcode.BPL:   self._op_bpl,
            Opcode.BMI:   self._op_bmi,

            # ── Reserved ──
            Opcode.INC:   self._op_unimplemented,
            Opcode.MAX:   self._op_unimplemented,
            Opcode.IST:   self._op_unimplemented,
            Opcode.ISU:   self._op_unimplemented,
            Opcode.SHL:   self._op_unimplemented,
            Opcode.SHR:   self._op_unimplemented,
        }
        missing = set(Opcode) - set(table)
        if missing:
            names = ', '.join(sorted(op.value for op in missing))
            raise NotImplementedError(f"No dispatch entry for: {names}")
        return table

    # ══════════════════════════════════════════════
    # Instruction handlers
    # ══════════════════════════════════════════════

    def _op_nop(self, instr):
        pass

    def _op_lit(self, instr):
        self.estack.append(instr.operand)

    def _op_word(self, instr):
        self.push_word(instr.operand)

    # ── Stack ──

    def _op_drop(self, instr):
        self.pop()

    def _op_dup(self, instr):
        if not self.estack:
            raise StackUnderflow('estack', 1, 0)
        self.estack.append(self.estack[-1])

    def _op_swap(self, instr):
        a, b = self.pop_n(2)
        self.estack.append(a)
        self.estack.append(b)

    def _op_rot(self, instr):
        """x y z → y z x"""
        a, b, c = self.pop_n(3)
        self.estack.append(b)
        self.estack.append(a)
        self.estack.append(c)

    # ── Arithmetic ──

    def _op_add(self, instr):
        a, b = self.pop_n(2)
        result, carry = Tryte.add(a, b)
        log.debug("ADD - %d + %d = %d (carry %d)", a.value, b.value, result.value, carry)
        self.estack.append(result)

    def _op_neg(self, instr):
        val = self.pop()
        self.estack.append(-val)

    # ── Memory ──

    def _op_load(self, instr):
        """Pops two trytes and uses them as address."""
        addr = self.pop_address()
        self.estack.append(self.mem.read_tryte(addr))

    def _op_store(self, instr):
        """Pops two trytes as address, then the value to write."""
        lo, hi, val = self.pop_n(3)
        self.mem.write_tryte(Word.from_trytes(hi, lo).value, val)

    # ── Flow control ──

    def _op_jmp(self, instr):
        self.jump(self.pop_address())

    def _op_call(self, instr):
        addr = self.pop_address()
        self.cstack.append(self.pc)
        self.jump(addr)

    def _op_ret(self, instr):
        if not self.cstack:
            raise StackUnderflow('cstack', 1, 0)
        self.jump(self.cstack.pop())

    def _op_halt(self, instr):
        return Halt(self.cy)

    # ── Conditional branches ──

    def _op_bz(self, instr):
        self._branch_if(lambda v: v == 0)

    def _op_bpl(self, instr):
        self._branch_if(lambda v: v > 0)

    def _op_bmi(self, instr):
        self._branch_if(lambda v: v < 0)

    def _branch_if(self, predicate):
        offset, cond = self.pop_n(2)
        if predicate(cond.value):
            self.jump(self.pc + offset.value)

    def _op_unimplemented(self, instr):
        raise UnimplementedInstruction(instr)

    # ══════════════════════════════════════════════
    # Stack helpers
    # ══════════════════════════════════════════════

    def pop(self) -> Tryte:
        return self.pop_n(1)[0]

    def pop_n(self, n: int) -> Tuple[Tryte, ...]:
        """Pop `n` trytes, top first. Leaves the stack intact on underflow."""
        if len(self.estack) < n:
            raise StackUnderflow('estack', n, len(self.estack))
        values = tuple(reversed(self.estack[-n:]))
        del self.estack[-n:]
        return values

    def pop_address(self) -> int:
        lo, hi = self.pop_n(2)
        return Word.from_trytes(hi, lo).value

    def push_word(self, word: Word):
        self.estack.append(word.hi_tryte)
        self.estack.append(word.lo_tryte)

    def jump(self, addr: int):
        self.pc = addr

    # ══════════════════════════════════════════════
    # Breakpoint API
    # ══════════════════════════════════════════════

    def add_breakpoint(self, addr: int):
        self._breakpoints.add(addr)

    def remove_breakpoint(self, addr: int):
        self._breakpoints.discard(addr)

    def clear_breakpoints(self):
        self._breakpoints.clear()

    # ══════════════════════════════════════════════
    # Trace / Debug
    # ══════════════════════════════════════════════

    def _stack_text(self) -> str:
        return ' '.join(t.as_nonary_string() for t in self.estack)

    def state_line(self) -> str:
        """'<pc as nonary word>: <stack in nonary, bottom first>'"""
        pc = Word.from_int(self.pc)
        return (f"{pc.hi_tryte.as_nonary_string()}{pc.lo_tryte.as_nonary_string()}: "
                f"{self._stack_text()}")

    def enable_trace(self, enable: bool = True):
        self._trace = enable

    def get_trace(self) -> str:
        return '\n'.join(self._trace_output)

    def clear_trace(self):
        self._trace_output.clear()

    def set_cycle_count(self, cycles: int):
        self.cy = cycles

    def reset(self, pc: int = 0):
        """Clear both stacks, the cycle counter and the trace."""
        self.pc = pc
        self.estack.clear()
        self.cstack.clear()
        self.cy = 0
        self._trace_output.clear()
