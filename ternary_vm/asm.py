"""
Two-Pass Assembler for the T6010 ternary stack machine.

Input:  assembly text (.tasm)
Output: a Program (address → Tryte image), loadable into Memory or
        writable as a .tri text image

Line format:
  [label:]  [HIGH [LOW [operand]]]  [; comment]
  name      EQU   value

Each instruction line packs one instruction tryte (plus operand trytes):
  ADD WORD 100      high ADD, low WORD, then two operand trytes
  LOAD HALT         high LOAD, low HALT
  LIT 5             inline immediate (value in -13..13, numeric literal)
  LIT 200           NOP LIT 200 (one operand tryte)
  NOP LIT 5         always the two-tryte form
  WORD loop         NOP WORD loop
  DUP               DUP NOP
  RET               NOP RET (low-only operations go in the low slot)

Directives:
  ORG value         set the location counter
  DT  v[, v...]     define trytes
  DW  v[, v...]     define words (high tryte, then low tryte)

Values: decimal, %trits (e.g. %+-0, ends at whitespace or comma),
symbols, '*' (address of the current line), joined with + and -.

How the two passes work:
  Pass 1: walk every line, assign label addresses, compute sizes.
  Pass 2: emit trytes with the complete symbol table.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .cpu.instructions import (
    Opcode, LIT_INLINE, SIMPLE_CODES, LOW_CODES, LOW_OPCODES, OPERAND_TRYTES,
)
from .numerals import (
    Tryte, Word, TRYBBLE_MAX, TRYTE_MAX, WORD_MAX, parse_trit_string,
)

__all__ = ['Assembler', 'AssemblerError', 'Program', 'assemble']

log = logging.getLogger(__name__)


class AssemblerError(Exception):
    """Raised on assembly errors."""
    def __init__(self, message: str, line_num: int = 0, line_text: str = ""):
        self.line_num = line_num
        self.line_text = line_text
        super().__init__(f"Line {line_num}: {message}" if line_num else message)


MNEMONICS = {op.value: op for op in Opcode}
LOW_ONLY = frozenset(LOW_OPCODES.values())

_TERM_RE = re.compile(r'%[+0\-]+|\d+|\*|[A-Za-z_.][\w.]*')
_NUMERIC_RE = re.compile(r'^\s*[+-]?\s*(\d+|%[+0\-]+)\s*$')


@dataclass
class AsmLine:
    line_num: int
    text: str
    label: Optional[str] = None
    mnemonic: Optional[str] = None
    operand: str = ''
    addr: int = 0


@dataclass
class Program:
    """Assembled image."""
    image: Dict[int, Tryte] = field(default_factory=dict)
    symbols: Dict[str, int] = field(default_factory=dict)
    listing: List[str] = field(default_factory=list)

    @property
    def origin(self) -> int:
        return min(self.image) if self.image else 0

    def __len__(self) -> int:
        return len(self.image)

    def load_into(self, memory):
        for addr, value in self.image.items():
            memory.write_tryte(addr, value)

    def to_image_text(self) -> str:
        """Render as a .tri image: '@addr' markers plus %trit tokens."""
        lines = []
        chunk: List[str] = []
        expected = None
        for addr in sorted(self.image):
            if addr != expected or len(chunk) == 9:
                if chunk:
                    lines.append(' '.join(chunk))
                    chunk = []
                if addr != expected:
                    lines.append(f'@{addr}')
            chunk.append('%' + self.image[addr].as_trit_string())
            expected = addr + 1
        if chunk:
            lines.append(' '.join(chunk))
        return '\n'.join(lines) + '\n'


# ──────────────────────────────────────────────
# Line parsing
# ──────────────────────────────────────────────

def _parse_line(text: str, line_num: int) -> AsmLine:
    result = AsmLine(line_num=line_num, text=text)
    body = text.split(';', 1)[0].strip()
    if not body:
        return result

    parts = body.split(None, 1)
    head = parts[0]
    rest = parts[1].strip() if len(parts) > 1 else ''

    if head.endswith(':'):
        result.label = head[:-1]
        if not rest:
            return result
        parts = rest.split(None, 1)
        head = parts[0]
        rest = parts[1].strip() if len(parts) > 1 else ''
    elif rest:
        # name EQU value
        tail = rest.split(None, 1)
        if tail[0].upper() == 'EQU':
            result.label = head
            result.mnemonic = 'EQU'
            result.operand = tail[1] if len(tail) > 1 else ''
            return result

    result.mnemonic = head.upper()
    result.operand = rest
    return result


# ──────────────────────────────────────────────
# Value evaluation
# ──────────────────────────────────────────────

def _eval(text: str, symbols: Dict[str, int], line_num: int, here: int) -> int:
    """Evaluate a +/- expression of decimal, %trit, symbol and '*' terms."""
    text = text.strip()
    if not text:
        raise AssemblerError("missing value", line_num)

    total = 0
    sign = 1
    expect_term = True
    i = 0
    while i < len(text):
        ch = text[i]
        if ch.isspace():
            i += 1
            continue
        if expect_term:
            if ch in '+-':
                sign = -sign if ch == '-' else sign
                i += 1
                continue
            m = _TERM_RE.match(text, i)
            if not m:
                raise AssemblerError(f"cannot parse value: '{text}'", line_num)
            total += sign * _term_value(m.group(0), symbols, line_num, here)
            sign = 1
            expect_term = False
            i = m.end()
        else:
            if ch not in '+-':
                raise AssemblerError(f"unexpected '{ch}' in '{text}'", line_num)
            sign = 1 if ch == '+' else -1
            expect_term = True
            i += 1

    if expect_term:
        raise AssemblerError(f"dangling operator in '{text}'", line_num)
    return total


def _term_value(term: str, symbols: Dict[str, int], line_num: int, here: int) -> int:
    if term == '*':
        return here
    if term.startswith('%'):
        try:
            return parse_trit_string(term[1:])
        except ValueError as e:
            raise AssemblerError(str(e), line_num) from None
    if term.isdigit():
        return int(term)
    if term in symbols:
        return symbols[term]
    raise AssemblerError(f"Undefined symbol: '{term}'", line_num)


def _is_numeric_literal(text: str) -> bool:
    return bool(_NUMERIC_RE.match(text))


# ──────────────────────────────────────────────
# The Assembler
# ──────────────────────────────────────────────

class Assembler:
    """Two-pass T6010 assembler.

    Usage:
        asm = Assembler()
        program = asm.assemble(source_text)
        program.load_into(memory)
    """

    def __init__(self, origin: int = 0):
        self.default_origin = origin
        self.symbols: Dict[str, int] = {}
        self.pc: int = origin
        self.errors: List[str] = []
        self._lines: List[AsmLine] = []

    def assemble(self, source: str) -> Program:
        self.symbols = {}
        self.errors = []
        self._lines = [_parse_line(line, i) for i, line in enumerate(source.split('\n'), 1)]

        self._run_pass(self._pass1_line)
        if self.errors:
            raise AssemblerError("Pass 1 errors:\n" + "\n".join(self.errors))

        program = Program(symbols=dict(self.symbols))
        self._run_pass(lambda line: self._pass2_line(line, program))
        if self.errors:
            raise AssemblerError("Pass 2 errors:\n" + "\n".join(self.errors))

        log.debug("Assembled %d trytes, %d symbols", len(program), len(program.symbols))
        return program

    def _run_pass(self, handler):
        self.pc = self.default_origin
        for line in self._lines:
            try:
                handler(line)
            except AssemblerError as e:
                self.errors.append(str(e))

    # --- Pass 1 ---

    def _pass1_line(self, line: AsmLine):
        line.addr = self.pc
        mnem = line.mnemonic

        if mnem == 'EQU':
            if line.label in self.symbols:
                raise AssemblerError(f"Duplicate symbol: '{line.label}'", line.line_num)
            self.symbols[line.label] = _eval(line.operand, self.symbols, line.line_num, self.pc)
            return

        if line.label:
            if line.label in self.symbols:
                raise AssemblerError(f"Duplicate symbol: '{line.label}'", line.line_num)
            self.symbols[line.label] = self.pc

        if mnem is None:
            return
        if mnem == 'ORG':
            self.pc = _eval(line.operand, self.symbols, line.line_num, self.pc)
            line.addr = self.pc
            return
        if mnem == 'DT':
            self.pc += len(self._split_list(line))
            return
        if mnem == 'DW':
            self.pc += 2 * len(self._split_list(line))
            return

        self.pc += self._instruction_size(line, *self._classify(line))

    # --- Pass 2 ---

    def _pass2_line(self, line: AsmLine, program: Program):
        mnem = line.mnemonic
        if mnem is None or mnem == 'EQU':
            return
        if mnem == 'ORG':
            self.pc = _eval(line.operand, self.symbols, line.line_num, self.pc)
            return

        start = self.pc
        if mnem == 'DT':
            values = [self._tryte(v, line) for v in self._split_list(line)]
        elif mnem == 'DW':
            values = []
            for v in self._split_list(line):
                w = self._word(v, line)
                values += [w.hi_tryte, w.lo_tryte]
        else:
            values = self._encode(line, *self._classify(line))

        for value in values:
            if self.pc in program.image:
                raise AssemblerError(f"Overlapping code at address {self.pc}", line.line_num)
            program.image[self.pc] = value
            self.pc += 1

        program.listing.append(
            f"{start:+7d}  {' '.join(v.as_trit_string() for v in values):<22s}  {line.text.strip()}")

    # --- Instruction forms ---

    def _classify(self, line: AsmLine) -> Tuple[Opcode, Opcode, str]:
        """Resolve a line to (high, low, operand)."""
        m1 = MNEMONICS.get(line.mnemonic)
        if m1 is None:
            raise AssemblerError(f"Unknown mnemonic: {line.mnemonic}", line.line_num)
        rest = line.operand

        if m1 in (Opcode.LIT, Opcode.WORD):
            if not rest:
                raise AssemblerError(f"{m1.value}: missing operand", line.line_num)
            return Opcode.NOP, m1, rest

        if m1 in LOW_ONLY:
            if rest:
                raise AssemblerError(f"{m1.value} takes no operand", line.line_num)
            return Opcode.NOP, m1, ''

        if not rest:
            return m1, Opcode.NOP, ''

        parts = rest.split(None, 1)
        m2 = MNEMONICS.get(parts[0].upper())
        operand = parts[1].strip() if len(parts) > 1 else ''
        if m2 is None or m2 not in LOW_CODES:
            raise AssemblerError(f"Invalid low operation: {parts[0]}", line.line_num)
        if m2 in (Opcode.LIT, Opcode.WORD):
            if not operand:
                raise AssemblerError(f"{m2.value}: missing operand", line.line_num)
        elif operand:
            raise AssemblerError(f"{m2.value} takes no operand", line.line_num)
        return m1, m2, operand

    @staticmethod
    def _inline(line: AsmLine, operand: str) -> bool:
        # only a bare LIT; an explicit NOP LIT keeps the two-tryte form
        return line.mnemonic == 'LIT' and _is_numeric_literal(operand) \
            and abs(_eval(operand, {}, 0, 0)) <= TRYBBLE_MAX

    def _instruction_size(self, line: AsmLine, high: Opcode, low: Opcode, operand: str) -> int:
        if self._inline(line, operand):
            return 1
        return 1 + OPERAND_TRYTES.get(low, 0)

    def _encode(self, line: AsmLine, high: Opcode, low: Opcode, operand: str) -> List[Tryte]:
        if self._inline(line, operand):
            return [Tryte.from_trybbles(LIT_INLINE, _eval(operand, {}, line.line_num, 0))]

        out = [Tryte.from_trybbles(SIMPLE_CODES[high], LOW_CODES[low])]
        if low is Opcode.LIT:
            out.append(self._tryte(operand, line))
        elif low is Opcode.WORD:
            w = self._word(operand, line)
            out += [w.hi_tryte, w.lo_tryte]
        return out

    # --- Helpers ---

    @staticmethod
    def _split_list(line: AsmLine) -> List[str]:
        items = [item.strip() for item in line.operand.split(',')]
        if not items or not all(items):
            raise AssemblerError(f"{line.mnemonic}: missing value", line.line_num)
        return items

    def _tryte(self, text: str, line: AsmLine) -> Tryte:
        value = _eval(text, self.symbols, line.line_num, self.pc)
        if abs(value) > TRYTE_MAX:
            raise AssemblerError(f"value {value} does not fit a tryte (±{TRYTE_MAX})", line.line_num)
        return Tryte(value)

    def _word(self, text: str, line: AsmLine) -> Word:
        value = _eval(text, self.symbols, line.line_num, self.pc)
        if abs(value) > WORD_MAX:
            raise AssemblerError(f"value {value} does not fit a word (±{WORD_MAX})", line.line_num)
        return Word(value)


def assemble(source: str, origin: int = 0) -> Program:
    """Assemble source text into a Program."""
    return Assembler(origin).assemble(source)
