"""
Ternary VM — Assembler Tests

Source snippets are checked against hand-assembled trytes, then a few are
run on the emulator to make sure labels and branch offsets line up.
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from ternary_vm.asm import Assembler, AssemblerError, assemble
from ternary_vm.emu import TernaryCPU, StopReason
from ternary_vm.mem.memory import Memory, parse_image
from ternary_vm.numerals import Tryte


def T(high, low):
    return Tryte.from_trybbles(high, low).value


def values(program):
    return [program.image[a].value for a in sorted(program.image)]


def run(program, max_steps=1000):
    mem = Memory()
    program.load_into(mem)
    cpu = TernaryCPU(mem, pc=program.origin)
    return cpu, cpu.run(max_steps=max_steps)


STORE_LOAD_SOURCE = """
; 5 + 3, stored to 100 and read back
        LIT 5
        LIT 3
        ADD WORD 100
        STORE WORD 100
        LOAD HALT
"""


class TestEncoding:

    def test_store_load_program(self):
        program = assemble(STORE_LOAD_SOURCE)
        assert values(program) == [
            T(-12, 5), T(-12, 3), T(1, -11), 0, 100, T(-10, -11), 0, 100, T(-8, -13),
        ]

    def test_inline_and_extended_lit(self):
        assert values(assemble("LIT -13")) == [T(-12, -13)]
        assert values(assemble("LIT 14")) == [T(0, -12), 14]
        assert values(assemble("LIT 200")) == [T(0, -12), 200]
        assert values(assemble("LIT %+-")) == [T(-12, 2)]

    def test_lit_with_symbol_is_extended(self):
        program = assemble("five EQU 5\n LIT five")
        assert values(program) == [T(0, -12), 5]

    def test_explicit_nop_lit_is_extended(self):
        program = assemble("NOP LIT 5\nafter: HALT")
        assert values(program) == [T(0, -12), 5, T(0, -13)]
        assert program.symbols == {'after': 2}

    def test_lit_after_high_operation(self):
        assert values(assemble("ADD LIT 5")) == [T(1, -12), 5]

    def test_word(self):
        assert values(assemble("WORD -1000")) == [T(0, -11), -1, -271]

    def test_single_slot_placement(self):
        assert values(assemble("DUP")) == [T(4, 0)]
        assert values(assemble("RET")) == [T(0, 8)]
        assert values(assemble("halt")) == [T(0, -13)]
        assert values(assemble("NOP")) == [T(0, 0)]

    def test_pairs(self):
        assert values(assemble("SWAP DROP")) == [T(3, 6)]
        assert values(assemble("NEG BZ")) == [T(-1, 12)]

    def test_reserved_mnemonics_assemble(self):
        assert values(assemble("INC SHR")) == [T(-7, 7)]


class TestDirectives:

    def test_org(self):
        program = assemble("ORG 50\n DUP")
        assert program.origin == 50
        assert list(program.image) == [50]

    def test_assembler_origin(self):
        program = Assembler(origin=-10).assemble("DUP\nDUP")
        assert sorted(program.image) == [-10, -9]

    def test_dt(self):
        assert values(assemble("DT 1, -2, %+-")) == [1, -2, 2]

    def test_dw(self):
        assert values(assemble("DW 1000, -1")) == [1, 271, 0, -1]

    def test_equ_and_expressions(self):
        program = assemble("""
base    EQU 100
size    EQU base - 90
        WORD base + size
""")
        assert program.symbols == {'base': 100, 'size': 10}
        assert values(program) == [T(0, -11), 0, 110]

    def test_location_counter(self):
        assert values(assemble("ORG 10\n DT *+2, *")) == [12, 10]


class TestLabels:

    def test_call_ret_program(self):
        program = assemble("""
start:  WORD sub
        CALL
        HALT
sub:    RET
""")
        assert program.symbols == {'start': 0, 'sub': 5}
        assert values(program) == [T(0, -11), 0, 5, T(0, 10), T(0, -13), T(0, 8)]
        cpu, result = run(program)
        assert result.reason is StopReason.HALT
        assert cpu.cstack == []

    def test_forward_branch(self):
        program = assemble("""
        LIT 0
        LIT skip-after
        BZ
after:  LIT 1
skip:   HALT
""")
        cpu, result = run(program)
        assert result.reason is StopReason.HALT
        assert cpu.estack == []

    def test_countdown_loop(self):
        """Counts 3 down to 0 with BZ/JMP, leaving nothing but the counter"""
        program = assemble("""
        LIT 3
loop:   DUP
        LIT done-next
        BZ
next:   LIT -1
        ADD WORD loop
        JMP
done:   HALT
""")
        cpu, result = run(program)
        assert result.reason is StopReason.HALT
        assert [t.value for t in cpu.estack] == [0]

    def test_store_load_runs(self):
        cpu, result = run(assemble(STORE_LOAD_SOURCE))
        assert (result.reason, result.cycles, result.steps) == (StopReason.HALT, 10, 5)
        assert cpu.mem.read_tryte(100) == Tryte(8)


class TestErrors:

    @pytest.mark.parametrize("source,message", [
        ("FOO", "Unknown mnemonic"),
        ("WORD nowhere", "Undefined symbol"),
        ("RET 5", "takes no operand"),
        ("ADD RET 5", "takes no operand"),
        ("ADD ADD2", "Invalid low operation"),
        ("LIT 400", "does not fit a tryte"),
        ("WORD 265721", "does not fit a word"),
        ("LIT", "missing operand"),
        ("DT", "missing value"),
        ("x: DUP\nx: DUP", "Duplicate symbol"),
        ("ORG 0\n DT 1\nORG 0\n DT 2", "Overlapping"),
        ("WORD 1 +", "dangling operator"),
    ])
    def test_reports(self, source, message):
        with pytest.raises(AssemblerError, match=message):
            assemble(source)

    def test_collects_every_line(self):
        with pytest.raises(AssemblerError) as exc:
            assemble("FOO\nDUP\nBAR")
        text = str(exc.value)
        assert "Line 1" in text and "Line 3" in text


class TestOutput:

    def test_image_text_round_trip(self):
        program = assemble("ORG -5\n DT 1, 2\nORG 20\n" + STORE_LOAD_SOURCE)
        text = program.to_image_text()
        assert text.startswith("@-5\n")
        assert parse_image(text) == program.image

    def test_image_text_nine_per_line(self):
        program = assemble("DT " + ", ".join(["1"] * 10))
        lines = program.to_image_text().splitlines()
        assert lines[0] == "@0"
        assert len(lines[1].split()) == 9
        assert lines[2] == "%00000+"

    def test_listing(self):
        program = assemble(STORE_LOAD_SOURCE)
        assert len(program.listing) == 5
        assert program.listing[2].startswith("     +2")
        assert program.listing[2].endswith("ADD WORD 100")
