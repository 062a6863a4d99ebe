#!/usr/bin/env python3
"""
tvmkit — T6010 Ternary Machine Toolkit
======================================

    tvmkit run     — Load a program (.tasm or .tri) and execute it
    tvmkit asm     — Assemble .tasm source to a .tri image
    tvmkit disasm  — Disassemble a program image

Usage:
    tvmkit <command> [options]
    tvmkit <command> --help

Examples:
    tvmkit run examples/sum.tasm --max-steps 1000 --trace
    tvmkit asm sum.tasm -o sum.tri --listing
    tvmkit disasm sum.tri --start 0 --count 20

Exit status: 0 on HALT, 1 on a machine or assembler error, 2 when the
run stops on the step limit or a breakpoint.
"""

import argparse
import logging
import sys
from pathlib import Path

from . import __version__
from .asm import AssemblerError, assemble
from .config import DEFAULT_MAX_STEPS, MachineConfig
from .disasm import disassemble
from .emu import StopReason
from .errors import TernaryVMError
from .log_setup import setup_logging
from .mem.memory import parse_image
from .numerals import parse_trit_string

log = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_STOPPED = 2


def _int(text: str) -> int:
    """Decimal, 0x-hex, or %trits."""
    if text.startswith('%'):
        return parse_trit_string(text[1:])
    return int(text, 0)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tvmkit",
        description="T6010 balanced-ternary stack machine — run, assemble, disassemble",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""commands:
  run        Execute a .tasm or .tri program
  asm        Assemble .tasm source to a .tri image
  disasm     Disassemble a program image
""",
    )
    parser.add_argument("--version", action="version", version=f"tvmkit {__version__}")
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="Increase verbosity (-v info, -vv debug)")
    parser.add_argument("-q", "--quiet", action="store_true",
                        help="Only log errors")
    parser.add_argument("--log-file", help="Write a DEBUG log to this file")
    sub = parser.add_subparsers(dest="command", metavar="command")

    # ── run ──────────────────────────────────────────────────────────────
    p_run = sub.add_parser("run", help="Execute a program")
    p_run.add_argument("input", help="Program file (.tasm assembles first, else .tri image)")
    p_run.add_argument("--origin", type=_int, default=None,
                       help="Start address (default: lowest loaded address)")
    p_run.add_argument("--max-steps", type=int, default=DEFAULT_MAX_STEPS,
                       help=f"Step limit (default: {DEFAULT_MAX_STEPS})")
    p_run.add_argument("--break", dest="breakpoints", type=_int, action="append", default=[],
                       help="Stop before executing at ADDR (repeatable)")
    p_run.add_argument("--trace", action="store_true", help="Print the execution trace")

    # ── asm ──────────────────────────────────────────────────────────────
    p_asm = sub.add_parser("asm", help="Assemble .tasm source")
    p_asm.add_argument("input", help="Input .tasm file")
    p_asm.add_argument("-o", "--output", help="Output .tri file (default: stdout)")
    p_asm.add_argument("--listing", action="store_true", help="Print listing to stdout")

    # ── disasm ───────────────────────────────────────────────────────────
    p_dis = sub.add_parser("disasm", help="Disassemble a program image")
    p_dis.add_argument("input", help="Program file (.tasm or .tri)")
    p_dis.add_argument("--start", type=_int, default=None,
                       help="First address (default: lowest loaded address)")
    p_dis.add_argument("--count", type=int, default=None,
                       help="Number of trytes to cover (default: whole image)")

    return parser


def _log_level(args) -> int:
    if args.quiet:
        return logging.ERROR
    if args.verbose >= 2:
        return logging.DEBUG
    if args.verbose == 1:
        return logging.INFO
    return logging.WARNING


def _load(path: str, config: MachineConfig):
    """Load a program file into fresh memory. Returns (memory, lowest, count)."""
    text = Path(path).read_text(encoding="utf-8")
    if path.endswith(".tasm"):
        image = assemble(text).image
    else:
        image = parse_image(text)

    memory = config.build_memory()
    for addr, value in image.items():
        memory.write_tryte(addr, value)
    return memory, (min(image) if image else 0), len(image)


# ═════════════════════════════════════════════════════════════════════════════
# COMMAND IMPLEMENTATIONS
# ═════════════════════════════════════════════════════════════════════════════

def cmd_run(args) -> int:
    config = MachineConfig.from_args(args)
    memory, lowest, count = _load(args.input, config)
    if args.origin is None:
        config.origin = lowest
    log.info("Loaded %d trytes from %s, starting at %d", count, args.input, config.origin)

    cpu = config.build_cpu(memory)
    for addr in args.breakpoints:
        cpu.add_breakpoint(addr)

    try:
        result = cpu.run(max_steps=config.max_steps)
    except TernaryVMError as e:
        print(f"Machine error: {e}", file=sys.stderr)
        print(cpu.state_line(), file=sys.stderr)
        return EXIT_ERROR
    finally:
        if args.trace:
            print(cpu.get_trace())

    print(f"{result.reason.value}: {result.cycles} operations in {result.steps} steps")
    print(cpu.state_line())
    print("stack:", ' '.join(str(t.value) for t in cpu.estack))
    return EXIT_OK if result.reason is StopReason.HALT else EXIT_STOPPED


def cmd_asm(args) -> int:
    source = Path(args.input).read_text(encoding="utf-8")
    program = assemble(source)

    if args.listing:
        print('\n'.join(program.listing))

    image = program.to_image_text()
    if args.output:
        Path(args.output).write_text(image, encoding="utf-8")
        print(f"{len(program)} trytes written to {args.output}")
    elif not args.listing:
        sys.stdout.write(image)
    return EXIT_OK


def cmd_disasm(args) -> int:
    config = MachineConfig()
    memory, lowest, count = _load(args.input, config)
    start = lowest if args.start is None else args.start
    end = start + (count if args.count is None else args.count)
    for addr, text in disassemble(memory, start, end):
        print(f"{addr:+7d}  {text}")
    return EXIT_OK


COMMANDS = {
    "run": cmd_run,
    "asm": cmd_asm,
    "disasm": cmd_disasm,
}


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return EXIT_OK

    setup_logging(_log_level(args), args.log_file)

    try:
        return COMMANDS[args.command](args)
    except AssemblerError as e:
        print(f"Assembly error: {e}", file=sys.stderr)
        return EXIT_ERROR
    except TernaryVMError as e:
        print(f"Machine error: {e}", file=sys.stderr)
        return EXIT_ERROR
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
