#!/usr/bin/env python3
"""
synvm — Synacor VM Command Line
===============================

    synvm run     — Execute a program image against stdin/stdout
    synvm disasm  — Disassemble an image (or a word range of it)
    synvm info    — Image size, word count and opcode histogram

Usage:
    python synvm.py <command> [options]
    python synvm.py <command> --help

Examples:
    python synvm.py run challenge.bin
    python synvm.py run challenge.bin --debug-commands -v
    python synvm.py run challenge.bin --trace --max-steps 5000 2> trace.txt
    python synvm.py disasm challenge.bin --range 0-120
    python synvm.py info challenge.bin

Exit status for `run`:
    0  program executed halt
    1  program faulted (reason and pc on stderr)
    2  usage / image / file errors
    3  --max-steps reached before halt
"""

import argparse
import logging
import os
import sys

# Allow running from project root without installing
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from synacor_vm import __version__
from synacor_vm.config import DEFAULT_PROMPT
from synacor_vm.disasm import Disassembler
from synacor_vm.emu import StopReason, SynacorVM
from synacor_vm.errors import MalformedImage
from synacor_vm.loader import image_to_words, read_image
from synacor_vm.log_setup import setup_logging, verbosity_to_level

log = logging.getLogger("synacor_vm.cli")

EXIT_OK = 0
EXIT_FAULT = 1
EXIT_USAGE = 2
EXIT_LIMIT = 3


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="synvm",
        description="Synacor VM — run, disassemble and inspect program images",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""commands:
  run        Execute a program image
  disasm     Disassemble an image to mnemonics
  info       Summarize an image
""",
    )
    parser.add_argument("--version", action="version", version=f"synvm {__version__}")
    parser.add_argument("--verbose", "-v", action="count", default=0,
                        help="Increase log verbosity (-v, -vv)")
    parser.add_argument("--quiet", "-q", action="store_true",
                        help="Only log errors")
    parser.add_argument("--log-file", help="Also write a DEBUG log to this file")
    sub = parser.add_subparsers(dest="command", metavar="command")

    # ── run ──────────────────────────────────────────────────────────────
    p_run = sub.add_parser("run", help="Execute a program image")
    p_run.add_argument("input", help="Program image (.bin)")
    p_run.add_argument("--trace", action="store_true",
                       help="Stream an instruction trace to stderr while running")
    p_run.add_argument("--max-steps", type=int, default=None,
                       help="Stop after this many instructions")
    p_run.add_argument("--debug-commands", action="store_true",
                       help="Accept !command lines at the input prompt "
                            "(e.g. !hack_teleporter, !regs)")
    p_run.add_argument("--prompt", default=None,
                       help=f"Input prompt (default: '{DEFAULT_PROMPT}' on a terminal, "
                            "none when stdin is redirected)")

    # ── disasm ───────────────────────────────────────────────────────────
    p_dis = sub.add_parser("disasm", help="Disassemble an image")
    p_dis.add_argument("input", help="Program image (.bin)")
    p_dis.add_argument("--range", help="Word address range START-END, e.g. 0-120 or 0x0-0x78")
    p_dis.add_argument("-o", "--output", help="Output file (default: stdout)")

    # ── info ─────────────────────────────────────────────────────────────
    p_info = sub.add_parser("info", help="Summarize an image")
    p_info.add_argument("input", help="Program image (.bin)")

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return EXIT_OK

    setup_logging(console_level=verbosity_to_level(args.verbose, args.quiet),
                  log_file=args.log_file,
                  trace=getattr(args, "trace", False))

    try:
        return COMMANDS[args.command](args)
    except MalformedImage as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_USAGE
    except OSError as e:
        print(f"Error reading {args.input}: {e}", file=sys.stderr)
        return EXIT_USAGE


# ═════════════════════════════════════════════════════════════════════════════
# COMMAND IMPLEMENTATIONS
# ═════════════════════════════════════════════════════════════════════════════

def _parse_int(s: str) -> int:
    """Parse decimal or 0x-prefixed hex."""
    s = s.strip()
    if s.lower().startswith("0x"):
        return int(s, 16)
    return int(s)


def _parse_range(text: str, default_span: int = 64):
    parts = text.replace("-", " ").split()
    start = _parse_int(parts[0])
    end = _parse_int(parts[1]) if len(parts) > 1 else start + default_span
    return start, end


# ── run ──────────────────────────────────────────────────────────────────
def cmd_run(args) -> int:
    prompt = args.prompt
    if prompt is None:
        prompt = DEFAULT_PROMPT if sys.stdin.isatty() else ""

    emu = SynacorVM(sys.stdin.buffer, sys.stdout.buffer,
                    trace=args.trace,
                    debug_commands=args.debug_commands,
                    prompt=prompt)
    emu.load_image(args.input)

    try:
        reason = emu.run(max_steps=args.max_steps)
    except KeyboardInterrupt:
        print(f"\nInterrupted at pc={emu.regs.PC}", file=sys.stderr)
        reason = None

    sys.stdout.flush()

    if reason is StopReason.HALT:
        print(f"Halted after {emu.steps} steps", file=sys.stderr)
        return EXIT_OK
    if reason is StopReason.FAULT:
        print(f"Fault: {emu.fault}", file=sys.stderr)
        print(f"  {emu.regs.display()} stack_depth={len(emu.stack)}", file=sys.stderr)
        return EXIT_FAULT
    if reason is StopReason.LIMIT:
        print(f"Step limit reached at pc={emu.regs.PC} after {emu.steps} steps",
              file=sys.stderr)
        return EXIT_LIMIT
    return EXIT_FAULT


# ── disasm ───────────────────────────────────────────────────────────────
def cmd_disasm(args) -> int:
    words = image_to_words(read_image(args.input))

    start, end = 0, len(words)
    if args.range:
        start, end = _parse_range(args.range)

    dis = Disassembler()
    lines = [inst.format() for inst in dis.disassemble(words, start, end)]

    output = "\n".join(lines)
    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(output + "\n")
        print(f"Disassembled {len(lines)} lines -> {args.output}")
    else:
        print(output)
    return EXIT_OK


# ── info ─────────────────────────────────────────────────────────────────
def cmd_info(args) -> int:
    data = read_image(args.input)
    words = image_to_words(data)

    print(f"File:     {args.input}")
    print(f"Size:     {len(data)} bytes")
    print(f"Words:    {len(words)}")
    print("Opcodes (linear sweep):")
    histogram = Disassembler().opcode_histogram(words)
    for mnem, count in histogram.most_common():
        print(f"  {mnem:6s} {count}")
    return EXIT_OK


COMMANDS = {
    "run": cmd_run,
    "disasm": cmd_disasm,
    "info": cmd_info,
}


if __name__ == "__main__":
    sys.exit(main())
