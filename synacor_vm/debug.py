"""
Synacor VM — Debug-only Command Hooks

These poke machine state directly, behind the running program's back.
They are reachable only from an engine built with debug_commands=True,
by typing the command prefix followed by the hook name (and any
arguments) at the input prompt, e.g.

    !hack_teleporter
    !regs
    !mem 6027 16

Every hook is called as hook(emu, args) with args the list of words
after the name. Output goes to the log, never to the program's sink.
"""

import logging
from typing import Callable, Dict, List

from .config import MEMORY_SIZE

log = logging.getLogger(__name__)


# Teleporter confirmation routine: replace the call to the slow check at
# 6027 with "set r0 6; ret" and pre-load r7 with the energy level the
# check is looking for.
TELEPORTER_PATCH_ADDR = 6027
TELEPORTER_PATCH = [1, 32768, 6, 18]
TELEPORTER_ENERGY = 25734

# Stack words shown by !regs, top of stack last
STACK_SHOWN = 8
MEM_DUMP_WORDS = 64


def _parse_int(text: str) -> int:
    if text.lower().startswith("0x"):
        return int(text, 16)
    return int(text)


def hack_teleporter(emu, args: List[str]):
    emu.mem.load_words(TELEPORTER_PATCH, TELEPORTER_PATCH_ADDR)
    emu.regs[7] = TELEPORTER_ENERGY
    log.warning("Teleporter hacked: patched %d..%d, r7=%d",
                TELEPORTER_PATCH_ADDR,
                TELEPORTER_PATCH_ADDR + len(TELEPORTER_PATCH) - 1,
                TELEPORTER_ENERGY)


def dump_registers(emu, args: List[str]):
    top = emu.stack.snapshot()[-STACK_SHOWN:]
    log.warning("%s stack_depth=%d top=%s", emu.regs.display(), len(emu.stack), top)


def dump_memory(emu, args: List[str]):
    """!mem ADDR [LENGTH]: hex dump of memory words."""
    try:
        start = _parse_int(args[0])
        length = _parse_int(args[1]) if len(args) > 1 else MEM_DUMP_WORDS
    except (IndexError, ValueError):
        log.warning("usage: mem ADDR [LENGTH]")
        return
    if not 0 <= start < MEMORY_SIZE or length <= 0:
        log.warning("mem: address %d / length %d out of range", start, length)
        return
    log.warning("memory %d..%d\n%s", start, start + length - 1,
                emu.mem.hexdump(start, length))


DEBUG_COMMANDS: Dict[str, Callable] = {
    'hack_teleporter': hack_teleporter,
    'regs': dump_registers,
    'mem': dump_memory,
}
