"""
Synacor VM — Static Disassembler
================================

Linear sweep over memory words. Every word that decodes as an opcode
starts an instruction of known length; anything else is emitted as a
`.word` data line and the sweep moves on by one.

API Usage:
    from synacor_vm.disasm import Disassembler

    dis = Disassembler()
    for inst in dis.disassemble(words, start=0, end=40):
        print(inst.format())   # "    0: 0015             noop"

Operand rendering:
    0 – 32767       decimal literal
    32768 – 32775   r0 – r7
    >= 32776        ?N   (would fault at run time)
    `out` literals are shown as the character they print.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Iterator, List, Optional

from .config import REGISTER_BASE, REGISTER_LIMIT, WORD_MASK
from .cpu.decoder import OPCODES, Op, instruction_length


@dataclass
class DisassembledInstruction:
    """One decoded instruction (or data word) with formatting data."""
    address: int
    words: List[int]
    mnemonic: str
    operands: List[str] = field(default_factory=list)
    comment: str = ""

    @property
    def length(self) -> int:
        return len(self.words)

    @property
    def hex_str(self) -> str:
        return " ".join(f"{w:04X}" for w in self.words)

    def format(self, hex_width: int = 19) -> str:
        """Format as a single disassembly line."""
        asm = f"{self.mnemonic} {' '.join(self.operands)}".strip()
        line = f"{self.address:5d}: {self.hex_str.ljust(hex_width)} {asm}"
        if self.comment:
            line += f"  ; {self.comment}"
        return line


def format_operand(word: int) -> str:
    if word <= WORD_MASK:
        return str(word)
    if word <= REGISTER_LIMIT:
        return f"r{word - REGISTER_BASE}"
    return f"?{word}"


def _format_char(word: int) -> str:
    ch = chr(word & 0xFF)
    if ch == '\n':
        return "'\\n'"
    if ch.isprintable():
        return repr(ch)
    return str(word)


class Disassembler:
    """Synacor bytecode disassembler."""

    def decode_one(self, words: List[int], offset: int) -> DisassembledInstruction:
        """Decode the instruction starting at words[offset]."""
        word = words[offset]
        try:
            op = Op(word)
        except ValueError:
            return DisassembledInstruction(offset, [word], ".word", [str(word)])

        length = instruction_length(op)
        if offset + length > len(words):
            return DisassembledInstruction(offset, [word], ".word", [str(word)],
                                           comment="truncated instruction")

        raw = list(words[offset:offset + length])
        mnem = OPCODES[op][0]
        args = raw[1:]
        if op is Op.OUT and args[0] <= WORD_MASK:
            operands = [_format_char(args[0])]
        else:
            operands = [format_operand(w) for w in args]
        return DisassembledInstruction(offset, raw, mnem, operands)

    def disassemble(self, words: List[int], start: int = 0,
                    end: Optional[int] = None) -> Iterator[DisassembledInstruction]:
        """Yield instructions for words[start:end]."""
        if end is None or end > len(words):
            end = len(words)
        offset = start
        while offset < end:
            inst = self.decode_one(words, offset)
            yield inst
            offset += inst.length

    def opcode_histogram(self, words: List[int]) -> Counter:
        """Count mnemonics over a linear sweep of the whole image."""
        return Counter(inst.mnemonic for inst in self.disassemble(words))
