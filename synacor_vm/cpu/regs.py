"""
Synacor VM — Register File + Operand Resolution

Register model:
  r0 – r7  — eight 16-bit general purpose registers, reset to 0
  PC       — program counter, index into memory, reset to 0

Raw operand words are read in one of two ways:

  resolve(v)       value position
                   v <= 32767           → v itself (literal)
                   32768 <= v <= 32775  → contents of register v - 32768
                   v >= 32776           → InvalidAddress

  store(addr, v)   write-target position
                   addr in 0..7 or 32768..32775 → that register
                   anything else               → InvalidRegister
                   v itself is first resolved if it is a register
                   encoding, so storing "r3" stores r3's contents.
"""

from typing import List

from ..config import NUM_REGISTERS, REGISTER_BASE, REGISTER_LIMIT, WORD_MASK
from ..errors import InvalidAddress, InvalidRegister


def is_register(word: int) -> bool:
    """True if the raw word is a register encoding (32768..32775)."""
    return REGISTER_BASE <= word <= REGISTER_LIMIT


def register_index(target: int) -> int:
    """Map a write-target word to a register number 0..7.

    Both the encoded form (32768..32775) and the bare index (0..7) are
    accepted. Memory addresses are never valid write targets.
    """
    if REGISTER_BASE <= target <= REGISTER_LIMIT:
        return target - REGISTER_BASE
    if 0 <= target < NUM_REGISTERS:
        return target
    raise InvalidRegister(f"write target {target} is not a register", target)


class Registers:
    """Eight general purpose registers plus the program counter."""

    __slots__ = ('r', 'PC')

    def __init__(self):
        self.r: List[int] = [0] * NUM_REGISTERS
        self.PC: int = 0

    def __getitem__(self, index: int) -> int:
        return self.r[index]

    def __setitem__(self, index: int, value: int):
        self.r[index] = value & 0xFFFF

    # --- Operand resolution ---

    def resolve(self, word: int) -> int:
        """Value a raw operand word denotes (literal or register contents)."""
        if 0 <= word <= WORD_MASK:
            return word
        if is_register(word):
            return self.r[word - REGISTER_BASE]
        raise InvalidAddress(f"operand {word} is neither literal nor register", word)

    def store(self, target: int, value: int):
        """Write `value` into the register named by the raw word `target`."""
        if is_register(value):
            value = self.resolve(value)
        self.r[register_index(target)] = value & 0xFFFF

    # --- Display ---

    def display(self) -> str:
        """One-line register dump for trace and fault reports."""
        regs = ' '.join(f"r{i}={v:<5d}" for i, v in enumerate(self.r))
        return f"PC={self.PC:<5d} {regs}"

    def reset(self):
        self.r = [0] * NUM_REGISTERS
        self.PC = 0
