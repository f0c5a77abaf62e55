"""
Synacor VM — 32K Word Memory

Memory map:
  0 – 32767   flat, word-addressed, all writable

Populated once from the program image (load_image), afterwards changed
only one word at a time through write(). Addresses outside 0..32767 are
an InvalidAddress fault, on read as well as on write.
"""

from typing import List

from ..config import MEMORY_SIZE
from ..errors import InvalidAddress
from ..loader import image_to_words


class Memory:
    """32768 16-bit words."""

    def __init__(self):
        self._mem: List[int] = [0] * MEMORY_SIZE

    # --- Core read/write ---

    def _check(self, addr: int):
        if not 0 <= addr < MEMORY_SIZE:
            raise InvalidAddress(f"memory address {addr} out of range", addr)

    def read(self, addr: int) -> int:
        self._check(addr)
        return self._mem[addr]

    def write(self, addr: int, value: int):
        self._check(addr)
        self._mem[addr] = value & 0xFFFF

    # --- Bulk load ---

    def load_words(self, words: List[int], base_addr: int = 0):
        """Copy words into memory from base_addr."""
        if base_addr < 0 or base_addr + len(words) > MEMORY_SIZE:
            raise InvalidAddress(
                f"{len(words)} words at {base_addr} overrun memory", base_addr)
        self._mem[base_addr:base_addr + len(words)] = [w & 0xFFFF for w in words]

    def load_image(self, data: bytes) -> int:
        """Clear memory and load a program image at address 0.

        Returns the number of words loaded.
        """
        words = image_to_words(data)
        self.clear()
        self.load_words(words)
        return len(words)

    def clear(self):
        self._mem = [0] * MEMORY_SIZE

    # --- Hex dump ---

    def hexdump(self, start: int, length: int = 64) -> str:
        """Word dump, eight words per line, printable low bytes on the right."""
        self._check(start)
        lines = []
        end = min(start + length, MEMORY_SIZE)
        for addr in range(start, end, 8):
            row = self._mem[addr:min(addr + 8, end)]
            hex_words = ' '.join(f'{w:04X}' for w in row)
            ascii_bytes = ''.join(
                chr(w) if 0x20 <= w < 0x7F else '.' for w in row
            )
            lines.append(f'{addr:5d}  {hex_words:<39s}  {ascii_bytes}')
        return '\n'.join(lines)
