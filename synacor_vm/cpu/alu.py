"""
Synacor VM — ALU Operations

Each function takes already-resolved operand values and returns the
word to store. Python ints never overflow, so arithmetic is computed at
full width and reduced mod 32768 afterwards, the way the machine
definition requires.

  add, mul, mod   → (b OP c) % 32768
  and_, or_       → exact bitwise; inputs <= 32767 keep results in range
  not_            → 15-bit complement, top bit always cleared
  eq, gt          → 1 / 0, compared on full 16-bit values
"""

from ..config import WORD_MASK, WORD_MODULUS
from ..errors import DivideByZero


def add(b: int, c: int) -> int:
    return (b + c) % WORD_MODULUS


def mul(b: int, c: int) -> int:
    return (b * c) % WORD_MODULUS


def mod(b: int, c: int) -> int:
    """Remainder of b / c. A zero divisor is a fault, not a crash."""
    if c == 0:
        raise DivideByZero(f"mod {b} by zero")
    return (b % c) % WORD_MODULUS


def and_(b: int, c: int) -> int:
    return (b & c) % WORD_MODULUS


def or_(b: int, c: int) -> int:
    return (b | c) % WORD_MODULUS


def not_(b: int) -> int:
    return ~b & WORD_MASK


def eq(b: int, c: int) -> int:
    return 1 if b == c else 0


def gt(b: int, c: int) -> int:
    return 1 if b > c else 0
