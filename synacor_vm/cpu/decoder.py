"""
Synacor VM — Opcode Decoder

Maps an opcode word to (Op, mnemonic, operand signature). The operand
signature tells the engine how many words to fetch after the opcode and
how to read each one:

  TARGET  raw word naming a register to write (never resolved)
  VALUE   raw word resolved through the register file before use

The opcode set is closed: 0..21, contiguous, in the order below.
"""

from enum import IntEnum
from typing import Dict, Tuple

from ..errors import InvalidOpcode


# ──────────────────────────────────────────────
# Operand kinds
# ──────────────────────────────────────────────

TARGET = 'TARGET'
VALUE = 'VALUE'

T, V = TARGET, VALUE


class Op(IntEnum):
    HALT = 0
    SET = 1
    PUSH = 2
    POP = 3
    EQ = 4
    GT = 5
    JMP = 6
    JT = 7
    JF = 8
    ADD = 9
    MULT = 10
    MOD = 11
    AND = 12
    OR = 13
    NOT = 14
    RMEM = 15
    WMEM = 16
    CALL = 17
    RET = 18
    OUT = 19
    IN = 20
    NOOP = 21


# ──────────────────────────────────────────────
# Opcode table
# ──────────────────────────────────────────────
# Format: Op -> (mnemonic, operand kinds)

OPCODES: Dict[Op, Tuple[str, Tuple[str, ...]]] = {
    Op.HALT: ('halt', ()),
    Op.SET:  ('set',  (T, V)),
    Op.PUSH: ('push', (V,)),
    Op.POP:  ('pop',  (T,)),
    Op.EQ:   ('eq',   (T, V, V)),
    Op.GT:   ('gt',   (T, V, V)),
    Op.JMP:  ('jmp',  (V,)),
    Op.JT:   ('jt',   (V, V)),
    Op.JF:   ('jf',   (V, V)),
    Op.ADD:  ('add',  (T, V, V)),
    Op.MULT: ('mult', (T, V, V)),
    Op.MOD:  ('mod',  (T, V, V)),
    Op.AND:  ('and',  (T, V, V)),
    Op.OR:   ('or',   (T, V, V)),
    Op.NOT:  ('not',  (T, V)),
    Op.RMEM: ('rmem', (T, V)),
    Op.WMEM: ('wmem', (V, V)),
    Op.CALL: ('call', (V,)),
    Op.RET:  ('ret',  ()),
    Op.OUT:  ('out',  (V,)),
    Op.IN:   ('in',   (T,)),
    Op.NOOP: ('noop', ()),
}

MNEMONICS: Dict[str, Op] = {mnem: op for op, (mnem, _) in OPCODES.items()}


def decode_opcode(word: int) -> Tuple[Op, str, Tuple[str, ...]]:
    """Decode an opcode word.

    Returns: (op, mnemonic, operand_kinds)
    Raises InvalidOpcode for anything outside 0..21.
    """
    try:
        op = Op(word)
    except ValueError:
        raise InvalidOpcode(word) from None
    mnem, kinds = OPCODES[op]
    return op, mnem, kinds


def instruction_length(op: Op) -> int:
    """Words consumed by an instruction, opcode included."""
    return 1 + len(OPCODES[op][1])
