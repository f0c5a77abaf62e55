"""
Synacor VM — 16-bit Bytecode Virtual Machine
============================================
Runs Synacor challenge program images: 15-bit arithmetic, eight
registers, 32K words of memory, an unbounded stack and line-buffered
character I/O.

Architecture:
    ┌──────────┐    ┌──────────┐    ┌──────────┐    ┌───────────┐
    │  Image   │───>│  Loader  │───>│  Memory  │<──>│  Engine   │<──> Console
    │ (.bin)   │    │ (words)  │    │ (32K)    │    │ (emu.py)  │     (stdin/stdout)
    └──────────┘    └──────────┘    └──────────┘    └───────────┘
                                                      │   │   │
                                               decoder  regs  alu / stack

    - loader.py:        validate image, little-endian bytes → words
    - cpu/decoder.py:   opcode word → (Op, mnemonic, operand kinds)
    - cpu/regs.py:      operand resolution and write-target rules
    - cpu/alu.py:       mod-32768 arithmetic, bitwise ops, comparisons
    - cpu/stack.py:     push/pop/call/ret stack, underflow is a fault
    - periph/console.py: one line in, one character out at a time
    - emu.py:           fetch/decode/execute loop, state machine, trace
    - disasm.py:        static listing of an image
"""

__version__ = "1.0.0"

from typing import Optional

from .errors import (
    VMFault, MalformedImage, InvalidOpcode, InvalidAddress, InvalidRegister,
    StackUnderflow, DivideByZero, EndOfInput,
)
from .cpu.decoder import Op, decode_opcode
from .loader import image_to_words, read_image, words_to_image
from .emu import SynacorVM, StopReason, VMState
from .disasm import Disassembler


def run_image(path_or_data, source=None, sink=None, *,
              max_steps: Optional[int] = None, **options) -> SynacorVM:
    """Load an image, run it to completion and return the engine.

    The engine's state, fault and output describe how the run ended.
    """
    emu = SynacorVM(source, sink, **options)
    emu.load_image(path_or_data)
    emu.run(max_steps=max_steps)
    return emu
