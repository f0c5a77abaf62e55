"""
Synacor VM — Fault Taxonomy

Every fault is fatal to the run. Handlers raise, the engine's step()
catches VMFault, stamps the program counter of the faulting instruction
onto it and parks the machine in the FAULTED state.
"""

from typing import Optional


class VMFault(Exception):
    """Base class for every condition that stops a program abnormally."""

    kind = "Fault"

    def __init__(self, message: str, pc: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.pc = pc

    def __str__(self) -> str:
        if self.pc is None:
            return f"{self.kind}: {self.message}"
        return f"{self.kind} at pc={self.pc}: {self.message}"


class MalformedImage(VMFault):
    """Program image has odd length or does not fit in memory."""
    kind = "MalformedImage"


class InvalidOpcode(VMFault):
    """Fetched word is not one of the 22 defined operation codes."""
    kind = "InvalidOpcode"

    def __init__(self, opcode: int, pc: Optional[int] = None):
        super().__init__(f"unknown opcode {opcode}", pc)
        self.opcode = opcode


class InvalidAddress(VMFault):
    """Operand above 32775, or a memory index outside 0..32767."""
    kind = "InvalidAddress"

    def __init__(self, message: str, value: Optional[int] = None,
                 pc: Optional[int] = None):
        super().__init__(message, pc)
        self.value = value


class InvalidRegister(InvalidAddress):
    """Write target does not encode a register."""
    kind = "InvalidRegister"


class StackUnderflow(VMFault):
    """pop or ret against an empty stack."""
    kind = "StackUnderflow"


class DivideByZero(VMFault):
    kind = "DivideByZero"


class EndOfInput(VMFault):
    """Input source reached end of stream while `in` was waiting."""
    kind = "EndOfInput"
