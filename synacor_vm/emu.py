"""
Synacor VM — Main Engine Class

This is the top-level class that integrates:
  - Register file + operand resolution (cpu/regs.py)
  - Word stack (cpu/stack.py)
  - Opcode decoder (cpu/decoder.py)
  - ALU operations (cpu/alu.py)
  - 32K word memory (mem/memory.py)
  - Console character I/O (periph/console.py)

Execution model:
  1. Fetch opcode word at PC (PC advances by one per fetched word)
  2. Decode → operand signature
  3. Fetch operand words; VALUE operands are resolved, TARGET kept raw
  4. Execute handler → registers, memory, stack, console, maybe PC
  5. Repeat until halt, fault, breakpoint or step limit

State machine:
  RUNNING ──halt──▶ HALTED    (terminal, success)
  RUNNING ──fault─▶ FAULTED   (terminal, engine.fault says why and where)
A terminal engine never executes another instruction; step() keeps
returning the same StopReason until reset().
"""

import logging
from collections import deque
from enum import Enum
from pathlib import Path
from typing import BinaryIO, Deque, List, Optional, Set

from .config import DEFAULT_MAX_STEPS, DEFAULT_PROMPT, TRACE_HISTORY, TRACE_LOG_NAME
from .cpu import alu
from .cpu.decoder import TARGET, Op, decode_opcode
from .cpu.regs import Registers, register_index
from .cpu.stack import Stack
from .debug import DEBUG_COMMANDS
from .errors import VMFault
from .loader import read_image
from .mem.memory import Memory
from .periph.console import Console

log = logging.getLogger(__name__)
trace_log = logging.getLogger(TRACE_LOG_NAME)


class StopReason(Enum):
    HALT = 'HALT'
    BREAK = 'BREAK'
    LIMIT = 'LIMIT'
    FAULT = 'FAULT'


class VMState(Enum):
    RUNNING = 'RUNNING'
    HALTED = 'HALTED'
    FAULTED = 'FAULTED'


class SynacorVM:
    """Synacor challenge virtual machine.

    Usage:
        emu = SynacorVM(source=sys.stdin.buffer, sink=sys.stdout.buffer)
        emu.load_image('challenge.bin')
        reason = emu.run()
        if reason is StopReason.FAULT:
            print(emu.fault)
    """

    def __init__(self, source: Optional[BinaryIO] = None,
                 sink: Optional[BinaryIO] = None, *,
                 trace: bool = False,
                 debug_commands: bool = False,
                 prompt: Optional[str] = DEFAULT_PROMPT,
                 max_steps: Optional[int] = DEFAULT_MAX_STEPS):
        # Core components
        self.regs = Registers()
        self.mem = Memory()
        self.stack = Stack()
        self.console = Console(source, sink, prompt)

        self.state = VMState.RUNNING
        self.fault: Optional[VMFault] = None
        self.steps = 0
        self.max_steps = max_steps
        self._image = b''

        # Breakpoints: PC values that stop run() before executing
        self._breakpoints: Set[int] = set()
        self._break_pc: Optional[int] = None

        # Trace: every line goes to the trace logger, the newest
        # TRACE_HISTORY lines are also kept for get_trace()
        self._trace = trace
        self._trace_output: Deque[str] = deque(maxlen=TRACE_HISTORY)
        self._trace_line: List[str] = []

        if debug_commands:
            self.console.command_handler = self._run_debug_command

        # Instruction dispatch table
        self._dispatch = self._build_dispatch()

    # ══════════════════════════════════════════════
    # Loading
    # ══════════════════════════════════════════════

    def load_image(self, path_or_data):
        """Load a program image (file path or raw bytes) at address 0.

        Raises MalformedImage for odd-length or oversized images.
        """
        if isinstance(path_or_data, (str, Path)):
            data = read_image(path_or_data)
        else:
            data = bytes(path_or_data)
        count = self.mem.load_image(data)
        self._image = data
        log.info("Loaded %d words", count)
        return count

    # ══════════════════════════════════════════════
    # Execution
    # ══════════════════════════════════════════════

    def step(self) -> Optional[StopReason]:
        """Execute one instruction. Returns StopReason if stopped, else None."""
        if self.state is VMState.HALTED:
            return StopReason.HALT
        if self.state is VMState.FAULTED:
            return StopReason.FAULT

        pc = self.regs.PC

        # Breakpoint: stop once, execute on the following step
        if pc in self._breakpoints and self._break_pc != pc:
            self._break_pc = pc
            return StopReason.BREAK
        self._break_pc = None

        self._trace_line = []
        try:
            op, mnem, kinds = self._fetch_op()
            operands = self._decode_operands(kinds)
            self._dispatch[op](*operands)
        except _HaltException:
            self.state = VMState.HALTED
            log.info("Halted at pc=%d after %d steps", pc, self.steps + 1)
            return StopReason.HALT
        except VMFault as e:
            if e.pc is None:
                e.pc = pc
            self.fault = e
            self.state = VMState.FAULTED
            log.error("%s", e)
            return StopReason.FAULT
        finally:
            self.steps += 1
            if self._trace:
                self._commit_trace(pc)

        return None

    def run(self, max_steps: Optional[int] = None) -> StopReason:
        """Run until termination condition.

        Args:
            max_steps: instructions to execute before giving up with
                       LIMIT; defaults to the engine's max_steps.

        Returns:
            StopReason indicating why execution stopped
        """
        if max_steps is None:
            max_steps = self.max_steps

        executed = 0
        while max_steps is None or executed < max_steps:
            reason = self.step()
            if reason is not None:
                return reason
            executed += 1

        return StopReason.LIMIT

    # ══════════════════════════════════════════════
    # Fetch / operand decoding
    # ══════════════════════════════════════════════

    def _fetch(self) -> int:
        """Fetch the word at PC, advance PC."""
        word = self.mem.read(self.regs.PC)
        self.regs.PC += 1
        if self._trace:
            self._trace_line.append(str(word))
        return word

    def _fetch_op(self):
        word = self.mem.read(self.regs.PC)
        self.regs.PC += 1
        try:
            decoded = decode_opcode(word)
        except VMFault:
            if self._trace:
                self._trace_line.append(f"?{word}")
            raise
        if self._trace:
            self._trace_line.append(decoded[1])
        return decoded

    def _decode_operands(self, kinds: tuple) -> tuple:
        """Fetch one word per operand kind, resolving VALUE operands."""
        operands = []
        for kind in kinds:
            word = self._fetch()
            operands.append(word if kind == TARGET else self.regs.resolve(word))
        return tuple(operands)

    def _build_dispatch(self) -> dict:
        """Build Op → handler dispatch table, one entry per opcode."""
        table = {
            Op.HALT: self._op_halt,
            Op.SET:  self._op_set,
            Op.PUSH: self._op_push,
            Op.POP:  self._op_pop,
            Op.EQ:   self._op_eq,
            Op.GT:   self._op_gt,
            Op.JMP:  self._op_jmp,
            Op.JT:   self._op_jt,
            Op.JF:   self._op_jf,
            Op.ADD:  self._op_add,
            Op.MULT: self._op_mult,
            Op.MOD:  self._op_mod,
            Op.AND:  self._op_and,
            Op.OR:   self._op_or,
            Op.NOT:  self._op_not,
            Op.RMEM: self._op_rmem,
            Op.WMEM: self._op_wmem,
            Op.CALL: self._op_call,
            Op.RET:  self._op_ret,
            Op.OUT:  self._op_out,
            Op.IN:   self._op_in,
            Op.NOOP: self._op_noop,
        }
        missing = [op.name for op in Op if op not in table]
        if missing:
            raise NotImplementedError(f"No handler for {', '.join(missing)}")
        return table

    # ══════════════════════════════════════════════
    # Instruction handlers
    # ══════════════════════════════════════════════
    # TARGET operands arrive raw, VALUE operands already resolved.

    # ── Data movement ──

    def _op_set(self, a, b):
        self.regs.store(a, b)

    def _op_push(self, a):
        self.stack.push(a)

    def _op_pop(self, a):
        self.regs.store(a, self.stack.pop())

    def _op_rmem(self, a, b):
        self.regs.store(a, self.mem.read(b))

    def _op_wmem(self, a, b):
        self.mem.write(a, b)

    # ── Comparison ──

    def _op_eq(self, a, b, c):
        self.regs.store(a, alu.eq(b, c))

    def _op_gt(self, a, b, c):
        self.regs.store(a, alu.gt(b, c))

    # ── Arithmetic / logic ──

    def _op_add(self, a, b, c):
        self.regs.store(a, alu.add(b, c))

    def _op_mult(self, a, b, c):
        self.regs.store(a, alu.mul(b, c))

    def _op_mod(self, a, b, c):
        self.regs.store(a, alu.mod(b, c))

    def _op_and(self, a, b, c):
        self.regs.store(a, alu.and_(b, c))

    def _op_or(self, a, b, c):
        self.regs.store(a, alu.or_(b, c))

    def _op_not(self, a, b):
        self.regs.store(a, alu.not_(b))

    # ── Control flow ──

    def _op_jmp(self, a):
        self.regs.PC = a

    def _op_jt(self, a, b):
        if a != 0:
            self.regs.PC = b

    def _op_jf(self, a, b):
        if a == 0:
            self.regs.PC = b

    def _op_call(self, a):
        self.stack.push(self.regs.PC)
        self.regs.PC = a

    def _op_ret(self):
        self.regs.PC = self.stack.pop()

    # ── I/O ──

    def _op_out(self, a):
        self.console.write_char(a)

    def _op_in(self, a):
        """Block until a character is available, store its code in a."""
        register_index(a)  # reject a bad target before blocking on input
        self.regs.store(a, self.console.read_char())

    # ── Control ──

    def _op_halt(self):
        raise _HaltException("halt")

    def _op_noop(self):
        pass

    # ══════════════════════════════════════════════
    # Debug commands
    # ══════════════════════════════════════════════

    def _run_debug_command(self, command: str):
        """Run one "name arg..." debug command line against this engine."""
        parts = command.split()
        if not parts:
            return
        name, args = parts[0], parts[1:]
        hook = DEBUG_COMMANDS.get(name)
        if hook is None:
            log.warning("Unknown debug command %r ignored", name)
            return
        log.warning("Running debug command %r at pc=%d", command, self.regs.PC)
        hook(self, args)

    # ══════════════════════════════════════════════
    # Breakpoint API
    # ══════════════════════════════════════════════

    def add_breakpoint(self, addr: int):
        """Stop run() before the instruction at addr executes."""
        self._breakpoints.add(addr)

    def remove_breakpoint(self, addr: int):
        self._breakpoints.discard(addr)

    def clear_breakpoints(self):
        self._breakpoints.clear()

    # ══════════════════════════════════════════════
    # Trace / Debug
    # ══════════════════════════════════════════════

    def enable_trace(self, enable: bool = True):
        """Record pc, mnemonic and raw operands of every instruction."""
        self._trace = enable

    def _commit_trace(self, pc: int):
        line = f"{pc:5d}: {' '.join(self._trace_line)}"
        self._trace_output.append(line)
        trace_log.debug(line)

    def get_trace(self) -> str:
        """The most recent trace lines, oldest first."""
        return '\n'.join(self._trace_output)

    def clear_trace(self):
        self._trace_output.clear()

    @property
    def output(self) -> bytes:
        """Everything the program has printed so far."""
        return self.console.output

    def reset(self):
        """Full engine reset; memory is reloaded from the last image."""
        self.regs.reset()
        self.stack.clear()
        self.console.reset()
        self.mem.clear()
        if self._image:
            self.mem.load_image(self._image)
        self.state = VMState.RUNNING
        self.fault = None
        self.steps = 0
        self._breakpoints.clear()
        self._break_pc = None
        self._trace_output.clear()


# Internal exception for flow control
class _HaltException(Exception):
    pass
