"""
Synacor VM — Core Integration Tests

Tests that prove the engine executes real Synacor bytecode. Every
program is hand-assembled as a list of words; the comment beside each
group of words is the instruction it encodes. r0..r7 are written as
their raw encodings 32768..32775.
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import io
import logging

import pytest
from synacor_vm import run_image
from synacor_vm.config import TRACE_HISTORY, TRACE_LOG_NAME
from synacor_vm.emu import StopReason, SynacorVM, VMState
from synacor_vm.errors import (
    DivideByZero, EndOfInput, InvalidAddress, InvalidOpcode, InvalidRegister,
    StackUnderflow,
)
from synacor_vm.loader import words_to_image

R0, R1, R2, R3, R7 = 32768, 32769, 32770, 32771, 32775


def make_vm(words, text=None, **options):
    """Engine with `words` loaded at 0 and optional pre-queued input."""
    emu = SynacorVM(**options)
    emu.load_image(words_to_image(words))
    if text is not None:
        emu.console.feed(text)
    return emu


# ═══════════════════════════════════════════════
# Test Group 1: End-to-end programs
# ═══════════════════════════════════════════════

class TestPrograms:

    def test_halt_immediately(self):
        """[halt, 0] halts at once with no output."""
        emu = make_vm([0, 0])
        assert emu.run() is StopReason.HALT
        assert emu.state is VMState.HALTED
        assert emu.output == b""
        assert emu.steps == 1

    def test_set_then_out(self):
        """set r0 5; out r0 → the single byte 5."""
        emu = make_vm([
            1, R0, 5,     # set r0 5
            19, R0,       # out r0
            0,            # halt
        ])
        assert emu.run() is StopReason.HALT
        assert emu.output == bytes([5])

    def test_push_push_add(self):
        """push 1; push 2; add r0 2 3 → r0 = 5, stack untouched by add."""
        emu = make_vm([
            2, 1,             # push 1
            2, 2,             # push 2
            9, R0, 2, 3,      # add r0 2 3
            0,
        ])
        emu.run()
        assert emu.regs[0] == 5
        assert emu.stack.snapshot() == [1, 2]

    def test_hello(self):
        emu = make_vm([
            19, ord('h'),
            19, ord('i'),
            19, 10,
            0,
        ])
        emu.run()
        assert emu.output == b"hi\n"

    def test_countdown_loop(self):
        """Count r0 from 3 down to 0, printing a '*' per iteration."""
        emu = make_vm([
            1, R0, 3,             # 0: set r0 3
            19, ord('*'),         # 3: out '*'
            9, R0, R0, 32767,     # 5: add r0 r0 -1
            7, R0, 3,             # 9: jt r0 3
            0,                    # 12: halt
        ])
        assert emu.run() is StopReason.HALT
        assert emu.output == b"***"
        assert emu.regs[0] == 0

    def test_echo_input(self):
        """in r0; out r0 (x3) echoes a line, lower-cased."""
        emu = make_vm([
            20, R0, 19, R0,
            20, R0, 19, R0,
            20, R0, 19, R0,
            0,
        ], text="OK\n")
        assert emu.run() is StopReason.HALT
        assert emu.output == b"ok\n"

    def test_run_image_helper(self):
        sink = io.BytesIO()
        emu = run_image(words_to_image([19, 65, 0]), sink=sink)
        assert emu.state is VMState.HALTED
        assert sink.getvalue() == b"A"


# ═══════════════════════════════════════════════
# Test Group 2: Individual instructions
# ═══════════════════════════════════════════════

class TestDataMovement:

    def test_set_from_register(self):
        emu = make_vm([1, R1, 7, 1, R0, R1, 0])
        emu.run()
        assert emu.regs[0] == 7

    def test_set_bare_register_index(self):
        emu = make_vm([1, 3, 99, 0])
        emu.run()
        assert emu.regs[3] == 99

    def test_push_pop_round_trip(self):
        emu = make_vm([
            1, R2, 1234,   # set r2 1234
            2, 77,         # push 77 (prior depth 1)
            2, R2,         # push r2
            3, R2,         # pop r2
            0,
        ])
        emu.step()
        emu.step()
        depth = len(emu.stack)
        emu.step()
        emu.step()
        assert emu.regs[2] == 1234
        assert len(emu.stack) == depth

    def test_wmem_rmem(self):
        emu = make_vm([
            16, 100, 42,      # wmem 100 42
            15, R1, 100,      # rmem r1 100
            0,
        ])
        emu.run()
        assert emu.mem.read(100) == 42
        assert emu.regs[1] == 42

    def test_wmem_through_register_address(self):
        emu = make_vm([
            1, R0, 200,       # set r0 200
            16, R0, 7,        # wmem r0 7
            0,
        ])
        emu.run()
        assert emu.mem.read(200) == 7

    def test_self_modifying_code(self):
        """wmem overwrites the instruction after it with halt."""
        emu = make_vm([
            16, 3, 0,         # 0: wmem 3 0 → address 3 becomes halt
            19, 65,           # 3: out 'A' (never runs)
            0,
        ])
        emu.run()
        assert emu.output == b""


class TestArithmeticOps:

    def _run(self, words):
        emu = make_vm(words + [0])
        assert emu.run() is StopReason.HALT
        return emu

    def test_add_wraps(self):
        assert self._run([9, R0, 32767, 1]).regs[0] == 0

    def test_mult_wraps(self):
        assert self._run([10, R0, 32767, 2]).regs[0] == 32766

    def test_mod(self):
        assert self._run([11, R0, 10, 3]).regs[0] == 1

    def test_and_or(self):
        emu = self._run([12, R0, 12, 10, 13, R1, 12, 10])
        assert emu.regs[0] == 8
        assert emu.regs[1] == 14

    def test_not_twice(self):
        emu = self._run([14, R0, 4660, 14, R1, R0])
        assert emu.regs[0] == 32767 - 4660
        assert emu.regs[1] == 4660

    def test_eq_gt(self):
        emu = self._run([
            4, R0, 5, 5,
            4, R1, 5, 6,
            5, R2, 6, 5,
            5, R3, 5, 6,
        ])
        assert emu.regs.r[:4] == [1, 0, 1, 0]

    def test_operands_read_registers(self):
        emu = self._run([
            1, R1, 20,
            1, R2, 22,
            9, R0, R1, R2,    # add r0 r1 r2
        ])
        assert emu.regs[0] == 42


class TestControlFlow:

    def test_jmp(self):
        emu = make_vm([6, 4, 19, 65, 0])
        emu.run()
        assert emu.output == b""

    def test_jt_taken_and_not(self):
        taken = make_vm([7, 1, 5, 19, 65, 0])
        taken.run()
        assert taken.output == b""
        not_taken = make_vm([7, 0, 5, 19, 65, 0])
        not_taken.run()
        assert not_taken.output == b"A"

    def test_jf_taken_and_not(self):
        taken = make_vm([8, 0, 5, 19, 65, 0])
        taken.run()
        assert taken.output == b""
        not_taken = make_vm([8, 9, 5, 19, 65, 0])
        not_taken.run()
        assert not_taken.output == b"A"

    def test_call_ret_round_trip(self):
        """ret lands on the word right after the two-word call."""
        emu = make_vm([
            17, 4,            # 0: call 4
            0,                # 2: halt
            0,                # 3: (padding)
            19, 66,           # 4: out 'B'
            18,               # 6: ret
        ])
        emu.step()
        assert emu.regs.PC == 4
        assert emu.stack.snapshot() == [2]
        emu.step()
        emu.step()
        assert emu.regs.PC == 2
        assert len(emu.stack) == 0
        assert emu.run() is StopReason.HALT
        assert emu.output == b"B"

    def test_call_through_register(self):
        emu = make_vm([1, R0, 6, 17, R0, 0, 19, 67, 18])
        emu.run()
        assert emu.output == b"C"

    def test_noop(self):
        emu = make_vm([21, 21, 0])
        emu.step()
        assert emu.regs.PC == 1
        assert emu.run() is StopReason.HALT


class TestInput:

    def test_input_characters_in_order(self):
        emu = make_vm([20, R0, 20, R1, 20, R2, 0], text="ab\n")
        emu.run()
        assert emu.regs.r[:3] == [ord('a'), ord('b'), ord('\n')]

    def test_input_blocks_on_source(self):
        emu = SynacorVM(source=io.BytesIO(b"Q\n"), prompt=None)
        emu.load_image(words_to_image([20, R0, 0]))
        assert emu.run() is StopReason.HALT
        assert emu.regs[0] == ord('q')

    def test_prompt_not_in_program_output(self):
        sink = io.BytesIO()
        emu = SynacorVM(source=io.BytesIO(b"z\n"), sink=sink, prompt=">>")
        emu.load_image(words_to_image([20, R0, 19, R0, 0]))
        emu.run()
        assert sink.getvalue() == b">>z"
        assert emu.output == b"z"


# ═══════════════════════════════════════════════
# Test Group 3: Faults
# ═══════════════════════════════════════════════

class TestFaults:

    def _fault(self, words, text=None):
        emu = make_vm(words, text)
        assert emu.run() is StopReason.FAULT
        assert emu.state is VMState.FAULTED
        return emu

    def test_invalid_opcode(self):
        emu = self._fault([21, 22])
        assert isinstance(emu.fault, InvalidOpcode)
        assert emu.fault.opcode == 22
        assert emu.fault.pc == 1

    def test_invalid_operand(self):
        emu = self._fault([19, 32776])
        assert isinstance(emu.fault, InvalidAddress)
        assert emu.fault.pc == 0

    def test_write_target_is_memory_address(self):
        emu = self._fault([1, 8, 5])
        assert isinstance(emu.fault, InvalidRegister)
        assert isinstance(emu.fault, InvalidAddress)

    def test_pop_empty(self):
        emu = self._fault([21, 3, R0])
        assert isinstance(emu.fault, StackUnderflow)
        assert emu.fault.pc == 1

    def test_ret_empty(self):
        emu = self._fault([18])
        assert isinstance(emu.fault, StackUnderflow)

    def test_mod_zero(self):
        emu = self._fault([11, R0, 5, 0])
        assert isinstance(emu.fault, DivideByZero)

    def test_rmem_out_of_range(self):
        """A register holding 40000 is not a valid memory index."""
        emu = self._fault([
            15, R1, 6,        # 0: rmem r1 6 → r1 = 40000
            15, R0, R1,       # 3: rmem r0 r1
            40000,            # 6: data
        ])
        assert isinstance(emu.fault, InvalidAddress)
        assert emu.fault.pc == 3

    def test_end_of_input(self):
        emu = self._fault([20, R0, 0])
        assert isinstance(emu.fault, EndOfInput)

    def test_input_bad_target_does_not_consume_input(self):
        emu = self._fault([20, 100], text="x\n")
        assert isinstance(emu.fault, InvalidRegister)
        assert emu.console.pending == 2

    def test_pc_runs_off_memory(self):
        emu = SynacorVM()
        emu.mem.load_words([21], 32767)
        emu.regs.PC = 32767
        assert emu.step() is None
        assert emu.step() is StopReason.FAULT
        assert isinstance(emu.fault, InvalidAddress)

    def test_fault_is_terminal(self):
        emu = self._fault([18, 19, 65, 0])
        steps = emu.steps
        assert emu.step() is StopReason.FAULT
        assert emu.run() is StopReason.FAULT
        assert emu.steps == steps
        assert emu.output == b""

    def test_fault_message_names_pc(self):
        emu = self._fault([21, 21, 99])
        assert str(emu.fault) == "InvalidOpcode at pc=2: unknown opcode 99"


# ═══════════════════════════════════════════════
# Test Group 4: Run control, trace, debug hooks
# ═══════════════════════════════════════════════

class TestRunControl:

    def test_halt_is_terminal(self):
        emu = make_vm([0, 19, 65])
        emu.run()
        assert emu.step() is StopReason.HALT
        assert emu.output == b""

    def test_step_limit(self):
        emu = make_vm([6, 0])   # jmp 0 forever
        assert emu.run(max_steps=10) is StopReason.LIMIT
        assert emu.steps == 10
        assert emu.state is VMState.RUNNING

    def test_engine_default_step_limit(self):
        emu = make_vm([6, 0], max_steps=5)
        assert emu.run() is StopReason.LIMIT
        assert emu.steps == 5

    def test_breakpoint_stops_then_resumes(self):
        emu = make_vm([21, 19, 65, 0])
        emu.add_breakpoint(1)
        assert emu.run() is StopReason.BREAK
        assert emu.regs.PC == 1
        assert emu.output == b""
        assert emu.run() is StopReason.HALT
        assert emu.output == b"A"

    def test_breakpoint_hits_every_pass(self):
        emu = make_vm([21, 6, 0])
        emu.add_breakpoint(0)
        assert emu.run() is StopReason.BREAK
        assert emu.run() is StopReason.BREAK
        assert emu.steps == 2
        emu.clear_breakpoints()
        assert emu.run(max_steps=4) is StopReason.LIMIT

    def test_reset_reloads_image(self):
        emu = make_vm([16, 3, 0, 19, 65, 0])
        emu.run()
        assert emu.mem.read(3) == 0
        emu.reset()
        assert emu.mem.read(3) == 19
        assert emu.state is VMState.RUNNING
        assert emu.steps == 0


class TestTrace:

    def test_trace_lines(self):
        emu = make_vm([1, R0, 5, 19, R0, 0], trace=True)
        emu.run()
        assert emu.get_trace().splitlines() == [
            "    0: set 32768 5",
            "    3: out 32768",
            "    5: halt",
        ]

    def test_trace_marks_bad_opcode(self):
        emu = make_vm([50], trace=True)
        emu.run()
        assert emu.get_trace() == "    0: ?50"

    def test_trace_does_not_change_results(self):
        words = [1, R0, 3, 19, 42, 9, R0, R0, 32767, 7, R0, 3, 0]
        plain = make_vm(words)
        traced = make_vm(words, trace=True)
        plain.run()
        traced.run()
        assert plain.output == traced.output
        assert plain.regs.r == traced.regs.r
        assert plain.steps == traced.steps

    def test_trace_history_is_bounded(self):
        emu = make_vm([6, 0], trace=True)   # jmp 0 forever
        emu.run(max_steps=TRACE_HISTORY * 3)
        lines = emu.get_trace().splitlines()
        assert len(lines) == TRACE_HISTORY
        assert lines[-1] == "    0: jmp 0"

    def test_trace_logged_as_executed(self, caplog):
        caplog.set_level(logging.DEBUG, logger=TRACE_LOG_NAME)
        emu = make_vm([21, 19, 65, 0], trace=True)
        emu.step()
        traced = [r.getMessage() for r in caplog.records if r.name == TRACE_LOG_NAME]
        assert traced == ["    0: noop"]

    def test_trace_off_by_default(self):
        emu = make_vm([21, 0])
        emu.run()
        assert emu.get_trace() == ""
        emu.enable_trace()
        emu.reset()
        emu.run()
        assert emu.get_trace().splitlines() == ["    0: noop", "    1: halt"]
        emu.clear_trace()
        assert emu.get_trace() == ""


class TestDebugCommands:

    def test_hack_teleporter(self):
        emu = make_vm([20, R0, 0], debug_commands=True)
        emu.console.feed("!hack_teleporter\nx\n")
        assert [emu.mem.read(a) for a in range(6027, 6031)] == [1, 32768, 6, 18]
        assert emu.regs[7] == 25734
        emu.run()
        assert emu.regs[0] == ord('x')

    def test_disabled_by_default(self):
        emu = make_vm([20, R0, 0], text="!hack_teleporter\n")
        emu.run()
        assert emu.regs[0] == ord('!')
        assert emu.regs[7] == 0
        assert emu.mem.read(6027) == 0

    def test_unknown_command_ignored(self):
        emu = make_vm([20, R0, 0], debug_commands=True)
        emu.console.feed("!nonsense\n")
        assert emu.console.pending == 0
        assert emu.regs.r == [0] * 8

    def test_regs_command_shows_stack(self, caplog):
        emu = make_vm([2, 5, 0], debug_commands=True)
        emu.step()
        emu.console.feed("!regs\n")
        assert "stack_depth=1 top=[5]" in caplog.text

    def test_mem_command_dumps_memory(self, caplog):
        emu = make_vm([19, 72, 0], debug_commands=True)
        emu.console.feed("!mem 0 3\n")
        assert "    0  0013 0048 0000" in caplog.text
        assert emu.console.pending == 0

    def test_mem_command_bad_arguments(self, caplog):
        emu = make_vm([0], debug_commands=True)
        emu.console.feed("!mem\n!mem zz\n!mem 40000\n")
        assert caplog.text.count("usage: mem ADDR [LENGTH]") == 2
        assert "out of range" in caplog.text
        assert emu.console.pending == 0
