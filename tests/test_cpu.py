"""Tests for the register file and call stack."""

import pytest
from chip8vm.cpu import CPU, VF
from chip8vm.stack import CallStack, STACK_SIZE
from chip8vm.errors import StackOverflow, StackUnderflow


class TestCPU:
    """Register file tests."""

    def test_default_initialization(self):
        """Registers start at zero and PC at the ROM start."""
        cpu = CPU()
        assert cpu.v == [0] * 16
        assert cpu.i == 0
        assert cpu.pc == 0x200

    def test_set_v_wraps(self):
        """V registers hold 8 bits."""
        cpu = CPU()
        cpu.set_v(3, 0x101)
        assert cpu.v[3] == 0x01

    def test_set_i_wraps(self):
        """I holds 16 bits."""
        cpu = CPU()
        cpu.set_i(0x10005)
        assert cpu.i == 0x0005

    def test_set_flag(self):
        """VF is normalized to 0 or 1."""
        cpu = CPU()
        cpu.set_flag(0x80)
        assert cpu.v[VF] == 1
        cpu.set_flag(False)
        assert cpu.v[VF] == 0

    def test_advance_and_rewind(self):
        """PC steps by whole instructions."""
        cpu = CPU()
        cpu.advance()
        assert cpu.pc == 0x202
        cpu.rewind()
        cpu.rewind()
        assert cpu.pc == 0x1FE

    def test_get_state(self):
        """Get state returns correct dict."""
        cpu = CPU()
        cpu.set_v(0, 5)
        cpu.i = 0x300
        state = cpu.get_state()
        assert state["v"][0] == 5
        assert state["i"] == 0x300
        assert state["pc"] == 0x200

    def test_reset(self):
        """Reset returns registers to initial state."""
        cpu = CPU()
        cpu.set_v(1, 9)
        cpu.i = 7
        cpu.pc = 0x400
        cpu.reset()
        assert cpu.v == [0] * 16
        assert cpu.i == 0
        assert cpu.pc == 0x200


class TestCallStack:
    """Call stack tests."""

    def test_push_pop_lifo(self):
        stack = CallStack()
        stack.push(0x202)
        stack.push(0x304)
        assert stack.pop() == 0x304
        assert stack.pop() == 0x202

    def test_sixteen_pushes_fit(self):
        stack = CallStack()
        for n in range(STACK_SIZE):
            stack.push(n)
        assert len(stack) == STACK_SIZE

    def test_seventeenth_push_overflows(self):
        """A 17th push raises StackOverflow."""
        stack = CallStack()
        for n in range(STACK_SIZE):
            stack.push(n)
        with pytest.raises(StackOverflow):
            stack.push(0x200)

    def test_pop_empty_underflows(self):
        """Popping an empty stack raises StackUnderflow."""
        with pytest.raises(StackUnderflow):
            CallStack().pop()

    def test_reset(self):
        stack = CallStack()
        stack.push(1)
        stack.reset()
        assert stack.snapshot() == []
