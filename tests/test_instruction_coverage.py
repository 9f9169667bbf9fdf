"""Ensure every opcode has a dedicated behavioral test."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

import pytest

from chip8vm import Chip8
from chip8vm.instructions import Op
from chip8vm.messages import SwapRom


def assemble(*words: int) -> bytes:
    return b"".join(word.to_bytes(2, "big") for word in words)


def expect_v(x: int, value: int) -> Callable:
    def _check(vm: Chip8):
        assert vm.cpu.v[x] == value

    return _check


def expect_v_at_most(x: int, value: int) -> Callable:
    def _check(vm: Chip8):
        assert vm.cpu.v[x] <= value

    return _check


def expect_pc(value: int) -> Callable:
    def _check(vm: Chip8):
        assert vm.cpu.pc == value

    return _check


def expect_i(value: int) -> Callable:
    def _check(vm: Chip8):
        assert vm.cpu.i == value

    return _check


def expect_stack(entries: list) -> Callable:
    def _check(vm: Chip8):
        assert vm.stack.snapshot() == entries

    return _check


def expect_mem(addr: int, data: bytes) -> Callable:
    def _check(vm: Chip8):
        assert vm.memory.snapshot()[addr:addr + len(data)] == data

    return _check


def expect_row(y: int, text: str) -> Callable:
    def _check(vm: Chip8):
        assert vm.display.to_text()[y].startswith(text)

    return _check


def expect_delay(value: int) -> Callable:
    def _check(vm: Chip8):
        assert vm.delay_timer.value == value

    return _check


def expect_sound(value: int) -> Callable:
    def _check(vm: Chip8):
        assert vm.sound_timer.value == value

    return _check


def expect_all(*checks: Callable) -> Callable:
    def _check(vm: Chip8):
        for check in checks:
            check(vm)

    return _check


@dataclass
class InstructionCase:
    op: Op
    words: tuple
    checker: Callable
    setup: Optional[Callable] = None
    cycles: Optional[int] = None


def _lit_origin(vm: Chip8):
    vm.display.flip(0, 0)


def _press_five(vm: Chip8):
    vm.keys.set_key_state(5, True)


def _release_seven(vm: Chip8):
    vm.keys.set_key_state(7, True)
    vm.keys.set_key_state(7, False)


def _set_flag(vm: Chip8):
    vm.cpu.set_flag(1)


def _delay_nine(vm: Chip8):
    vm.delay_timer.set(9)


def _fill_block(vm: Chip8):
    vm.memory.load(0x300, b"\x33\x44")


def _v0_all_ones(vm: Chip8):
    vm.cpu.set_v(0, 0xFF)


INSTRUCTION_CASES = [
    InstructionCase(Op.CLEAR_SCREEN, (0x00E0,), expect_row(0, "."), setup=_lit_origin),
    InstructionCase(
        Op.RETURN, (0x2204, 0x0000, 0x00EE),
        expect_all(expect_pc(0x202), expect_stack([])),
        cycles=2,
    ),
    InstructionCase(Op.JUMP, (0x1300,), expect_pc(0x300)),
    InstructionCase(Op.CALL, (0x2300,), expect_all(expect_pc(0x300), expect_stack([0x202]))),
    InstructionCase(Op.SKIP_EQ_IMM, (0x6005, 0x3005), expect_pc(0x206)),
    InstructionCase(Op.SKIP_NE_IMM, (0x6005, 0x4006), expect_pc(0x206)),
    InstructionCase(Op.SKIP_EQ_REG, (0x6005, 0x6105, 0x5010), expect_pc(0x208)),
    InstructionCase(Op.SET_IMM, (0x6A42,), expect_v(0xA, 0x42)),
    InstructionCase(Op.ADD_IMM, (0x60FF, 0x7002), expect_all(expect_v(0, 0x01), expect_v(0xF, 0))),
    InstructionCase(Op.SET_REG, (0x6107, 0x8010), expect_v(0, 7)),
    InstructionCase(Op.OR, (0x600C, 0x610A, 0x8011), expect_all(expect_v(0, 0x0E), expect_v(0xF, 0)), setup=_set_flag),
    InstructionCase(Op.AND, (0x600C, 0x610A, 0x8012), expect_all(expect_v(0, 0x08), expect_v(0xF, 0)), setup=_set_flag),
    InstructionCase(Op.XOR, (0x600C, 0x610A, 0x8013), expect_all(expect_v(0, 0x06), expect_v(0xF, 0)), setup=_set_flag),
    InstructionCase(Op.ADD_REG, (0x60FF, 0x6101, 0x8014), expect_all(expect_v(0, 0x00), expect_v(0xF, 1))),
    InstructionCase(Op.SUB_XY, (0x6005, 0x6103, 0x8015), expect_all(expect_v(0, 0x02), expect_v(0xF, 1))),
    InstructionCase(Op.SHIFT_RIGHT, (0x6105, 0x8016), expect_all(expect_v(0, 0x02), expect_v(0xF, 1))),
    InstructionCase(Op.SUB_YX, (0x6003, 0x6105, 0x8017), expect_all(expect_v(0, 0x02), expect_v(0xF, 1))),
    InstructionCase(Op.SHIFT_LEFT, (0x6181, 0x801E), expect_all(expect_v(0, 0x02), expect_v(0xF, 1))),
    InstructionCase(Op.SKIP_NE_REG, (0x6001, 0x6102, 0x9010), expect_pc(0x208)),
    InstructionCase(Op.SET_INDEX, (0xA123,), expect_i(0x123)),
    InstructionCase(Op.JUMP_OFFSET, (0x6004, 0xB300), expect_pc(0x304)),
    InstructionCase(Op.RANDOM, (0xC00F,), expect_v_at_most(0, 0x0F), setup=_v0_all_ones),
    InstructionCase(Op.DRAW, (0xA000, 0xD005), expect_all(expect_row(0, "####."), expect_v(0xF, 0))),
    InstructionCase(Op.SKIP_KEY_PRESSED, (0x6005, 0xE09E), expect_pc(0x206), setup=_press_five),
    InstructionCase(Op.SKIP_KEY_NOT_PRESSED, (0x6005, 0xE0A1), expect_pc(0x206)),
    InstructionCase(Op.GET_DELAY, (0xF007,), expect_v(0, 9), setup=_delay_nine),
    InstructionCase(Op.WAIT_KEY, (0xF30A,), expect_all(expect_v(3, 7), expect_pc(0x202)), setup=_release_seven),
    InstructionCase(Op.SET_DELAY, (0x6020, 0xF015), expect_delay(0x20)),
    InstructionCase(Op.SET_SOUND, (0x6003, 0xF018), expect_sound(3)),
    InstructionCase(Op.ADD_INDEX, (0xA100, 0x6010, 0xF01E), expect_i(0x110)),
    InstructionCase(Op.SPRITE_INDEX, (0x600A, 0xF029), expect_i(50)),
    InstructionCase(Op.STORE_BCD, (0xA300, 0x60FE, 0xF033), expect_mem(0x300, b"\x02\x05\x04")),
    InstructionCase(
        Op.STORE_REGS, (0xA300, 0x6011, 0x6122, 0xF155),
        expect_all(expect_mem(0x300, b"\x11\x22"), expect_i(0x302)),
    ),
    InstructionCase(
        Op.LOAD_REGS, (0xA300, 0xF165),
        expect_all(expect_v(0, 0x33), expect_v(1, 0x44), expect_i(0x302)),
        setup=_fill_block,
    ),
]


@pytest.mark.parametrize("case", INSTRUCTION_CASES, ids=lambda case: case.op.name)
def test_all_instructions_have_behavioral_tests(case: InstructionCase):
    vm = Chip8(seed=1)
    vm.apply_message(SwapRom(assemble(*case.words)))
    if case.setup:
        case.setup(vm)
    cycles = case.cycles or len(case.words)
    executed = [vm.cycle() for _ in range(cycles)]
    assert executed[-1] is case.op
    case.checker(vm)


def test_instruction_case_coverage_matches_op_table():
    covered = {case.op for case in INSTRUCTION_CASES}
    assert covered == set(Op)
