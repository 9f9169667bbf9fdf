"""Instruction decoding and execution for the CHIP-8 virtual machine."""

from dataclasses import dataclass
from enum import IntEnum
from typing import TYPE_CHECKING, Callable

from .cpu import VF
from .display import SCREEN_WIDTH, SCREEN_HEIGHT
from .errors import FatalDecodeFault
from .font import GLYPH_SIZE
from .memory import FONT_START

if TYPE_CHECKING:
    from .machine import Chip8


class Op(IntEnum):
    """Canonical opcode keys, one member per instruction."""
    CLEAR_SCREEN = 0x00E0
    RETURN = 0x00EE
    JUMP = 0x1000
    CALL = 0x2000
    SKIP_EQ_IMM = 0x3000
    SKIP_NE_IMM = 0x4000
    SKIP_EQ_REG = 0x5000
    SET_IMM = 0x6000
    ADD_IMM = 0x7000
    SET_REG = 0x8000
    OR = 0x8001
    AND = 0x8002
    XOR = 0x8003
    ADD_REG = 0x8004
    SUB_XY = 0x8005
    SHIFT_RIGHT = 0x8006
    SUB_YX = 0x8007
    SHIFT_LEFT = 0x800E
    SKIP_NE_REG = 0x9000
    SET_INDEX = 0xA000
    JUMP_OFFSET = 0xB000
    RANDOM = 0xC000
    DRAW = 0xD000
    SKIP_KEY_PRESSED = 0xE09E
    SKIP_KEY_NOT_PRESSED = 0xE0A1
    GET_DELAY = 0xF007
    WAIT_KEY = 0xF00A
    SET_DELAY = 0xF015
    SET_SOUND = 0xF018
    ADD_INDEX = 0xF01E
    SPRITE_INDEX = 0xF029
    STORE_BCD = 0xF033
    STORE_REGS = 0xF055
    LOAD_REGS = 0xF065


def op_key(opcode: int) -> int:
    """Canonicalize an opcode word into its table key.

    The top nibble selects the family; families 0x8, 0xE and 0xF also
    keep the low nibble or low byte. Family 0x0 keys on the whole word.
    """
    family = opcode & 0xF000
    if family == 0x0000:
        return opcode
    if family == 0x8000:
        return opcode & 0xF00F
    if family in (0xE000, 0xF000):
        return opcode & 0xF0FF
    return family


@dataclass(frozen=True)
class Instruction:
    """Decoded instruction word with its operand fields."""
    op: Op
    opcode: int

    @property
    def x(self) -> int:
        return (self.opcode & 0x0F00) >> 8

    @property
    def y(self) -> int:
        return (self.opcode & 0x00F0) >> 4

    @property
    def n(self) -> int:
        return self.opcode & 0x000F

    @property
    def kk(self) -> int:
        return self.opcode & 0x00FF

    @property
    def nnn(self) -> int:
        return self.opcode & 0x0FFF


def decode(opcode: int) -> Instruction:
    """Decode a 16-bit word, raising FatalDecodeFault if it is not in the table."""
    key = op_key(opcode)
    try:
        op = Op(key)
    except ValueError:
        raise FatalDecodeFault(f"Unknown opcode: {opcode:04X}", opcode=opcode) from None
    return Instruction(op=op, opcode=opcode)


# Instruction executor type
InstructionExecutor = Callable[[Instruction, "Chip8"], None]


def execute_clear_screen(instr: Instruction, vm: "Chip8") -> None:
    """00E0: clear the display"""
    vm.display.clear()


def execute_return(instr: Instruction, vm: "Chip8") -> None:
    """00EE: PC := pop()"""
    vm.cpu.pc = vm.stack.pop()


def execute_jump(instr: Instruction, vm: "Chip8") -> None:
    """1NNN: PC := NNN"""
    vm.cpu.pc = instr.nnn


def execute_call(instr: Instruction, vm: "Chip8") -> None:
    """2NNN: push(PC); PC := NNN"""
    vm.stack.push(vm.cpu.pc)
    vm.cpu.pc = instr.nnn


def execute_skip_eq_imm(instr: Instruction, vm: "Chip8") -> None:
    """3XKK: skip if VX == KK"""
    if vm.cpu.v[instr.x] == instr.kk:
        vm.cpu.advance()


def execute_skip_ne_imm(instr: Instruction, vm: "Chip8") -> None:
    """4XKK: skip if VX != KK"""
    if vm.cpu.v[instr.x] != instr.kk:
        vm.cpu.advance()


def execute_skip_eq_reg(instr: Instruction, vm: "Chip8") -> None:
    """5XY0: skip if VX == VY"""
    if vm.cpu.v[instr.x] == vm.cpu.v[instr.y]:
        vm.cpu.advance()


def execute_set_imm(instr: Instruction, vm: "Chip8") -> None:
    """6XKK: VX := KK"""
    vm.cpu.set_v(instr.x, instr.kk)


def execute_add_imm(instr: Instruction, vm: "Chip8") -> None:
    """7XKK: VX := VX + KK, no carry"""
    vm.cpu.set_v(instr.x, vm.cpu.v[instr.x] + instr.kk)


def execute_set_reg(instr: Instruction, vm: "Chip8") -> None:
    """8XY0: VX := VY"""
    vm.cpu.set_v(instr.x, vm.cpu.v[instr.y])


def _logic_result(instr: Instruction, vm: "Chip8", value: int) -> None:
    vm.cpu.set_v(instr.x, value)
    if vm.quirks.logic_resets_vf:
        vm.cpu.set_flag(0)


def execute_or(instr: Instruction, vm: "Chip8") -> None:
    """8XY1: VX := VX OR VY"""
    _logic_result(instr, vm, vm.cpu.v[instr.x] | vm.cpu.v[instr.y])


def execute_and(instr: Instruction, vm: "Chip8") -> None:
    """8XY2: VX := VX AND VY"""
    _logic_result(instr, vm, vm.cpu.v[instr.x] & vm.cpu.v[instr.y])


def execute_xor(instr: Instruction, vm: "Chip8") -> None:
    """8XY3: VX := VX XOR VY"""
    _logic_result(instr, vm, vm.cpu.v[instr.x] ^ vm.cpu.v[instr.y])


def execute_add_reg(instr: Instruction, vm: "Chip8") -> None:
    """8XY4: VX := VX + VY, VF := carry"""
    total = vm.cpu.v[instr.x] + vm.cpu.v[instr.y]
    vm.cpu.set_v(instr.x, total)
    vm.cpu.set_flag(total > 0xFF)


def execute_sub_xy(instr: Instruction, vm: "Chip8") -> None:
    """8XY5: VX := VX - VY, VF := not borrow"""
    vx, vy = vm.cpu.v[instr.x], vm.cpu.v[instr.y]
    vm.cpu.set_v(instr.x, vx - vy)
    vm.cpu.set_flag(vx >= vy)


def execute_sub_yx(instr: Instruction, vm: "Chip8") -> None:
    """8XY7: VX := VY - VX, VF := not borrow"""
    vx, vy = vm.cpu.v[instr.x], vm.cpu.v[instr.y]
    vm.cpu.set_v(instr.x, vy - vx)
    vm.cpu.set_flag(vy >= vx)


def _shift_source(instr: Instruction, vm: "Chip8") -> int:
    if vm.quirks.shift_uses_vy:
        return vm.cpu.v[instr.y]
    return vm.cpu.v[instr.x]


def execute_shift_right(instr: Instruction, vm: "Chip8") -> None:
    """8XY6: VX := source >> 1, VF := bit shifted out"""
    source = _shift_source(instr, vm)
    vm.cpu.set_v(instr.x, source >> 1)
    vm.cpu.set_flag(source & 0x01)


def execute_shift_left(instr: Instruction, vm: "Chip8") -> None:
    """8XYE: VX := source << 1, VF := bit shifted out"""
    source = _shift_source(instr, vm)
    vm.cpu.set_v(instr.x, source << 1)
    vm.cpu.set_flag(source >> 7)


def execute_skip_ne_reg(instr: Instruction, vm: "Chip8") -> None:
    """9XY0: skip if VX != VY"""
    if vm.cpu.v[instr.x] != vm.cpu.v[instr.y]:
        vm.cpu.advance()


def execute_set_index(instr: Instruction, vm: "Chip8") -> None:
    """ANNN: I := NNN"""
    vm.cpu.set_i(instr.nnn)


def execute_jump_offset(instr: Instruction, vm: "Chip8") -> None:
    """BNNN: PC := NNN + V0"""
    vm.cpu.pc = instr.nnn + vm.cpu.v[0]


def execute_random(instr: Instruction, vm: "Chip8") -> None:
    """CXKK: VX := random byte AND KK"""
    vm.cpu.set_v(instr.x, vm.rng.randrange(256) & instr.kk)


def execute_draw(instr: Instruction, vm: "Chip8") -> None:
    """DXYN: XOR an N-row sprite from MEM[I] at (VX, VY), VF := collision

    The origin wraps; pixels that run off the right or bottom edge are clipped.
    """
    x = vm.cpu.v[instr.x] % SCREEN_WIDTH
    y = vm.cpu.v[instr.y] % SCREEN_HEIGHT
    vm.cpu.set_flag(0)
    sprite = bytes(vm.memory.peek(vm.cpu.i + row) for row in range(instr.n))
    if vm.display.draw_sprite(x, y, sprite):
        vm.cpu.set_flag(1)


def execute_skip_key_pressed(instr: Instruction, vm: "Chip8") -> None:
    """EX9E: skip if key VX is down"""
    if vm.keys.is_pressed(vm.cpu.v[instr.x]):
        vm.cpu.advance()


def execute_skip_key_not_pressed(instr: Instruction, vm: "Chip8") -> None:
    """EXA1: skip if key VX is up"""
    if not vm.keys.is_pressed(vm.cpu.v[instr.x]):
        vm.cpu.advance()


def execute_get_delay(instr: Instruction, vm: "Chip8") -> None:
    """FX07: VX := delay timer"""
    vm.cpu.set_v(instr.x, vm.delay_timer.value)


def execute_wait_key(instr: Instruction, vm: "Chip8") -> None:
    """FX0A: VX := last released key, or re-run this instruction"""
    if vm.keys.has_release():
        vm.cpu.set_v(instr.x, vm.keys.last_released)
    else:
        vm.cpu.rewind()


def execute_set_delay(instr: Instruction, vm: "Chip8") -> None:
    """FX15: delay timer := VX"""
    vm.delay_timer.set(vm.cpu.v[instr.x])


def execute_set_sound(instr: Instruction, vm: "Chip8") -> None:
    """FX18: sound timer := VX"""
    vm.sound_timer.set(vm.cpu.v[instr.x], vm.hooks.play_sound)


def execute_add_index(instr: Instruction, vm: "Chip8") -> None:
    """FX1E: I := I + VX"""
    vm.cpu.set_i(vm.cpu.i + vm.cpu.v[instr.x])


def execute_sprite_index(instr: Instruction, vm: "Chip8") -> None:
    """FX29: I := address of glyph for digit VX"""
    vm.cpu.set_i(FONT_START + vm.cpu.v[instr.x] * GLYPH_SIZE)


def execute_store_bcd(instr: Instruction, vm: "Chip8") -> None:
    """FX33: MEM[I..I+2] := decimal digits of VX"""
    value = vm.cpu.v[instr.x]
    vm.memory.poke(vm.cpu.i, value // 100)
    vm.memory.poke(vm.cpu.i + 1, (value // 10) % 10)
    vm.memory.poke(vm.cpu.i + 2, value % 10)


def execute_store_regs(instr: Instruction, vm: "Chip8") -> None:
    """FX55: MEM[I..I+X] := V0..VX"""
    for offset in range(instr.x + 1):
        vm.memory.poke(vm.cpu.i + offset, vm.cpu.v[offset])
    if vm.quirks.load_store_increments_i:
        vm.cpu.set_i(vm.cpu.i + instr.x + 1)


def execute_load_regs(instr: Instruction, vm: "Chip8") -> None:
    """FX65: V0..VX := MEM[I..I+X]"""
    for offset in range(instr.x + 1):
        vm.cpu.set_v(offset, vm.memory.peek(vm.cpu.i + offset))
    if vm.quirks.load_store_increments_i:
        vm.cpu.set_i(vm.cpu.i + instr.x + 1)


# Instruction dispatch table
INSTRUCTION_EXECUTORS: dict[Op, InstructionExecutor] = {
    Op.CLEAR_SCREEN: execute_clear_screen,
    Op.RETURN: execute_return,
    Op.JUMP: execute_jump,
    Op.CALL: execute_call,
    Op.SKIP_EQ_IMM: execute_skip_eq_imm,
    Op.SKIP_NE_IMM: execute_skip_ne_imm,
    Op.SKIP_EQ_REG: execute_skip_eq_reg,
    Op.SET_IMM: execute_set_imm,
    Op.ADD_IMM: execute_add_imm,
    Op.SET_REG: execute_set_reg,
    Op.OR: execute_or,
    Op.AND: execute_and,
    Op.XOR: execute_xor,
    Op.ADD_REG: execute_add_reg,
    Op.SUB_XY: execute_sub_xy,
    Op.SHIFT_RIGHT: execute_shift_right,
    Op.SUB_YX: execute_sub_yx,
    Op.SHIFT_LEFT: execute_shift_left,
    Op.SKIP_NE_REG: execute_skip_ne_reg,
    Op.SET_INDEX: execute_set_index,
    Op.JUMP_OFFSET: execute_jump_offset,
    Op.RANDOM: execute_random,
    Op.DRAW: execute_draw,
    Op.SKIP_KEY_PRESSED: execute_skip_key_pressed,
    Op.SKIP_KEY_NOT_PRESSED: execute_skip_key_not_pressed,
    Op.GET_DELAY: execute_get_delay,
    Op.WAIT_KEY: execute_wait_key,
    Op.SET_DELAY: execute_set_delay,
    Op.SET_SOUND: execute_set_sound,
    Op.ADD_INDEX: execute_add_index,
    Op.SPRITE_INDEX: execute_sprite_index,
    Op.STORE_BCD: execute_store_bcd,
    Op.STORE_REGS: execute_store_regs,
    Op.LOAD_REGS: execute_load_regs,
}


def execute_instruction(instr: Instruction, vm: "Chip8") -> None:
    """Execute a single decoded instruction against the machine."""
    executor = INSTRUCTION_EXECUTORS.get(instr.op)
    if executor is None:
        raise FatalDecodeFault(f"No executor for opcode: {instr.opcode:04X}", opcode=instr.opcode)
    executor(instr, vm)
