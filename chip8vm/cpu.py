"""Register file for the CHIP-8 virtual machine."""

from .memory import ROM_START

NUM_REGISTERS = 16
VF = 0xF


class CPU:
    """General registers V0..VF, index register I and program counter."""

    def __init__(self):
        self.v: list[int] = [0] * NUM_REGISTERS
        self.i: int = 0
        self.pc: int = ROM_START

    def set_v(self, x: int, value: int) -> None:
        """Set Vx, truncated to 8 bits."""
        self.v[x] = value & 0xFF

    def set_i(self, value: int) -> None:
        """Set I, truncated to 16 bits."""
        self.i = value & 0xFFFF

    def set_flag(self, value: int) -> None:
        """Set VF to 0 or 1."""
        self.v[VF] = 1 if value else 0

    def advance(self) -> None:
        """Step PC past one instruction."""
        self.pc = (self.pc + 2) & 0xFFFF

    def rewind(self) -> None:
        """Step PC back by one instruction."""
        self.pc = (self.pc - 2) & 0xFFFF

    def get_state(self) -> dict:
        """Get current register state as dictionary."""
        return {
            "v": list(self.v),
            "i": self.i,
            "pc": self.pc,
        }

    def reset(self, start_address: int = ROM_START) -> None:
        """Reset registers to initial state."""
        self.v = [0] * NUM_REGISTERS
        self.i = 0
        self.pc = start_address
