"""CHIP-8 Virtual Machine Core Package."""

from .machine import Chip8, MachineState, Quirks
from .hooks import Hooks
from .runner import run_rom, KeyEvent, RunOptions, RunResult
from .errors import (
    Chip8Error,
    Chip8RuntimeError,
    FatalDecodeFault,
    StackOverflow,
    StackUnderflow,
    QueueSaturation,
    InvalidCommand,
)

__all__ = [
    "Chip8",
    "MachineState",
    "Quirks",
    "Hooks",
    "run_rom",
    "KeyEvent",
    "RunOptions",
    "RunResult",
    "Chip8Error",
    "Chip8RuntimeError",
    "FatalDecodeFault",
    "StackOverflow",
    "StackUnderflow",
    "QueueSaturation",
    "InvalidCommand",
]
