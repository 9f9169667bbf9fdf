"""Custom exceptions for the CHIP-8 virtual machine."""

from dataclasses import dataclass
from typing import Optional


@dataclass
class ErrorInfo:
    """Structured error information for API responses."""
    type: str
    message: str
    step: int
    addr: int
    opcode: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "message": self.message,
            "step": self.step,
            "addr": self.addr,
            "opcode": self.opcode,
        }


class Chip8Error(Exception):
    """Base exception for all CHIP-8 errors."""

    def __init__(
        self,
        message: str,
        step: int = 0,
        addr: int = 0,
        opcode: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        self.step = step
        self.addr = addr
        self.opcode = opcode

    def to_error_info(self) -> ErrorInfo:
        return ErrorInfo(
            type=self.__class__.__name__,
            message=self.message,
            step=self.step,
            addr=self.addr,
            opcode=self.opcode,
        )


class Chip8RuntimeError(Chip8Error):
    """Fatal error during instruction execution."""
    pass


class FatalDecodeFault(Chip8RuntimeError):
    """Opcode outside the instruction table."""
    pass


class StackOverflow(Chip8RuntimeError):
    """Call depth exceeded the stack capacity."""
    pass


class StackUnderflow(Chip8RuntimeError):
    """Return executed with an empty stack."""
    pass


class MemoryAccessError(Chip8RuntimeError):
    """Memory address out of bounds."""
    pass


class QueueSaturation(Chip8Error):
    """Command queue stayed full for the whole submission timeout."""
    pass


class InvalidCommand(Chip8Error):
    """Host command rejected before it reached the queue."""
    pass
