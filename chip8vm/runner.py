"""Headless ROM runner for the CHIP-8 virtual machine."""

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from .errors import Chip8Error, ErrorInfo, InvalidCommand
from .hooks import Hooks
from .machine import Chip8, MachineState, Quirks, DEFAULT_IPF, FRAME_RATE
from .memory import MAX_ROM_SIZE
from .messages import (
    MAX_MESSAGES_PER_FRAME,
    QUEUE_CAPACITY,
    Resume,
    SetKeyState,
    SwapRom,
)

logger = logging.getLogger(__name__)


@dataclass
class RunOptions:
    """Options for headless execution."""
    ipf: int = DEFAULT_IPF
    frame_rate: float = FRAME_RATE
    max_messages_per_frame: int = MAX_MESSAGES_PER_FRAME
    queue_capacity: int = QUEUE_CAPACITY
    max_frames: int = 600
    realtime: bool = False
    quirks: Quirks = field(default_factory=Quirks)
    seed: Optional[int] = None
    stop_on_self_jump: bool = True


@dataclass(frozen=True)
class KeyEvent:
    """Key press or release applied at the start of a given frame."""
    frame: int
    key: int
    pressed: bool


@dataclass
class RunResult:
    """Result of a headless run."""
    status: str  # "ok" | "error"
    frames: int
    cycles: int
    final_state: dict
    display: list[str]
    error: Optional[ErrorInfo] = None

    def to_dict(self) -> dict:
        result = {
            "status": self.status,
            "frames": self.frames,
            "cycles": self.cycles,
            "final_state": self.final_state,
            "display": self.display,
        }
        if self.error:
            result["error"] = self.error.to_dict()
        return result


def _self_jump_hook(pc: int, opcode: int, draw_count: int) -> bool:
    """Stop on the 'JP self' idle loop most test ROMs end with."""
    return opcode & 0xF000 == 0x1000 and opcode & 0x0FFF == pc


def run_rom(
    rom: bytes,
    key_events: Iterable[KeyEvent] = (),
    options: Optional[RunOptions] = None,
) -> RunResult:
    """Run a ROM for up to options.max_frames frames.

    Args:
        rom: Raw program bytes, loaded at 0x200
        key_events: Scripted keypad input, applied before the matching frame
        options: Execution options

    Returns:
        RunResult with status, counters, final registers and display rows
    """
    if options is None:
        options = RunOptions()

    hooks = Hooks(decode=_self_jump_hook if options.stop_on_self_jump else None)
    machine = Chip8(
        hooks=hooks,
        ipf=options.ipf,
        quirks=options.quirks,
        seed=options.seed,
        queue_capacity=options.queue_capacity,
        max_messages_per_frame=options.max_messages_per_frame,
        frame_rate=options.frame_rate,
    )

    pending: dict[int, list[KeyEvent]] = {}
    for event in key_events:
        pending.setdefault(event.frame, []).append(event)

    error_info: Optional[ErrorInfo] = None
    frames = 0

    try:
        if len(rom) > MAX_ROM_SIZE:
            raise InvalidCommand(f"ROM is {len(rom)} bytes, limit is {MAX_ROM_SIZE}")
        # This thread is the queue consumer; input must not go through put.
        machine.process_messages()
        machine.apply_message(SwapRom(bytes(rom)))
        machine.apply_message(Resume())
        while frames < options.max_frames:
            for event in pending.pop(frames, []):
                machine.apply_message(SetKeyState(event.key, event.pressed))
            frames += machine.run(max_frames=1, realtime=options.realtime)
            if machine.state is MachineState.HALTED:
                break
    except Chip8Error as e:
        logger.warning("Run failed after %d frames: %s", frames, e.message)
        error_info = e.to_error_info()

    return RunResult(
        status="ok" if error_info is None else "error",
        frames=frames,
        cycles=machine.cycle_count,
        final_state=machine.get_registers(),
        display=machine.display.to_text(),
        error=error_info,
    )
