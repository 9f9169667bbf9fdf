"""CHIP-8 machine state, fetch-decode-execute cycle and frame loop."""

import logging
import random
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

from .cpu import CPU
from .display import Display
from .errors import Chip8RuntimeError, InvalidCommand
from .font import DEFAULT_FONT, FONT_SIZE
from .hooks import Hooks
from .instructions import Op, decode, execute_instruction
from .keys import KeyState, NUM_KEYS
from .memory import Memory, FONT_START, MEMORY_SIZE, ROM_START, MAX_ROM_SIZE
from .messages import (
    Custom,
    MessageQueue,
    Pause,
    Resume,
    SetIpf,
    SetKeyState,
    SetMemory,
    SwapRom,
    MAX_MESSAGES_PER_FRAME,
    QUEUE_CAPACITY,
)
from .stack import CallStack
from .timers import DelayTimer, SoundTimer
from .fps import FpsCounter

logger = logging.getLogger(__name__)

DEFAULT_IPF = 11
FRAME_RATE = 60


@dataclass(frozen=True)
class Quirks:
    """Choices among ambiguous legacy interpreter behaviors."""
    shift_uses_vy: bool = True  # 8XY6/8XYE read VY (False: read VX)
    logic_resets_vf: bool = True  # 8XY1/8XY2/8XY3 zero VF
    load_store_increments_i: bool = True  # FX55/FX65 leave I past the block


class MachineState(Enum):
    RUNNING = "running"
    PAUSED = "paused"
    HALTED = "halted"


class Chip8:
    """A CHIP-8 machine driven by a fixed-cadence frame loop.

    One thread owns the machine and calls run() (or tick()). Other threads
    interact only through the command methods, which enqueue messages, and
    the snapshot accessors, which read under the machine lock.
    """

    def __init__(
        self,
        font: bytes = DEFAULT_FONT,
        hooks: Optional[Hooks] = None,
        ipf: int = DEFAULT_IPF,
        quirks: Optional[Quirks] = None,
        seed: Optional[int] = None,
        queue_capacity: int = QUEUE_CAPACITY,
        max_messages_per_frame: int = MAX_MESSAGES_PER_FRAME,
        frame_rate: float = FRAME_RATE,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if len(font) != FONT_SIZE:
            raise ValueError(f"Font must be {FONT_SIZE} bytes, got {len(font)}")
        if ipf < 1:
            raise InvalidCommand(f"IPF must be at least 1, got {ipf}")
        if frame_rate <= 0:
            raise ValueError(f"Frame rate must be positive, got {frame_rate}")
        if queue_capacity < 1:
            raise ValueError(f"Queue capacity must be at least 1, got {queue_capacity}")

        self.font = bytes(font)
        self.hooks = hooks or Hooks()
        self.quirks = quirks or Quirks()
        self.rng = random.Random(seed)
        self.max_messages_per_frame = max_messages_per_frame
        self.frame_time = 1.0 / frame_rate
        self._clock = clock
        self._sleep = sleep

        self.memory = Memory()
        self.cpu = CPU()
        self.stack = CallStack()
        self.display = Display()
        self.keys = KeyState()
        self.delay_timer = DelayTimer()
        self.sound_timer = SoundTimer()
        self.fps_counter = FpsCounter(clock)
        self.messages = MessageQueue(queue_capacity)

        self.cycle_count = 0
        self.draw_count = 0
        self.last_error: Optional[Chip8RuntimeError] = None
        self._ipf = ipf
        self._rom = b""
        self._paused = True
        self._halted = False
        self._lock = threading.RLock()
        self._stop_event = threading.Event()

        self.memory.load(FONT_START, self.font)
        self.fps_counter.pause()
        self.messages.put(Pause())

    # ------------------------------------------------------------------ #
    # Execution
    # ------------------------------------------------------------------ #

    def cycle(self) -> Op:
        """Fetch, decode and execute one instruction.

        Returns:
            The executed instruction's Op

        Raises:
            Chip8RuntimeError: on a fatal fault, with step/addr/opcode attached
        """
        with self._lock:
            pc = self.cpu.pc
            opcode = None
            try:
                opcode = self.memory.read_word(pc)
                self.cpu.advance()
                instr = decode(opcode)
                execute_instruction(instr, self)
            except Chip8RuntimeError as e:
                e.step = self.cycle_count
                e.addr = pc
                if opcode is not None:
                    e.opcode = opcode
                raise
            self.cycle_count += 1
            return instr.op

    def tick(self) -> bool:
        """Run one frame.

        Returns:
            False once the machine is halted, True otherwise
        """
        with self._lock:
            self.process_messages()

            if self.hooks.draw is not None:
                self.hooks.draw(self.draw_count, self.fps_counter.get_fps())
            self.draw_count += 1

            if self._halted:
                return False
            if self._paused:
                return True

            self.fps_counter.inc()
            try:
                self._run_batch()
            except Chip8RuntimeError as e:
                self.last_error = e
                self._halt(
                    f"{e.__class__.__name__} at {e.addr:#05x}: {e.message}",
                    level=logging.WARNING,
                )
                raise
            if self._halted:
                return False

            self.delay_timer.decrement()
            self.sound_timer.decrement(self.hooks.stop_sound)
            self.keys.reset_last_released()
            return True

    def _run_batch(self) -> None:
        for _ in range(self._ipf):
            if self.hooks.decode is not None:
                if self.hooks.decode(self.cpu.pc, self.opcode_at_pc(), self.draw_count):
                    self._halt("decode hook requested stop")
                    return
            # At most one sprite update per rendered frame
            if self.cycle() is Op.DRAW:
                break

    def run(self, max_frames: Optional[int] = None, realtime: bool = True) -> int:
        """Tick at the target frame rate until halted or stopped.

        The remaining frame budget is slept after each tick; an overrun is not
        made up later.

        Args:
            max_frames: Stop after this many frames (None: no limit)
            realtime: Sleep between frames; False runs frames back to back

        Returns:
            Number of frames ticked
        """
        frames = 0
        while not self._stop_event.is_set():
            if max_frames is not None and frames >= max_frames:
                break
            start = self._clock()
            keep_running = self.tick()
            frames += 1
            if not keep_running:
                break
            if realtime:
                remaining = self.frame_time - (self._clock() - start)
                if remaining > 0:
                    self._sleep(remaining)

        if self._stop_event.is_set():
            self._stop_event.clear()
            with self._lock:
                self._halt("stopped by host")
        return frames

    def stop(self) -> None:
        """Ask the owning thread to halt after the current frame."""
        self._stop_event.set()

    def _halt(self, reason: str, level: int = logging.INFO) -> None:
        if not self._halted:
            logger.log(level, "Machine halted: %s", reason)
        self._halted = True

    # ------------------------------------------------------------------ #
    # Control plane
    # ------------------------------------------------------------------ #

    def process_messages(self) -> int:
        """Apply up to max_messages_per_frame queued messages in FIFO order.

        Every drained message is applied even if an earlier one raises; the
        first error is re-raised once the batch is done.
        """
        with self._lock:
            messages = self.messages.drain(self.max_messages_per_frame)
            first_error: Optional[Exception] = None
            for message in messages:
                try:
                    self.apply_message(message)
                except Exception as e:
                    logger.exception("Failed to apply %s", message.__class__.__name__)
                    if first_error is None:
                        first_error = e
            if first_error is not None:
                raise first_error
            return len(messages)

    def apply_message(self, message: Any) -> None:
        """Apply one message on the owning thread.

        Messages with out-of-range fields are logged and skipped.
        """
        with self._lock:
            problem = self._check_message(message)
            if problem is not None:
                logger.warning("Skipping %s: %s", message.__class__.__name__, problem)
                return
            if isinstance(message, Pause):
                self._pause()
            elif isinstance(message, Resume):
                self._resume()
            elif isinstance(message, SwapRom):
                self._swap_rom(message.rom)
            elif isinstance(message, SetIpf):
                self._ipf = message.ipf
            elif isinstance(message, SetMemory):
                self.memory.load(message.address, message.data)
            elif isinstance(message, SetKeyState):
                self.keys.set_key_state(message.key, message.pressed)
            elif isinstance(message, Custom):
                self._forward_custom(message.payload)
                return
            else:
                self._forward_custom(message)
                return
            logger.debug("Applied %s", message.__class__.__name__)

    def _check_message(self, message: Any) -> Optional[str]:
        if isinstance(message, SwapRom) and len(message.rom) > MAX_ROM_SIZE:
            return f"ROM is {len(message.rom)} bytes, limit is {MAX_ROM_SIZE}"
        if isinstance(message, SetIpf) and message.ipf < 1:
            return f"IPF must be at least 1, got {message.ipf}"
        if isinstance(message, SetMemory) and not 0 <= message.address < MEMORY_SIZE:
            return f"memory address out of range: {message.address:#x}"
        if isinstance(message, SetKeyState) and not 0 <= message.key < NUM_KEYS:
            return f"key must be 0-15, got {message.key}"
        return None

    def _forward_custom(self, payload: Any) -> None:
        if self.hooks.custom_message is None:
            logger.warning("Dropping custom message with no handler: %r", payload)
            return
        self.hooks.custom_message(payload)

    def _pause(self) -> None:
        if self._paused:
            return
        self._paused = True
        self.fps_counter.pause()
        if self.sound_timer.value > 0 and self.hooks.stop_sound is not None:
            self.hooks.stop_sound()

    def _resume(self) -> None:
        if not self._paused:
            return
        self._paused = False
        self.fps_counter.resume()
        self.sound_timer.resume(self.hooks.play_sound)

    def _swap_rom(self, rom: bytes) -> None:
        self.memory.clear()
        self.memory.load(FONT_START, self.font)
        self.memory.load(ROM_START, rom)
        self._rom = bytes(rom)
        self.reset()
        logger.info("Loaded ROM (%d bytes)", len(rom))

    def reset(self) -> None:
        """Reset registers, stack, display, timers and keys; clear a halt.

        Memory, IPF and hooks are left alone.
        """
        with self._lock:
            if self.sound_timer.value > 0 and self.hooks.stop_sound is not None:
                self.hooks.stop_sound()
            self.cpu.reset(ROM_START)
            self.stack.reset()
            self.display.clear()
            self.keys.reset()
            self.delay_timer.reset()
            self.sound_timer.reset()
            self.last_error = None
            self._halted = False

    # ------------------------------------------------------------------ #
    # Command surface
    # ------------------------------------------------------------------ #

    def swap_rom(self, rom: bytes, timeout: Optional[float] = None) -> None:
        if len(rom) > MAX_ROM_SIZE:
            raise InvalidCommand(f"ROM is {len(rom)} bytes, limit is {MAX_ROM_SIZE}")
        self.messages.put(SwapRom(bytes(rom)), timeout)

    def set_memory(self, address: int, data: bytes, timeout: Optional[float] = None) -> None:
        if address < 0 or address >= MEMORY_SIZE:
            raise InvalidCommand(f"Memory address out of range: {address:#x}", addr=address)
        self.messages.put(SetMemory(address, bytes(data)), timeout)

    def set_key_state(self, key: int, pressed: bool, timeout: Optional[float] = None) -> None:
        if key < 0 or key >= NUM_KEYS:
            raise InvalidCommand(f"Key must be 0-15, got {key}")
        self.messages.put(SetKeyState(key, bool(pressed)), timeout)

    def set_ipf(self, ipf: int, timeout: Optional[float] = None) -> None:
        if ipf < 1:
            raise InvalidCommand(f"IPF must be at least 1, got {ipf}")
        self.messages.put(SetIpf(ipf), timeout)

    def pause(self, timeout: Optional[float] = None) -> None:
        self.messages.put(Pause(), timeout)

    def resume(self, timeout: Optional[float] = None) -> None:
        self.messages.put(Resume(), timeout)

    def send_custom(self, payload: Any, timeout: Optional[float] = None) -> None:
        self.messages.put(Custom(payload), timeout)

    # ------------------------------------------------------------------ #
    # Snapshot accessors
    # ------------------------------------------------------------------ #

    def get_display(self) -> list[list[int]]:
        with self._lock:
            return self.display.snapshot()

    def get_display_bytes(self) -> bytes:
        with self._lock:
            return self.display.to_bytes()

    @property
    def pc(self) -> int:
        with self._lock:
            return self.cpu.pc

    def opcode_at_pc(self) -> int:
        with self._lock:
            pc = self.cpu.pc
            return (self.memory.peek(pc) << 8) | self.memory.peek(pc + 1)

    @property
    def fps(self) -> float:
        with self._lock:
            return self.fps_counter.get_fps()

    @property
    def ipf(self) -> int:
        with self._lock:
            return self._ipf

    def get_rom(self) -> bytes:
        with self._lock:
            return self._rom

    @property
    def rom_size(self) -> int:
        with self._lock:
            return len(self._rom)

    def is_paused(self) -> bool:
        with self._lock:
            return self._paused

    @property
    def state(self) -> MachineState:
        with self._lock:
            if self._halted:
                return MachineState.HALTED
            if self._paused:
                return MachineState.PAUSED
            return MachineState.RUNNING

    def get_registers(self) -> dict:
        """Get register, stack and timer state as a dictionary."""
        with self._lock:
            state = self.cpu.get_state()
            state["stack"] = self.stack.snapshot()
            state["delay_timer"] = self.delay_timer.value
            state["sound_timer"] = self.sound_timer.value
            return state
