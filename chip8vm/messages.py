"""Control-plane commands and the bounded queue that carries them."""

import queue
from dataclasses import dataclass
from typing import Any, Optional

from .errors import QueueSaturation

QUEUE_CAPACITY = 100
MAX_MESSAGES_PER_FRAME = 20


@dataclass(frozen=True)
class Pause:
    """Stop executing instructions; frames keep ticking."""


@dataclass(frozen=True)
class Resume:
    """Resume instruction execution."""


@dataclass(frozen=True)
class SwapRom:
    """Replace the program and fully reset the machine."""
    rom: bytes


@dataclass(frozen=True)
class SetIpf:
    """Change the instructions-per-frame budget."""
    ipf: int


@dataclass(frozen=True)
class SetMemory:
    """Copy bytes into memory starting at address."""
    address: int
    data: bytes


@dataclass(frozen=True)
class SetKeyState:
    """Press or release one keypad key."""
    key: int
    pressed: bool


@dataclass(frozen=True)
class Custom:
    """Opaque host command forwarded to the custom_message hook."""
    payload: Any


class MessageQueue:
    """Bounded FIFO; many producers, one consumer (the frame loop)."""

    def __init__(self, capacity: int = QUEUE_CAPACITY):
        self.capacity = capacity
        self._queue: "queue.Queue[Any]" = queue.Queue(maxsize=capacity)

    def put(self, message: Any, timeout: Optional[float] = None) -> None:
        """Enqueue a message, blocking while the queue is full.

        Raises:
            QueueSaturation: if timeout elapses before space frees up
        """
        try:
            self._queue.put(message, block=True, timeout=timeout)
        except queue.Full:
            raise QueueSaturation(
                f"Command queue full ({self.capacity} pending) after {timeout}s"
            ) from None

    def drain(self, limit: int = MAX_MESSAGES_PER_FRAME) -> list[Any]:
        """Remove and return up to limit messages without blocking."""
        messages = []
        while len(messages) < limit:
            try:
                messages.append(self._queue.get_nowait())
            except queue.Empty:
                break
        return messages

    def __len__(self) -> int:
        return self._queue.qsize()
