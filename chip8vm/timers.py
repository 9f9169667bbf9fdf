"""Delay and sound countdown timers, clocked once per frame."""

from typing import Optional

from .hooks import SoundHook


class DelayTimer:
    """8-bit countdown that floors at zero."""

    def __init__(self):
        self.value = 0

    def set(self, value: int) -> None:
        self.value = value & 0xFF

    def decrement(self) -> None:
        if self.value > 0:
            self.value -= 1

    def reset(self) -> None:
        self.value = 0


class SoundTimer(DelayTimer):
    """Countdown that drives the host's tone via play/stop hooks."""

    def set(self, value: int, hook: Optional[SoundHook] = None) -> None:
        """Set the timer; a nonzero value starts the tone."""
        super().set(value)
        if self.value > 0 and hook is not None:
            hook()

    def decrement(self, hook: Optional[SoundHook] = None) -> None:
        """Count down; reaching zero stops the tone."""
        if self.value > 0:
            self.value -= 1
            if self.value == 0 and hook is not None:
                hook()

    def resume(self, hook: Optional[SoundHook] = None) -> None:
        """Restart the tone after a pause if time remains."""
        if self.value > 0 and hook is not None:
            hook()
