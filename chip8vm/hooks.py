"""Host callbacks invoked synchronously from the frame loop."""

from dataclasses import dataclass
from typing import Any, Callable, Optional

DecodeHook = Callable[[int, int, int], bool]
DrawHook = Callable[[int, float], None]
SoundHook = Callable[[], None]
CustomHook = Callable[[Any], None]


@dataclass(frozen=True)
class Hooks:
    """Callback bundle bound at construction.

    decode(pc, opcode, draw_count) runs before each instruction; a truthy
    return halts the machine. draw(draw_count, fps) runs once per frame.
    play_sound/stop_sound follow the sound timer. custom_message receives
    payloads the core does not interpret.
    """
    decode: Optional[DecodeHook] = None
    draw: Optional[DrawHook] = None
    play_sound: Optional[SoundHook] = None
    stop_sound: Optional[SoundHook] = None
    custom_message: Optional[CustomHook] = None
