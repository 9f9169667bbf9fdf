"""Hexadecimal keypad latch."""

NUM_KEYS = 16
NO_KEY = 0xFF


class KeyState:
    """Press latches for keys 0-F plus the last released key."""

    def __init__(self):
        self._keys: list[bool] = [False] * NUM_KEYS
        self.last_released: int = NO_KEY

    def is_pressed(self, key: int) -> bool:
        """Keys outside 0-F are never pressed."""
        if 0 <= key < NUM_KEYS:
            return self._keys[key]
        return False

    def set_key_state(self, key: int, pressed: bool) -> None:
        self._keys[key] = pressed
        if not pressed:
            self.last_released = key

    def has_release(self) -> bool:
        return self.last_released != NO_KEY

    def reset_last_released(self) -> None:
        self.last_released = NO_KEY

    def snapshot(self) -> list[bool]:
        return list(self._keys)

    def reset(self) -> None:
        self._keys = [False] * NUM_KEYS
        self.reset_last_released()
