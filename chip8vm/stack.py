"""Fixed-depth return-address stack."""

from .errors import StackOverflow, StackUnderflow

STACK_SIZE = 16


class CallStack:
    """LIFO of return addresses with a hard capacity."""

    def __init__(self, capacity: int = STACK_SIZE):
        self.capacity = capacity
        self._entries: list[int] = []

    def push(self, addr: int) -> None:
        if len(self._entries) >= self.capacity:
            raise StackOverflow(f"Stack overflow: depth limit {self.capacity} reached")
        self._entries.append(addr)

    def pop(self) -> int:
        if not self._entries:
            raise StackUnderflow("Stack underflow: return with empty stack")
        return self._entries.pop()

    def __len__(self) -> int:
        return len(self._entries)

    def snapshot(self) -> list[int]:
        return list(self._entries)

    def reset(self) -> None:
        self._entries.clear()
