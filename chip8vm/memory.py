"""Memory model for the CHIP-8 virtual machine."""

from typing import Iterable
from .errors import MemoryAccessError

MEMORY_SIZE = 4096
FONT_START = 0x000
ROM_START = 0x200
MAX_ROM_SIZE = MEMORY_SIZE - ROM_START


class Memory:
    """Flat byte-addressable memory."""

    def __init__(self, size: int = MEMORY_SIZE):
        self.size = size
        self._data = bytearray(size)

    def _check_bounds(self, addr: int) -> None:
        """Check if address is within valid range."""
        if addr < 0 or addr >= self.size:
            raise MemoryAccessError(f"Memory address out of range: {addr:#05x}", addr=addr)

    def read(self, addr: int) -> int:
        """Read byte from memory address."""
        self._check_bounds(addr)
        return self._data[addr]

    def write(self, addr: int, value: int) -> None:
        """Write byte to memory address, truncated to 8 bits."""
        self._check_bounds(addr)
        self._data[addr] = value & 0xFF

    def read_word(self, addr: int) -> int:
        """Read big-endian 16-bit word starting at addr."""
        self._check_bounds(addr)
        self._check_bounds(addr + 1)
        return (self._data[addr] << 8) | self._data[addr + 1]

    def peek(self, addr: int) -> int:
        """Read byte, treating addresses past the end as zero."""
        if 0 <= addr < self.size:
            return self._data[addr]
        return 0

    def poke(self, addr: int, value: int) -> None:
        """Write byte, dropping writes past the end."""
        if 0 <= addr < self.size:
            self._data[addr] = value & 0xFF

    def load(self, addr: int, data: Iterable[int]) -> int:
        """Copy bytes starting at addr, clipped to the end of memory.

        Returns:
            Number of bytes actually written
        """
        self._check_bounds(addr)
        chunk = bytes(data)[: self.size - addr]
        self._data[addr:addr + len(chunk)] = chunk
        return len(chunk)

    def clear(self, start: int = 0, end: int = MEMORY_SIZE) -> None:
        """Zero the region [start, end)."""
        end = min(end, self.size)
        self._data[start:end] = bytes(end - start)

    def snapshot(self) -> bytes:
        """Return a copy of the entire memory."""
        return bytes(self._data)
