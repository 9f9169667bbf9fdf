"""One-bit-per-pixel display buffer."""

SCREEN_WIDTH = 64
SCREEN_HEIGHT = 32


class Display:
    """64x32 monochrome plane, indexed [y][x]."""

    def __init__(self, width: int = SCREEN_WIDTH, height: int = SCREEN_HEIGHT):
        self.width = width
        self.height = height
        self._rows: list[bytearray] = [bytearray(width) for _ in range(height)]

    def clear(self) -> None:
        for row in self._rows:
            row[:] = bytes(self.width)

    def get_pixel(self, x: int, y: int) -> int:
        return self._rows[y][x]

    def flip(self, x: int, y: int) -> bool:
        """XOR one pixel; return True if it was lit before the flip.

        Pixels outside the plane are clipped and never collide.
        """
        if x < 0 or y < 0 or x >= self.width or y >= self.height:
            return False
        row = self._rows[y]
        was_set = row[x] == 1
        row[x] ^= 1
        return was_set

    def draw_sprite(self, x: int, y: int, sprite: bytes) -> bool:
        """XOR an 8-pixel-wide sprite with its top-left corner at (x, y).

        Returns:
            True if any lit pixel was turned off
        """
        collision = False
        for row, bits in enumerate(sprite):
            for col in range(8):
                if bits & (0x80 >> col):
                    if self.flip(x + col, y + row):
                        collision = True
        return collision

    def snapshot(self) -> list[list[int]]:
        """Return a copy of the plane as rows of 0/1."""
        return [list(row) for row in self._rows]

    def to_bytes(self) -> bytes:
        """Return the plane row-major, one byte per pixel."""
        return b"".join(bytes(row) for row in self._rows)

    def to_text(self, on: str = "#", off: str = ".") -> list[str]:
        """Return the plane as one string per row."""
        return ["".join(on if px else off for px in row) for row in self._rows]
