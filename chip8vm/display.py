"""
CHIP-8 framebuffer
64x32 monochrome pixels, row-major, drawn with XOR sprites.
"""

import numpy as np
from typing import Sequence, Union

from .errors import ScreenAccessError

DISPLAY_WIDTH = 64
DISPLAY_HEIGHT = 32
DISPLAY_PIXELS = DISPLAY_WIDTH * DISPLAY_HEIGHT
SPRITE_WIDTH = 8


class Framebuffer:
    """
    Monochrome pixel grid indexed as [y, x].

    Sprites wrap only at their anchor: the top-left corner is taken modulo
    the screen size, then any part of the sprite that runs off the right or
    bottom edge is clipped.
    """

    def __init__(self):
        self._pixels = np.zeros((DISPLAY_HEIGHT, DISPLAY_WIDTH), dtype=bool)

    def clear(self):
        self._pixels.fill(False)

    def draw_sprite(self, x: int, y: int, rows: Union[bytes, Sequence[int], np.ndarray]) -> bool:
        """
        XOR an 8xN sprite onto the screen, MSB leftmost.
        Returns True if any lit pixel was switched off.
        """
        if isinstance(rows, (bytes, bytearray, memoryview)):
            rows = np.frombuffer(rows, dtype=np.uint8)
        else:
            rows = np.asarray(rows, dtype=np.uint8).reshape(-1)
        if rows.size == 0:
            return False

        x = int(x) % DISPLAY_WIDTH
        y = int(y) % DISPLAY_HEIGHT
        width = min(SPRITE_WIDTH, DISPLAY_WIDTH - x)
        height = min(rows.size, DISPLAY_HEIGHT - y)

        # (rows, 8) bool grid, bit 7 first
        sprite = np.unpackbits(rows[:height, np.newaxis], axis=1)[:, :width].astype(bool)
        area = self._pixels[y:y + height, x:x + width]

        collision = bool(np.any(area & sprite))
        area ^= sprite
        return collision

    def _check(self, x: int, y: int):
        if not (0 <= x < DISPLAY_WIDTH and 0 <= y < DISPLAY_HEIGHT):
            raise ScreenAccessError(x, y)

    def get_pixel(self, x: int, y: int) -> bool:
        self._check(x, y)
        return bool(self._pixels[y, x])

    def set_pixel(self, x: int, y: int, value: bool):
        self._check(x, y)
        self._pixels[y, x] = bool(value)

    @property
    def pixels(self) -> np.ndarray:
        """Read-only view of the pixel grid, shape (32, 64)"""
        view = self._pixels.view()
        view.flags.writeable = False
        return view

    def to_array(self) -> np.ndarray:
        return self._pixels.copy()

    def lit_pixels(self) -> int:
        return int(np.count_nonzero(self._pixels))


class ScreenView:
    """
    What the host gets to see of a Framebuffer: reads only.
    Drawing stays with the interpreter.
    """

    __slots__ = ('_framebuffer',)

    def __init__(self, framebuffer: Framebuffer):
        self._framebuffer = framebuffer

    def get_pixel(self, x: int, y: int) -> bool:
        return self._framebuffer.get_pixel(x, y)

    @property
    def pixels(self) -> np.ndarray:
        return self._framebuffer.pixels

    def to_array(self) -> np.ndarray:
        return self._framebuffer.to_array()

    def lit_pixels(self) -> int:
        return self._framebuffer.lit_pixels()
