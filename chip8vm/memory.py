"""
CHIP-8 memory
4 KB of RAM with the hex digit font at 0x000 and the program at 0x200.
"""

import numpy as np
from typing import Union

from .errors import MemoryAccessError, ProgramTooLarge

MEMORY_SIZE = 4096
FONT_OFFSET = 0x000
PROGRAM_OFFSET = 0x200
FONT_SPRITE_SIZE = 5

# CHIP-8 Font set (hexadecimal digits 0-F)
FONT_SPRITES = np.array([
    0xF0, 0x90, 0x90, 0x90, 0xF0,  # 0
    0x20, 0x60, 0x20, 0x20, 0x70,  # 1
    0xF0, 0x10, 0xF0, 0x80, 0xF0,  # 2
    0xF0, 0x10, 0xF0, 0x10, 0xF0,  # 3
    0x90, 0x90, 0xF0, 0x10, 0x10,  # 4
    0xF0, 0x80, 0xF0, 0x10, 0xF0,  # 5
    0xF0, 0x80, 0xF0, 0x90, 0xF0,  # 6
    0xF0, 0x10, 0x20, 0x40, 0x40,  # 7
    0xF0, 0x90, 0xF0, 0x90, 0xF0,  # 8
    0xF0, 0x90, 0xF0, 0x10, 0xF0,  # 9
    0xF0, 0x90, 0xF0, 0x90, 0x90,  # A
    0xE0, 0x90, 0xE0, 0x90, 0xE0,  # B
    0xF0, 0x80, 0x80, 0x80, 0xF0,  # C
    0xE0, 0x90, 0x90, 0x90, 0xE0,  # D
    0xF0, 0x80, 0xF0, 0x80, 0xF0,  # E
    0xF0, 0x80, 0xF0, 0x80, 0x80   # F
], dtype=np.uint8)

MAX_PROGRAM_SIZE = MEMORY_SIZE - PROGRAM_OFFSET


def font_address(digit: int) -> int:
    """Address of the built-in sprite for a hex digit (low nibble only)"""
    return FONT_OFFSET + (digit & 0xF) * FONT_SPRITE_SIZE


class Memory:
    """
    Fixed 4096 byte store. Every accessor is bounds checked and raises
    MemoryAccessError instead of clamping or wrapping.
    """

    def __init__(self, program: Union[bytes, bytearray, np.ndarray] = b""):
        if isinstance(program, np.ndarray):
            program = program.astype(np.uint8).tobytes()
        program = bytes(program)

        if len(program) > MAX_PROGRAM_SIZE:
            raise ProgramTooLarge(len(program), MAX_PROGRAM_SIZE)

        self._data = np.zeros(MEMORY_SIZE, dtype=np.uint8)
        self._data[FONT_OFFSET:FONT_OFFSET + len(FONT_SPRITES)] = FONT_SPRITES
        self._data[PROGRAM_OFFSET:PROGRAM_OFFSET + len(program)] = np.frombuffer(program, dtype=np.uint8)

    def __len__(self) -> int:
        return MEMORY_SIZE

    def _check(self, index: int, length: int):
        if index < 0 or length < 0 or index + length > MEMORY_SIZE:
            raise MemoryAccessError(index, length)

    def get(self, index: int) -> int:
        self._check(index, 1)
        # Plain int so callers never do arithmetic in uint8
        return int(self._data[index])

    def set(self, index: int, value: int):
        self._check(index, 1)
        self._data[index] = value & 0xFF

    def get_bytes(self, index: int, length: int) -> np.ndarray:
        """Read-only view of `length` bytes starting at `index`"""
        self._check(index, length)
        view = self._data[index:index + length]
        view.flags.writeable = False
        return view

    def set_bytes(self, index: int, values) -> None:
        values = np.asarray(values, dtype=np.int64) & 0xFF
        self._check(index, len(values))
        self._data[index:index + len(values)] = values.astype(np.uint8)

    def dump(self) -> bytes:
        return self._data.tobytes()
