"""
Frame loop for driving a Chip8 from a host application.
Keeps the key snapshots the interpreter needs and turns raised errors into a
crashed state the caller can inspect.
"""

import logging
from typing import List, Optional

from .config import HostConfig
from .cpu import KEYPAD_SIZE, Chip8
from .errors import Chip8Error

logger = logging.getLogger(__name__)

# CHIP-8 keypad mapping to keyboard keys
# Original CHIP-8 keypad:     Modern keyboard mapping:
# 1 2 3 C                     1 2 3 4
# 4 5 6 D          =>         Q W E R
# 7 8 9 E                     A S D F
# A 0 B F                     Z X C V
KEY_MAP = {
    '1': 0x1, '2': 0x2, '3': 0x3, '4': 0xC,
    'q': 0x4, 'w': 0x5, 'e': 0x6, 'r': 0xD,
    'a': 0x7, 's': 0x8, 'd': 0x9, 'f': 0xE,
    'z': 0xA, 'x': 0x0, 'c': 0xB, 'v': 0xF
}


class Chip8Host:
    """
    Runs `cycles_per_frame` instructions and one timer tick per frame.
    Every cycle in a frame sees the same (current, previous) key pair; the
    previous snapshot moves forward once the frame is done.
    """

    def __init__(self, program: bytes, config: Optional[HostConfig] = None):
        self.config = config or HostConfig()
        self.machine = Chip8(program, seed=self.config.seed)
        self.keys: List[bool] = [False] * KEYPAD_SIZE
        self.previous_keys: List[bool] = [False] * KEYPAD_SIZE
        self.crashed = False
        self.error: Optional[Chip8Error] = None
        self.frames = 0

    def set_key(self, key: int, pressed: bool):
        """Set key state (0-F)"""
        if not 0 <= key < KEYPAD_SIZE:
            raise ValueError(f"key must be 0x0-0xF, got {key}")
        self.keys[key] = bool(pressed)

    def release_all(self):
        self.keys = [False] * KEYPAD_SIZE

    def step(self) -> bool:
        """Run a single cycle; False once the machine has crashed"""
        if self.crashed:
            return False
        try:
            self.machine.cycle(self.keys, self.previous_keys)
        except Chip8Error as e:
            self.crashed = True
            self.error = e
            logger.warning("Machine crashed at PC=0x%03X: %s", self.machine.program_counter, e)
            return False
        return True

    def run_frame(self) -> bool:
        """Run one 60 Hz frame. Returns False if the machine crashed."""
        if self.crashed:
            return False

        for _ in range(self.config.cycles_per_frame):
            if not self.step():
                return False

        self.machine.update_timers()
        self.previous_keys = list(self.keys)
        self.frames += 1
        return True

    def run(self, frames: int) -> int:
        """Run up to `frames` frames headless; returns how many completed"""
        completed = 0
        for _ in range(frames):
            if not self.run_frame():
                break
            completed += 1
        return completed

    def reset(self):
        self.machine.reset()
        self.release_all()
        self.previous_keys = [False] * KEYPAD_SIZE
        self.crashed = False
        self.error = None
        self.frames = 0

    @property
    def sound_playing(self) -> bool:
        return self.machine.is_sound_playing()
