"""
chip8vm: a CHIP-8 virtual machine.

The interpreter (Chip8) owns memory, registers, timers and the framebuffer;
the host drives it with cycle() and update_timers() and reads the screen.
"""

from .cpu import FLAG_REGISTER, STACK_CAPACITY, Chip8
from .display import DISPLAY_HEIGHT, DISPLAY_WIDTH, Framebuffer, ScreenView
from .errors import (
    Chip8Error,
    CycleError,
    DecodeError,
    EmptyStackReturn,
    ExecuteError,
    MemoryAccessError,
    ProgramTooLarge,
    ScreenAccessError,
    SpriteMemoryOverflow,
    StackOverflow,
    UnknownInstruction,
    UnknownMachineSubroutine,
)
from .instructions import decode
from .memory import MEMORY_SIZE, PROGRAM_OFFSET, Memory

__version__ = "0.1.0"
