"""
CHIP-8 error types
Everything the virtual machine can raise. Decode and execute failures both
derive from CycleError so a host can catch a failed cycle in one place.
"""


class Chip8Error(Exception):
    """Base class for every error raised by the virtual machine"""


class ProgramTooLarge(Chip8Error):
    def __init__(self, size: int, capacity: int):
        self.size = size
        self.capacity = capacity
        super().__init__(f"program is too large: {size} bytes, max {capacity}")


class ScreenAccessError(Chip8Error):
    def __init__(self, x: int, y: int):
        self.x = x
        self.y = y
        super().__init__(f"pixel coordinate ({x}, {y}) is outside the screen")


class CycleError(Chip8Error):
    """Raised by Chip8.cycle(); the machine is left as it was before the cycle"""


class DecodeError(CycleError):
    pass


class UnknownInstruction(DecodeError):
    def __init__(self, word: int):
        self.word = word
        super().__init__(f"unknown instruction: 0x{word:04X}")


class ExecuteError(CycleError):
    pass


class UnknownMachineSubroutine(ExecuteError):
    def __init__(self, nnn: int):
        self.nnn = nnn
        super().__init__(f"unknown machine code subroutine: 0x{nnn:03X}")


class EmptyStackReturn(ExecuteError):
    def __init__(self):
        super().__init__("attempted to return from a subroutine when the stack is empty")


class StackOverflow(ExecuteError):
    def __init__(self, depth: int):
        self.depth = depth
        super().__init__(f"call stack overflow: {depth} return addresses already stored")


class SpriteMemoryOverflow(ExecuteError):
    def __init__(self, index: int, length: int):
        self.index = index
        self.length = length
        super().__init__(
            f"sprite read beyond the end of memory at index 0x{index:03X} with length {length}"
        )


class MemoryAccessError(ExecuteError):
    def __init__(self, index: int, length: int = 1):
        self.index = index
        self.length = length
        super().__init__(f"memory access out of range at index 0x{index:X} with length {length}")
