"""
CHIP-8 instruction set and decoder
Each opcode shape is a small frozen dataclass carrying only its operands.
decode() turns a 16-bit big-endian word into one of them.
"""

from dataclasses import dataclass

from .errors import UnknownInstruction


class Instruction:
    """Base class for decoded instructions"""
    __slots__ = ()


@dataclass(frozen=True)
class MachineSubroutine(Instruction):
    """0NNN: call machine code at NNN (never supported)"""
    nnn: int


@dataclass(frozen=True)
class Clear(Instruction):
    """00E0"""


@dataclass(frozen=True)
class Return(Instruction):
    """00EE"""


@dataclass(frozen=True)
class Jump(Instruction):
    """1NNN"""
    nnn: int


@dataclass(frozen=True)
class Call(Instruction):
    """2NNN"""
    nnn: int


@dataclass(frozen=True)
class SkipEqualValue(Instruction):
    """3XNN: skip if VX == NN"""
    vx: int
    nn: int


@dataclass(frozen=True)
class SkipNotEqualValue(Instruction):
    """4XNN: skip if VX != NN"""
    vx: int
    nn: int


@dataclass(frozen=True)
class SkipEqualRegister(Instruction):
    """5XY0: skip if VX == VY"""
    vx: int
    vy: int


@dataclass(frozen=True)
class LoadValue(Instruction):
    """6XNN"""
    vx: int
    nn: int


@dataclass(frozen=True)
class AddValue(Instruction):
    """7XNN: VX += NN, no carry flag"""
    vx: int
    nn: int


@dataclass(frozen=True)
class LoadRegister(Instruction):
    """8XY0"""
    vx: int
    vy: int


@dataclass(frozen=True)
class Or(Instruction):
    """8XY1"""
    vx: int
    vy: int


@dataclass(frozen=True)
class And(Instruction):
    """8XY2"""
    vx: int
    vy: int


@dataclass(frozen=True)
class Xor(Instruction):
    """8XY3"""
    vx: int
    vy: int


@dataclass(frozen=True)
class AddRegister(Instruction):
    """8XY4: VF = carry"""
    vx: int
    vy: int


@dataclass(frozen=True)
class SubRegisterXY(Instruction):
    """8XY5: VX = VX - VY, VF = not borrow"""
    vx: int
    vy: int


@dataclass(frozen=True)
class ShiftRight(Instruction):
    """8XY6: VX = VY >> 1, VF = old LSB of VY"""
    vx: int
    vy: int


@dataclass(frozen=True)
class SubRegisterYX(Instruction):
    """8XY7: VX = VY - VX, VF = not borrow"""
    vx: int
    vy: int


@dataclass(frozen=True)
class ShiftLeft(Instruction):
    """8XYE: VX = VY << 1, VF = old MSB of VY"""
    vx: int
    vy: int


@dataclass(frozen=True)
class SkipNotEqualRegister(Instruction):
    """9XY0: skip if VX != VY"""
    vx: int
    vy: int


@dataclass(frozen=True)
class LoadIntoI(Instruction):
    """ANNN"""
    nnn: int


@dataclass(frozen=True)
class JumpAdd(Instruction):
    """BNNN: jump to NNN + V0"""
    nnn: int


@dataclass(frozen=True)
class LoadRandom(Instruction):
    """CXNN: VX = random byte & NN"""
    vx: int
    nn: int


@dataclass(frozen=True)
class DrawSprite(Instruction):
    """DXYN: draw N bytes from I at (VX, VY), VF = collision"""
    vx: int
    vy: int
    n: int


@dataclass(frozen=True)
class SkipIfKey(Instruction):
    """EX9E"""
    vx: int


@dataclass(frozen=True)
class SkipIfNotKey(Instruction):
    """EXA1"""
    vx: int


@dataclass(frozen=True)
class LoadDelay(Instruction):
    """FX07"""
    vx: int


@dataclass(frozen=True)
class WaitForKey(Instruction):
    """FX0A: wait for a key release, store it in VX"""
    vx: int


@dataclass(frozen=True)
class SetDelay(Instruction):
    """FX15"""
    vx: int


@dataclass(frozen=True)
class SetSound(Instruction):
    """FX18"""
    vx: int


@dataclass(frozen=True)
class AddToI(Instruction):
    """FX1E"""
    vx: int


@dataclass(frozen=True)
class LoadDigitSprite(Instruction):
    """FX29: I = address of the font sprite for digit VX"""
    vx: int


@dataclass(frozen=True)
class StoreBCD(Instruction):
    """FX33"""
    vx: int


@dataclass(frozen=True)
class StoreRegisters(Instruction):
    """FX55: store V0..VX at I, then I += X + 1"""
    vx: int


@dataclass(frozen=True)
class LoadRegisters(Instruction):
    """FX65: load V0..VX from I, then I += X + 1"""
    vx: int


INSTRUCTION_TYPES = (
    MachineSubroutine, Clear, Return, Jump, Call,
    SkipEqualValue, SkipNotEqualValue, SkipEqualRegister,
    LoadValue, AddValue,
    LoadRegister, Or, And, Xor, AddRegister, SubRegisterXY,
    ShiftRight, SubRegisterYX, ShiftLeft,
    SkipNotEqualRegister, LoadIntoI, JumpAdd, LoadRandom, DrawSprite,
    SkipIfKey, SkipIfNotKey,
    LoadDelay, WaitForKey, SetDelay, SetSound, AddToI,
    LoadDigitSprite, StoreBCD, StoreRegisters, LoadRegisters,
)

# 8XY? register operations keyed by the low nibble
_REGISTER_OPS = {
    0x0: LoadRegister,
    0x1: Or,
    0x2: And,
    0x3: Xor,
    0x4: AddRegister,
    0x5: SubRegisterXY,
    0x6: ShiftRight,
    0x7: SubRegisterYX,
    0xE: ShiftLeft,
}

# EX?? key operations keyed by the low byte
_KEY_OPS = {
    0x9E: SkipIfKey,
    0xA1: SkipIfNotKey,
}

# FX?? timer and memory operations keyed by the low byte
_MISC_OPS = {
    0x07: LoadDelay,
    0x0A: WaitForKey,
    0x15: SetDelay,
    0x18: SetSound,
    0x1E: AddToI,
    0x29: LoadDigitSprite,
    0x33: StoreBCD,
    0x55: StoreRegisters,
    0x65: LoadRegisters,
}


def decode(word: int) -> Instruction:
    """
    Decode a 16-bit instruction word.

    Raises UnknownInstruction for words that do not map to any opcode.
    A 0NNN word other than 00E0/00EE is a valid MachineSubroutine; it only
    fails once executed.
    """
    word = int(word)
    if not 0 <= word <= 0xFFFF:
        raise ValueError(f"instruction word out of range: {word}")

    opcode = (word & 0xF000) >> 12
    vx = (word & 0x0F00) >> 8
    vy = (word & 0x00F0) >> 4
    n = word & 0x000F
    nn = word & 0x00FF
    nnn = word & 0x0FFF

    if opcode == 0x0:
        if word == 0x00E0:
            return Clear()
        if word == 0x00EE:
            return Return()
        return MachineSubroutine(nnn)
    elif opcode == 0x1:
        return Jump(nnn)
    elif opcode == 0x2:
        return Call(nnn)
    elif opcode == 0x3:
        return SkipEqualValue(vx, nn)
    elif opcode == 0x4:
        return SkipNotEqualValue(vx, nn)
    elif opcode == 0x5:
        if n == 0:
            return SkipEqualRegister(vx, vy)
    elif opcode == 0x6:
        return LoadValue(vx, nn)
    elif opcode == 0x7:
        return AddValue(vx, nn)
    elif opcode == 0x8:
        op = _REGISTER_OPS.get(n)
        if op is not None:
            return op(vx, vy)
    elif opcode == 0x9:
        if n == 0:
            return SkipNotEqualRegister(vx, vy)
    elif opcode == 0xA:
        return LoadIntoI(nnn)
    elif opcode == 0xB:
        return JumpAdd(nnn)
    elif opcode == 0xC:
        return LoadRandom(vx, nn)
    elif opcode == 0xD:
        return DrawSprite(vx, vy, n)
    elif opcode == 0xE:
        op = _KEY_OPS.get(nn)
        if op is not None:
            return op(vx)
    else:
        op = _MISC_OPS.get(nn)
        if op is not None:
            return op(vx)

    raise UnknownInstruction(word)
