"""
CHIP-8 disassembler
Turns ROM bytes into assembly-style listings using the same decoder as the
interpreter, so the listing shows exactly what the machine would execute.
"""

from dataclasses import dataclass
from typing import Dict, List, Tuple

from . import instructions as ins
from .errors import UnknownInstruction
from .memory import PROGRAM_OFFSET


@dataclass
class DisassembledLine:
    address: int
    word: int
    mnemonic: str
    operands: str

    def __str__(self):
        text = f"{self.mnemonic} {self.operands}".rstrip()
        return f"{self.address:03X}: {self.word:04X}  {text}"


def _xy(inst) -> str:
    return f"V{inst.vx:X}, V{inst.vy:X}"


def _x(inst) -> str:
    return f"V{inst.vx:X}"


def _x_nn(inst) -> str:
    return f"V{inst.vx:X}, #{inst.nn:02X}"


def _addr(inst) -> str:
    return f"${inst.nnn:03X}"


_FORMATS = {
    ins.MachineSubroutine: ("SYS", _addr),
    ins.Clear: ("CLS", lambda i: ""),
    ins.Return: ("RET", lambda i: ""),
    ins.Jump: ("JP", _addr),
    ins.Call: ("CALL", _addr),
    ins.SkipEqualValue: ("SE", _x_nn),
    ins.SkipNotEqualValue: ("SNE", _x_nn),
    ins.SkipEqualRegister: ("SE", _xy),
    ins.LoadValue: ("LD", _x_nn),
    ins.AddValue: ("ADD", _x_nn),
    ins.LoadRegister: ("LD", _xy),
    ins.Or: ("OR", _xy),
    ins.And: ("AND", _xy),
    ins.Xor: ("XOR", _xy),
    ins.AddRegister: ("ADD", _xy),
    ins.SubRegisterXY: ("SUB", _xy),
    ins.ShiftRight: ("SHR", _xy),
    ins.SubRegisterYX: ("SUBN", _xy),
    ins.ShiftLeft: ("SHL", _xy),
    ins.SkipNotEqualRegister: ("SNE", _xy),
    ins.LoadIntoI: ("LD", lambda i: f"I, ${i.nnn:03X}"),
    ins.JumpAdd: ("JP", lambda i: f"V0, ${i.nnn:03X}"),
    ins.LoadRandom: ("RND", _x_nn),
    ins.DrawSprite: ("DRW", lambda i: f"V{i.vx:X}, V{i.vy:X}, #{i.n:X}"),
    ins.SkipIfKey: ("SKP", _x),
    ins.SkipIfNotKey: ("SKNP", _x),
    ins.LoadDelay: ("LD", lambda i: f"V{i.vx:X}, DT"),
    ins.WaitForKey: ("LD", lambda i: f"V{i.vx:X}, K"),
    ins.SetDelay: ("LD", lambda i: f"DT, V{i.vx:X}"),
    ins.SetSound: ("LD", lambda i: f"ST, V{i.vx:X}"),
    ins.AddToI: ("ADD", lambda i: f"I, V{i.vx:X}"),
    ins.LoadDigitSprite: ("LD", lambda i: f"F, V{i.vx:X}"),
    ins.StoreBCD: ("LD", lambda i: f"B, V{i.vx:X}"),
    ins.StoreRegisters: ("LD", lambda i: f"[I], V{i.vx:X}"),
    ins.LoadRegisters: ("LD", lambda i: f"V{i.vx:X}, [I]"),
}


def disassemble_instruction(instruction: ins.Instruction) -> Tuple[str, str]:
    """(mnemonic, operands) for a decoded instruction"""
    mnemonic, operands = _FORMATS[type(instruction)]
    return mnemonic, operands(instruction)


def disassemble_word(word: int) -> Tuple[str, str]:
    """Like disassemble_instruction, but undecodable words come back as data"""
    try:
        return disassemble_instruction(ins.decode(word))
    except UnknownInstruction:
        return "DW", f"${word:04X}"


def disassemble_rom(rom_data: bytes, start_address: int = PROGRAM_OFFSET) -> List[DisassembledLine]:
    """
    Disassemble entire ROM two bytes at a time.
    A trailing odd byte is listed as a single data byte.
    """
    lines = []
    for offset in range(0, len(rom_data) - 1, 2):
        word = (rom_data[offset] << 8) | rom_data[offset + 1]
        mnemonic, operands = disassemble_word(word)
        lines.append(DisassembledLine(start_address + offset, word, mnemonic, operands))

    if len(rom_data) % 2:
        last = rom_data[-1]
        lines.append(DisassembledLine(start_address + len(rom_data) - 1, last, "DB", f"#{last:02X}"))
    return lines


def analyze_control_flow(lines: List[DisassembledLine]) -> Dict[str, list]:
    """Analyze control flow patterns (jumps, calls, skips, backward jumps)"""
    analysis = {
        'jumps': [],
        'calls': [],
        'branches': [],
        'loops': []
    }

    for line in lines:
        if line.mnemonic in ("DW", "DB"):
            continue
        inst = ins.decode(line.word)
        if isinstance(inst, ins.Jump):
            analysis['jumps'].append((line.address, inst.nnn))
            if inst.nnn <= line.address:
                analysis['loops'].append((line.address, inst.nnn))
        elif isinstance(inst, ins.Call):
            analysis['calls'].append((line.address, inst.nnn))
        elif isinstance(inst, (ins.SkipEqualValue, ins.SkipNotEqualValue, ins.SkipEqualRegister,
                               ins.SkipNotEqualRegister, ins.SkipIfKey, ins.SkipIfNotKey)):
            analysis['branches'].append(line.address)

    return analysis


def format_listing(lines: List[DisassembledLine]) -> str:
    return '\n'.join(str(line) for line in lines)
