"""
CHIP-8 interpreter
Registers, stack, timers and the fetch-decode-execute cycle. The host owns
timing and input: it calls cycle() as often as it likes, update_timers() at
60 Hz, and reads the framebuffer between cycles.
"""

import logging
import numpy as np
from typing import Dict, Optional, Sequence

from . import instructions as ins
from .display import Framebuffer, ScreenView
from .errors import (
    EmptyStackReturn,
    MemoryAccessError,
    SpriteMemoryOverflow,
    StackOverflow,
    UnknownMachineSubroutine,
)
from .memory import MEMORY_SIZE, PROGRAM_OFFSET, Memory, font_address

logger = logging.getLogger(__name__)

REGISTER_COUNT = 16
FLAG_REGISTER = 0xF  # VF: carry, borrow, shifted-out bit and collision
STACK_CAPACITY = 12
KEYPAD_SIZE = 16
INSTRUCTION_SIZE = 2
SOUND_THRESHOLD = 2


def _key_snapshot(keys: Sequence[bool], name: str) -> tuple:
    keys = tuple(bool(k) for k in keys)
    if len(keys) != KEYPAD_SIZE:
        raise ValueError(f"{name} must have {KEYPAD_SIZE} entries, got {len(keys)}")
    return keys


class Chip8:
    """
    Single CHIP-8 machine.

    Errors from cycle() are raised as CycleError subclasses. A failed cycle
    does not move the program counter, touch the stack or count towards the
    stats, so the host can inspect the machine exactly where it stopped.
    """

    def __init__(self, program: bytes = b"", seed: Optional[int] = None,
                 rng: Optional[np.random.Generator] = None):
        self.program = bytes(program)
        self.seed = seed
        self._rng_override = rng
        self.reset()

        self._handlers = {
            ins.MachineSubroutine: self._machine_subroutine,
            ins.Clear: self._clear,
            ins.Return: self._return,
            ins.Jump: self._jump,
            ins.Call: self._call,
            ins.SkipEqualValue: self._skip_equal_value,
            ins.SkipNotEqualValue: self._skip_not_equal_value,
            ins.SkipEqualRegister: self._skip_equal_register,
            ins.LoadValue: self._load_value,
            ins.AddValue: self._add_value,
            ins.LoadRegister: self._load_register,
            ins.Or: self._or,
            ins.And: self._and,
            ins.Xor: self._xor,
            ins.AddRegister: self._add_register,
            ins.SubRegisterXY: self._sub_register_xy,
            ins.ShiftRight: self._shift_right,
            ins.SubRegisterYX: self._sub_register_yx,
            ins.ShiftLeft: self._shift_left,
            ins.SkipNotEqualRegister: self._skip_not_equal_register,
            ins.LoadIntoI: self._load_into_i,
            ins.JumpAdd: self._jump_add,
            ins.LoadRandom: self._load_random,
            ins.DrawSprite: self._draw_sprite,
            ins.SkipIfKey: self._skip_if_key,
            ins.SkipIfNotKey: self._skip_if_not_key,
            ins.LoadDelay: self._load_delay,
            ins.WaitForKey: self._wait_for_key,
            ins.SetDelay: self._set_delay,
            ins.SetSound: self._set_sound,
            ins.AddToI: self._add_to_i,
            ins.LoadDigitSprite: self._load_digit_sprite,
            ins.StoreBCD: self._store_bcd,
            ins.StoreRegisters: self._store_registers,
            ins.LoadRegisters: self._load_registers,
        }

    def reset(self):
        """Reset the machine to its power-on state with the same program"""
        self.memory = Memory(self.program)
        self.display = Framebuffer()
        self._screen_view = ScreenView(self.display)
        self.registers = np.zeros(REGISTER_COUNT, dtype=np.uint8)
        self.index_register = 0
        self.program_counter = PROGRAM_OFFSET
        self.stack = []
        self.delay_timer = 0
        self.sound_timer = 0
        if self._rng_override is not None:
            self.rng = self._rng_override
        else:
            self.rng = np.random.default_rng(self.seed)

        self._keys = (False,) * KEYPAD_SIZE
        self._previous_keys = (False,) * KEYPAD_SIZE

        # Instrumentation
        self.stats = {
            'instructions_executed': 0,
            'display_clears': 0,
            'display_writes': 0,
            'sprite_collisions': 0,
            'memory_reads': 0,
            'memory_writes': 0,
            'timer_sets': 0,
            'key_wait_cycles': 0,
            'jumps_taken': 0,
            'subroutine_calls': 0,
            'returns': 0,
            'random_generations': 0,
            'timer_ticks': 0,
        }

    @property
    def stack_pointer(self) -> int:
        return len(self.stack)

    @property
    def screen(self) -> ScreenView:
        """Read-only view of the framebuffer for the host"""
        return self._screen_view

    def cycle(self, current_keys: Sequence[bool], previous_keys: Sequence[bool]):
        """
        Fetch, decode and execute one instruction.

        `current_keys` and `previous_keys` are the 16-key pad now and one
        host frame ago; FX0A needs both to spot a key being released.
        """
        keys = _key_snapshot(current_keys, "current_keys")
        previous = _key_snapshot(previous_keys, "previous_keys")

        pc = self.program_counter
        word = self.fetch()
        instruction = ins.decode(word)

        logger.debug("Executing: 0x%04X at PC=0x%03X -> %s", word, pc, instruction)

        self._keys = keys
        self._previous_keys = previous
        next_pc = self._handlers[type(instruction)](instruction)

        self.program_counter = next_pc
        self.stats['instructions_executed'] += 1

    def fetch(self) -> int:
        """Big-endian instruction word at the program counter"""
        pc = self.program_counter
        if pc < 0 or pc + INSTRUCTION_SIZE > MEMORY_SIZE:
            raise MemoryAccessError(pc, INSTRUCTION_SIZE)
        return (self.memory.get(pc) << 8) | self.memory.get(pc + 1)

    def update_timers(self):
        """Tick both timers once; call at 60 Hz regardless of cycle rate"""
        if self.delay_timer > 0:
            self.delay_timer -= 1
        if self.sound_timer > 0:
            self.sound_timer -= 1
        self.stats['timer_ticks'] += 1

    def is_sound_playing(self) -> bool:
        return self.sound_timer >= SOUND_THRESHOLD

    def get_stats(self) -> Dict[str, int]:
        return self.stats.copy()

    # Helpers

    def _v(self, index: int) -> int:
        return int(self.registers[index])

    def _next(self) -> int:
        return self.program_counter + INSTRUCTION_SIZE

    def _skip_if(self, condition: bool) -> int:
        if condition:
            return self.program_counter + 2 * INSTRUCTION_SIZE
        return self._next()

    def _set_with_flag(self, vx: int, value: int, flag: int) -> int:
        # Flag written last so it wins when VX is VF
        self.registers[vx] = value & 0xFF
        self.registers[FLAG_REGISTER] = flag
        return self._next()

    # Flow control

    def _machine_subroutine(self, inst: ins.MachineSubroutine) -> int:
        raise UnknownMachineSubroutine(inst.nnn)

    def _clear(self, inst: ins.Clear) -> int:
        self.display.clear()
        self.stats['display_clears'] += 1
        return self._next()

    def _return(self, inst: ins.Return) -> int:
        if not self.stack:
            raise EmptyStackReturn()
        return_address = self.stack.pop()
        self.stats['returns'] += 1
        # The stack holds the address of the CALL itself
        return return_address + INSTRUCTION_SIZE

    def _jump(self, inst: ins.Jump) -> int:
        self.stats['jumps_taken'] += 1
        return inst.nnn

    def _call(self, inst: ins.Call) -> int:
        if len(self.stack) >= STACK_CAPACITY:
            raise StackOverflow(len(self.stack))
        self.stack.append(self.program_counter)
        self.stats['subroutine_calls'] += 1
        return inst.nnn

    def _jump_add(self, inst: ins.JumpAdd) -> int:
        self.stats['jumps_taken'] += 1
        return inst.nnn + self._v(0)

    # Conditional skips

    def _skip_equal_value(self, inst: ins.SkipEqualValue) -> int:
        return self._skip_if(self._v(inst.vx) == inst.nn)

    def _skip_not_equal_value(self, inst: ins.SkipNotEqualValue) -> int:
        return self._skip_if(self._v(inst.vx) != inst.nn)

    def _skip_equal_register(self, inst: ins.SkipEqualRegister) -> int:
        return self._skip_if(self._v(inst.vx) == self._v(inst.vy))

    def _skip_not_equal_register(self, inst: ins.SkipNotEqualRegister) -> int:
        return self._skip_if(self._v(inst.vx) != self._v(inst.vy))

    def _skip_if_key(self, inst: ins.SkipIfKey) -> int:
        return self._skip_if(self._keys[self._v(inst.vx) & 0xF])

    def _skip_if_not_key(self, inst: ins.SkipIfNotKey) -> int:
        return self._skip_if(not self._keys[self._v(inst.vx) & 0xF])

    # Register operations

    def _load_value(self, inst: ins.LoadValue) -> int:
        self.registers[inst.vx] = inst.nn
        return self._next()

    def _add_value(self, inst: ins.AddValue) -> int:
        self.registers[inst.vx] = (self._v(inst.vx) + inst.nn) & 0xFF
        return self._next()

    def _load_register(self, inst: ins.LoadRegister) -> int:
        self.registers[inst.vx] = self.registers[inst.vy]
        return self._next()

    def _or(self, inst: ins.Or) -> int:
        self.registers[inst.vx] = self._v(inst.vx) | self._v(inst.vy)
        return self._next()

    def _and(self, inst: ins.And) -> int:
        self.registers[inst.vx] = self._v(inst.vx) & self._v(inst.vy)
        return self._next()

    def _xor(self, inst: ins.Xor) -> int:
        self.registers[inst.vx] = self._v(inst.vx) ^ self._v(inst.vy)
        return self._next()

    def _add_register(self, inst: ins.AddRegister) -> int:
        result = self._v(inst.vx) + self._v(inst.vy)
        return self._set_with_flag(inst.vx, result, 1 if result > 0xFF else 0)

    def _sub_register_xy(self, inst: ins.SubRegisterXY) -> int:
        vx_val = self._v(inst.vx)
        vy_val = self._v(inst.vy)
        return self._set_with_flag(inst.vx, vx_val - vy_val, 1 if vx_val >= vy_val else 0)

    def _sub_register_yx(self, inst: ins.SubRegisterYX) -> int:
        vx_val = self._v(inst.vx)
        vy_val = self._v(inst.vy)
        return self._set_with_flag(inst.vx, vy_val - vx_val, 1 if vy_val >= vx_val else 0)

    def _shift_right(self, inst: ins.ShiftRight) -> int:
        # Sourced from VY, as on the COSMAC VIP interpreter
        vy_val = self._v(inst.vy)
        return self._set_with_flag(inst.vx, vy_val >> 1, vy_val & 0x1)

    def _shift_left(self, inst: ins.ShiftLeft) -> int:
        vy_val = self._v(inst.vy)
        return self._set_with_flag(inst.vx, vy_val << 1, (vy_val & 0x80) >> 7)

    def _load_random(self, inst: ins.LoadRandom) -> int:
        random_byte = int(self.rng.integers(0, 256))
        self.registers[inst.vx] = random_byte & inst.nn
        self.stats['random_generations'] += 1
        return self._next()

    # Index register and memory

    def _load_into_i(self, inst: ins.LoadIntoI) -> int:
        self.index_register = inst.nnn
        return self._next()

    def _add_to_i(self, inst: ins.AddToI) -> int:
        self.index_register = (self.index_register + self._v(inst.vx)) & 0xFFFF
        return self._next()

    def _load_digit_sprite(self, inst: ins.LoadDigitSprite) -> int:
        self.index_register = font_address(self._v(inst.vx))
        return self._next()

    def _check_range(self, length: int):
        if self.index_register + length > MEMORY_SIZE:
            raise MemoryAccessError(self.index_register, length)

    def _store_bcd(self, inst: ins.StoreBCD) -> int:
        self._check_range(3)
        value = self._v(inst.vx)
        self.memory.set_bytes(self.index_register, [value // 100, (value // 10) % 10, value % 10])
        self.stats['memory_writes'] += 3
        return self._next()

    def _store_registers(self, inst: ins.StoreRegisters) -> int:
        count = inst.vx + 1
        self._check_range(count)
        self.memory.set_bytes(self.index_register, self.registers[:count])
        self.index_register = (self.index_register + count) & 0xFFFF
        self.stats['memory_writes'] += count
        return self._next()

    def _load_registers(self, inst: ins.LoadRegisters) -> int:
        count = inst.vx + 1
        self._check_range(count)
        self.registers[:count] = self.memory.get_bytes(self.index_register, count)
        self.index_register = (self.index_register + count) & 0xFFFF
        self.stats['memory_reads'] += count
        return self._next()

    # Display

    def _draw_sprite(self, inst: ins.DrawSprite) -> int:
        if self.index_register + inst.n > MEMORY_SIZE:
            raise SpriteMemoryOverflow(self.index_register, inst.n)

        sprite = self.memory.get_bytes(self.index_register, inst.n)
        collision = self.display.draw_sprite(self._v(inst.vx), self._v(inst.vy), sprite)
        self.registers[FLAG_REGISTER] = 1 if collision else 0

        self.stats['display_writes'] += 1
        self.stats['memory_reads'] += inst.n
        if collision:
            self.stats['sprite_collisions'] += 1
        return self._next()

    # Timers and keys

    def _load_delay(self, inst: ins.LoadDelay) -> int:
        self.registers[inst.vx] = self.delay_timer
        return self._next()

    def _set_delay(self, inst: ins.SetDelay) -> int:
        self.delay_timer = self._v(inst.vx)
        self.stats['timer_sets'] += 1
        return self._next()

    def _set_sound(self, inst: ins.SetSound) -> int:
        self.sound_timer = self._v(inst.vx)
        self.stats['timer_sets'] += 1
        return self._next()

    def _wait_for_key(self, inst: ins.WaitForKey) -> int:
        # Completes on a release: down last frame, up now
        for key in range(KEYPAD_SIZE):
            if self._previous_keys[key] and not self._keys[key]:
                self.registers[inst.vx] = key
                return self._next()
        self.stats['key_wait_cycles'] += 1
        return self.program_counter
