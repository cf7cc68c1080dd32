import numpy as np
import pytest

from chip8vm import instructions as ins
from chip8vm.cpu import FLAG_REGISTER, KEYPAD_SIZE, STACK_CAPACITY, Chip8
from chip8vm.errors import (
    CycleError,
    EmptyStackReturn,
    MemoryAccessError,
    ProgramTooLarge,
    SpriteMemoryOverflow,
    StackOverflow,
    UnknownInstruction,
    UnknownMachineSubroutine,
)
from chip8vm.memory import MAX_PROGRAM_SIZE, PROGRAM_OFFSET

NO_KEYS = [False] * KEYPAD_SIZE


def keys(*pressed):
    state = [False] * KEYPAD_SIZE
    for key in pressed:
        state[key] = True
    return state


def step(chip8, cycles=1, current=NO_KEYS, previous=NO_KEYS):
    for _ in range(cycles):
        chip8.cycle(current, previous)


def test_initial_state(make_chip8):
    chip8 = make_chip8(0x00E0)
    assert chip8.program_counter == PROGRAM_OFFSET
    assert chip8.index_register == 0
    assert chip8.registers.tolist() == [0] * 16
    assert chip8.stack == []
    assert chip8.stack_pointer == 0
    assert chip8.delay_timer == 0
    assert chip8.sound_timer == 0
    assert not chip8.is_sound_playing()
    assert chip8.memory.get(PROGRAM_OFFSET) == 0x00


def test_program_too_large():
    with pytest.raises(ProgramTooLarge):
        Chip8(bytes(MAX_PROGRAM_SIZE + 1))


def test_every_instruction_has_a_handler(make_chip8):
    chip8 = make_chip8()
    assert set(chip8._handlers) == set(ins.INSTRUCTION_TYPES)


def test_key_snapshots_must_have_16_entries(make_chip8):
    chip8 = make_chip8(0x6001)
    with pytest.raises(ValueError):
        chip8.cycle([False] * 15, NO_KEYS)
    with pytest.raises(ValueError):
        chip8.cycle(NO_KEYS, [False] * 17)
    assert chip8.program_counter == PROGRAM_OFFSET


# Flow control

def test_clear_screen(make_chip8):
    chip8 = make_chip8(0x00E0)
    chip8.display.set_pixel(5, 5, True)
    step(chip8)
    assert chip8.screen.lit_pixels() == 0
    assert chip8.program_counter == 0x202


def test_jump(make_chip8):
    chip8 = make_chip8(0x1208)
    step(chip8)
    assert chip8.program_counter == 0x208


def test_call_and_return_round_trip(make_chip8):
    chip8 = make_chip8(
        0x2206,  # 200: CALL 206
        0x6001,  # 202: LD V0, 01
        0x0000,  # 204
        0x00EE,  # 206: RET
    )
    step(chip8)
    assert chip8.program_counter == 0x206
    assert chip8.stack == [0x200]

    step(chip8)
    assert chip8.program_counter == 0x202
    assert chip8.stack == []

    step(chip8)
    assert chip8.registers[0] == 1
    assert chip8.program_counter == 0x204


def test_return_with_empty_stack(make_chip8):
    chip8 = make_chip8(0x00EE)
    with pytest.raises(EmptyStackReturn):
        step(chip8)
    assert chip8.program_counter == PROGRAM_OFFSET
    assert chip8.stack == []
    assert chip8.stats['instructions_executed'] == 0


def test_call_stack_overflow(make_chip8):
    chip8 = make_chip8(0x2200)  # calls itself forever
    step(chip8, cycles=STACK_CAPACITY)
    assert chip8.stack_pointer == STACK_CAPACITY

    with pytest.raises(StackOverflow) as excinfo:
        step(chip8)
    assert excinfo.value.depth == STACK_CAPACITY
    assert chip8.stack_pointer == STACK_CAPACITY
    assert chip8.program_counter == 0x200


def test_jump_add_uses_v0(make_chip8):
    chip8 = make_chip8(0xB300)
    chip8.registers[0] = 4
    chip8.registers[1] = 8
    step(chip8)
    assert chip8.program_counter == 0x304


@pytest.mark.parametrize("nnn", [0x000, 0x123, 0x0E1, 0xFFF])
def test_machine_subroutine_always_fails(make_chip8, nnn):
    chip8 = make_chip8(nnn)
    with pytest.raises(UnknownMachineSubroutine) as excinfo:
        step(chip8)
    assert excinfo.value.nnn == nnn
    assert chip8.program_counter == PROGRAM_OFFSET


def test_unknown_instruction_leaves_state_alone(make_chip8):
    chip8 = make_chip8(0x5121)
    chip8.registers[1] = 7
    with pytest.raises(UnknownInstruction) as excinfo:
        step(chip8)
    assert isinstance(excinfo.value, CycleError)
    assert excinfo.value.word == 0x5121
    assert chip8.program_counter == PROGRAM_OFFSET
    assert chip8.registers[1] == 7


def test_fetch_past_end_of_memory(make_chip8):
    chip8 = make_chip8(0x1FFF)
    step(chip8)
    assert chip8.program_counter == 0xFFF
    with pytest.raises(MemoryAccessError):
        step(chip8)
    assert chip8.program_counter == 0xFFF


# Conditional skips

@pytest.mark.parametrize("word, vx, vy, skipped", [
    (0x3042, 0x42, 0, True),
    (0x3042, 0x41, 0, False),
    (0x4042, 0x41, 0, True),
    (0x4042, 0x42, 0, False),
    (0x5010, 9, 9, True),
    (0x5010, 9, 8, False),
    (0x9010, 9, 8, True),
    (0x9010, 9, 9, False),
])
def test_skips(make_chip8, word, vx, vy, skipped):
    chip8 = make_chip8(word)
    chip8.registers[0] = vx
    chip8.registers[1] = vy
    step(chip8)
    assert chip8.program_counter == (0x204 if skipped else 0x202)


def test_skip_if_key(make_chip8):
    chip8 = make_chip8(0xE09E)
    chip8.registers[0] = 0xA
    step(chip8, current=keys(0xA))
    assert chip8.program_counter == 0x204

    chip8 = make_chip8(0xE09E)
    chip8.registers[0] = 0xA
    step(chip8, current=keys(0xB))
    assert chip8.program_counter == 0x202


def test_skip_if_not_key(make_chip8):
    chip8 = make_chip8(0xE0A1)
    chip8.registers[0] = 3
    step(chip8)
    assert chip8.program_counter == 0x204

    chip8 = make_chip8(0xE0A1)
    chip8.registers[0] = 3
    step(chip8, current=keys(3))
    assert chip8.program_counter == 0x202


def test_key_index_uses_low_nibble(make_chip8):
    chip8 = make_chip8(0xE09E)
    chip8.registers[0] = 0x15
    step(chip8, current=keys(5))
    assert chip8.program_counter == 0x204


# Register operations

def test_load_and_add_value(make_chip8):
    chip8 = make_chip8(0x6F05, 0x60FF, 0x7001)
    step(chip8, cycles=3)
    assert chip8.registers[0] == 0x00
    # 7XNN never touches the flag
    assert chip8.registers[FLAG_REGISTER] == 5


@pytest.mark.parametrize("word, expected", [
    (0x8010, 0b0101),
    (0x8011, 0b1101),
    (0x8012, 0b0100),
    (0x8013, 0b1001),
])
def test_logic_ops(make_chip8, word, expected):
    chip8 = make_chip8(word)
    chip8.registers[0] = 0b1100
    chip8.registers[1] = 0b0101
    chip8.registers[FLAG_REGISTER] = 7
    step(chip8)
    assert chip8.registers[0] == expected
    assert chip8.registers[1] == 0b0101
    assert chip8.registers[FLAG_REGISTER] == 7


@pytest.mark.parametrize("vx, vy, result, flag", [
    (0xFF, 0x01, 0x00, 1),
    (0x01, 0x01, 0x02, 0),
    (0x80, 0x80, 0x00, 1),
    (0xFE, 0x01, 0xFF, 0),
])
def test_add_register_carry(make_chip8, vx, vy, result, flag):
    chip8 = make_chip8(0x8124)
    chip8.registers[1] = vx
    chip8.registers[2] = vy
    step(chip8)
    assert chip8.registers[1] == result
    assert chip8.registers[FLAG_REGISTER] == flag


@pytest.mark.parametrize("vx, vy, result, flag", [
    (0x01, 0x02, 0xFF, 0),  # borrow
    (0x02, 0x01, 0x01, 1),  # no borrow
    (0x05, 0x05, 0x00, 1),
])
def test_sub_register_xy_borrow(make_chip8, vx, vy, result, flag):
    chip8 = make_chip8(0x8125)
    chip8.registers[1] = vx
    chip8.registers[2] = vy
    step(chip8)
    assert chip8.registers[1] == result
    assert chip8.registers[FLAG_REGISTER] == flag


@pytest.mark.parametrize("vx, vy, result, flag", [
    (0x01, 0x02, 0x01, 1),
    (0x02, 0x01, 0xFF, 0),
])
def test_sub_register_yx_borrow(make_chip8, vx, vy, result, flag):
    chip8 = make_chip8(0x8127)
    chip8.registers[1] = vx
    chip8.registers[2] = vy
    step(chip8)
    assert chip8.registers[1] == result
    assert chip8.registers[2] == vy
    assert chip8.registers[FLAG_REGISTER] == flag


def test_shift_right_reads_vy(make_chip8):
    chip8 = make_chip8(0x8126)
    chip8.registers[1] = 0xF0
    chip8.registers[2] = 0b00000011
    step(chip8)
    assert chip8.registers[1] == 0b00000001
    assert chip8.registers[FLAG_REGISTER] == 1
    assert chip8.registers[2] == 0b00000011


def test_shift_left_reads_vy(make_chip8):
    chip8 = make_chip8(0x812E, 0x812E)
    chip8.registers[2] = 0b10000001
    step(chip8)
    assert chip8.registers[1] == 0b00000010
    assert chip8.registers[FLAG_REGISTER] == 1
    assert chip8.registers[2] == 0b10000001

    chip8.registers[2] = 0b01000000
    step(chip8)
    assert chip8.registers[1] == 0b10000000
    assert chip8.registers[FLAG_REGISTER] == 0


def test_flag_wins_when_vf_is_the_target(make_chip8):
    chip8 = make_chip8(0x8FE4)
    chip8.registers[0xF] = 0xFF
    chip8.registers[0xE] = 0x01
    step(chip8)
    assert chip8.registers[0xF] == 1


def test_random_is_masked_and_seeded(make_chip8):
    values = []
    for _ in range(2):
        chip8 = make_chip8(*([0xC00F] * 20), seed=1234)
        seen = []
        for _ in range(20):
            step(chip8)
            seen.append(int(chip8.registers[0]))
        values.append(seen)

    assert values[0] == values[1]
    assert all(0 <= v <= 0x0F for v in values[0])
    assert len(set(values[0])) > 1


def test_random_with_zero_mask(make_chip8):
    chip8 = make_chip8(0xC000, seed=1)
    chip8.registers[0] = 9
    step(chip8)
    assert chip8.registers[0] == 0


def test_random_uses_injected_generator(make_chip8):
    expected = int(np.random.default_rng(99).integers(0, 256))
    chip8 = make_chip8(0xC0FF, rng=np.random.default_rng(99))
    step(chip8)
    assert chip8.registers[0] == expected
    assert chip8.stats['random_generations'] == 1


# Index register and memory

def test_load_and_add_to_i(make_chip8):
    chip8 = make_chip8(0xA123, 0xF01E)
    chip8.registers[0] = 0x10
    step(chip8, cycles=2)
    assert chip8.index_register == 0x133


def test_load_digit_sprite(make_chip8):
    chip8 = make_chip8(0xF029, 0xF029)
    chip8.registers[0] = 0xA
    step(chip8)
    assert chip8.index_register == 50
    assert chip8.memory.get_bytes(chip8.index_register, 5).tolist() == [0xF0, 0x90, 0xF0, 0x90, 0x90]

    chip8.registers[0] = 0x1A
    step(chip8)
    assert chip8.index_register == 50


def test_store_bcd(make_chip8):
    chip8 = make_chip8(0xA300, 0xF033)
    chip8.registers[0] = 254
    step(chip8, cycles=2)
    assert chip8.memory.get_bytes(0x300, 3).tolist() == [2, 5, 4]
    assert chip8.index_register == 0x300


def test_store_bcd_out_of_range(make_chip8):
    chip8 = make_chip8(0xAFFE, 0xF033)
    chip8.registers[0] = 123
    step(chip8)
    with pytest.raises(MemoryAccessError):
        step(chip8)
    assert chip8.memory.get(0xFFE) == 0
    assert chip8.memory.get(0xFFF) == 0
    assert chip8.program_counter == 0x202


def test_store_registers(make_chip8):
    chip8 = make_chip8(0xA300, 0xF255)
    chip8.registers[0:4] = [1, 2, 3, 4]
    step(chip8, cycles=2)
    assert chip8.memory.get_bytes(0x300, 4).tolist() == [1, 2, 3, 0]
    assert chip8.index_register == 0x303


def test_load_registers(make_chip8):
    chip8 = make_chip8(0xA208, 0xFF65, 0x0000, 0x0000, *range(0x0102, 0x1112, 0x0202))
    step(chip8, cycles=2)
    assert chip8.registers.tolist() == list(range(1, 17))
    assert chip8.index_register == 0x218


def test_load_registers_out_of_range(make_chip8):
    chip8 = make_chip8(0xAFFF, 0xF165)
    chip8.registers[0:2] = [7, 8]
    step(chip8)
    with pytest.raises(MemoryAccessError):
        step(chip8)
    assert chip8.registers[0:2].tolist() == [7, 8]
    assert chip8.index_register == 0xFFF


# Display

def test_draw_font_digit_and_collide(make_chip8):
    chip8 = make_chip8(
        0xF029,  # LD F, V0
        0xD125,  # DRW V1, V2, 5
        0xD125,
    )
    chip8.registers[1] = 4
    chip8.registers[2] = 2
    step(chip8, cycles=2)
    assert chip8.registers[FLAG_REGISTER] == 0
    assert chip8.screen.get_pixel(4, 2)
    assert chip8.screen.get_pixel(7, 6)
    assert not chip8.screen.get_pixel(5, 3)

    step(chip8)
    assert chip8.registers[FLAG_REGISTER] == 1
    assert chip8.screen.lit_pixels() == 0
    assert chip8.stats['sprite_collisions'] == 1


def test_draw_sprite_beyond_memory(make_chip8):
    chip8 = make_chip8(0xAFFF, 0xD005)
    step(chip8)
    with pytest.raises(SpriteMemoryOverflow) as excinfo:
        step(chip8)
    assert excinfo.value.index == 0xFFF
    assert excinfo.value.length == 5
    assert chip8.program_counter == 0x202


def test_draw_zero_rows_clears_flag(make_chip8):
    chip8 = make_chip8(0xD000)
    chip8.registers[FLAG_REGISTER] = 1
    step(chip8)
    assert chip8.registers[FLAG_REGISTER] == 0
    assert chip8.screen.lit_pixels() == 0


def test_screen_view_is_read_only(make_chip8):
    chip8 = make_chip8()
    with pytest.raises(ValueError):
        chip8.screen.pixels[0, 0] = True
    with pytest.raises(AttributeError):
        chip8.screen.set_pixel(0, 0, True)
    with pytest.raises(AttributeError):
        chip8.screen.draw_sprite(0, 0, [0xFF])
    with pytest.raises(AttributeError):
        chip8.screen.clear()
    assert chip8.screen.get_pixel(0, 0) is False
    assert chip8.screen.lit_pixels() == 0


# Timers and keys

def test_timer_instructions(make_chip8):
    chip8 = make_chip8(0xF015, 0xF118, 0xF207)
    chip8.registers[0] = 30
    chip8.registers[1] = 3
    step(chip8, cycles=2)
    assert chip8.delay_timer == 30
    assert chip8.sound_timer == 3
    assert chip8.is_sound_playing()

    chip8.update_timers()
    step(chip8)
    assert chip8.registers[2] == 29


def test_instructions_do_not_tick_timers(make_chip8):
    chip8 = make_chip8(0xF015, *([0x7101] * 10))
    chip8.registers[0] = 5
    step(chip8, cycles=11)
    assert chip8.delay_timer == 5


def test_timers_floor_at_zero(make_chip8):
    chip8 = make_chip8()
    chip8.delay_timer = 2
    chip8.sound_timer = 3
    assert chip8.is_sound_playing()

    chip8.update_timers()
    assert chip8.sound_timer == 2
    assert chip8.is_sound_playing()

    chip8.update_timers()
    assert chip8.sound_timer == 1
    assert not chip8.is_sound_playing()

    for _ in range(5):
        chip8.update_timers()
    assert chip8.delay_timer == 0
    assert chip8.sound_timer == 0
    assert not chip8.is_sound_playing()


def test_wait_for_key_needs_a_release(make_chip8):
    chip8 = make_chip8(0xF30A)

    # Held key: no edge, no progress
    for _ in range(5):
        step(chip8, current=keys(5), previous=keys(5))
        assert chip8.program_counter == 0x200
    # Newly pressed key is not enough either
    step(chip8, current=keys(5), previous=NO_KEYS)
    assert chip8.program_counter == 0x200
    assert chip8.registers[3] == 0

    step(chip8, current=NO_KEYS, previous=keys(5))
    assert chip8.program_counter == 0x202
    assert chip8.registers[3] == 5
    assert chip8.stats['key_wait_cycles'] == 6


def test_wait_for_key_takes_lowest_released_key(make_chip8):
    chip8 = make_chip8(0xF00A)
    step(chip8, current=keys(2), previous=keys(2, 9, 0xC))
    assert chip8.registers[0] == 9


# Instrumentation and reset

def test_stats_count_committed_cycles_only(make_chip8):
    chip8 = make_chip8(0x6001, 0x00EE)
    step(chip8)
    with pytest.raises(EmptyStackReturn):
        step(chip8)
    stats = chip8.get_stats()
    assert stats['instructions_executed'] == 1
    stats['instructions_executed'] = 99
    assert chip8.stats['instructions_executed'] == 1


def test_reset(make_chip8):
    chip8 = make_chip8(0x2206, 0x0000, 0x0000, 0xA300, 0x6005, 0xD015, seed=5)
    step(chip8, cycles=4)
    chip8.delay_timer = 10
    chip8.reset()

    assert chip8.program_counter == PROGRAM_OFFSET
    assert chip8.stack == []
    assert chip8.index_register == 0
    assert chip8.delay_timer == 0
    assert chip8.registers.tolist() == [0] * 16
    assert chip8.screen.lit_pixels() == 0
    assert chip8.memory.get(PROGRAM_OFFSET) == 0x22
    assert chip8.stats['instructions_executed'] == 0
