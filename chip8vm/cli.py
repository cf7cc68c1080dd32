#!/usr/bin/env python3
"""
chip8vm command line
Run a ROM headless (optionally saving the final screen) or in a window,
or print a disassembly listing.
"""

import argparse
import logging
import os
import sys

from .config import HostConfig, parse_color
from .disassembler import analyze_control_flow, disassemble_rom, format_listing
from .errors import ProgramTooLarge
from .host import Chip8Host
from .rendering import display_to_ascii, save_display_png

logger = logging.getLogger(__name__)


def load_rom_file(filename: str) -> bytes:
    """Load a ROM file"""
    with open(filename, 'rb') as f:
        return f.read()


def setup_logging(debug: bool = False, debug_file: str = None):
    """Console gets warnings (or everything with --debug); the debug file always gets everything"""
    pkg_logger = logging.getLogger('chip8vm')
    for handler in pkg_logger.handlers[:]:
        pkg_logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter('%(asctime)s %(levelname)s %(name)s: %(message)s')
    console = logging.StreamHandler()
    console.setLevel(logging.DEBUG if debug else logging.WARNING)
    console.setFormatter(formatter)
    pkg_logger.addHandler(console)

    if debug_file:
        file_handler = logging.FileHandler(debug_file, mode='w', encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        pkg_logger.addHandler(file_handler)

    pkg_logger.setLevel(logging.DEBUG if debug or debug_file else logging.WARNING)
    pkg_logger.propagate = False


def _int_auto(text: str) -> int:
    return int(text, 0)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='chip8vm', description='CHIP-8 virtual machine')
    parser.add_argument('--debug', action='store_true', help='Log every executed instruction')
    parser.add_argument('--debug-file', help='Also write the debug log to this file')
    sub = parser.add_subparsers(dest='command', required=True)

    run = sub.add_parser('run', help='Run a ROM')
    run.add_argument('rom', help='ROM file to load at 0x200')
    run.add_argument('--frames', type=int, default=600, help='Frames to run headless (60 per second)')
    run.add_argument('--cycles-per-frame', type=int, help='Instructions per frame (default 10)')
    run.add_argument('--seed', type=int, help='Seed for CXNN random numbers')
    run.add_argument('--scale', type=int, help='Pixels per CHIP-8 pixel for PNG and window output')
    run.add_argument('--foreground', type=parse_color, help='Lit pixel colour, #RRGGBB')
    run.add_argument('--background', type=parse_color, help='Unlit pixel colour, #RRGGBB')
    run.add_argument('--png', help='Save the final screen as a PNG')
    run.add_argument('--ascii', action='store_true', help='Print the final screen as text')
    run.add_argument('--stats', action='store_true', help='Print instrumentation counters')
    run.add_argument('--interactive', action='store_true', help='Open a window with keyboard input')

    disasm = sub.add_parser('disasm', help='Disassemble a ROM')
    disasm.add_argument('rom', help='ROM file')
    disasm.add_argument('--start', type=_int_auto, default=0x200, help='Load address (default 0x200)')
    disasm.add_argument('--flow', action='store_true', help='Also summarise jumps, calls and skips')
    return parser


def cmd_run(args) -> int:
    config = HostConfig().with_overrides(
        cycles_per_frame=args.cycles_per_frame,
        seed=args.seed,
        scale=args.scale,
        foreground=args.foreground,
        background=args.background,
    )
    host = Chip8Host(load_rom_file(args.rom), config)
    print(f"Loaded ROM: {args.rom} ({len(host.machine.program)} bytes)")

    if args.interactive:
        # Imported here so headless runs work without Tk installed
        from .viewer import run_interactive
        run_interactive(host, title=f"CHIP-8: {os.path.basename(args.rom)}")
    else:
        frames = host.run(args.frames)
        print(f"Ran {frames} frames, {host.machine.stats['instructions_executed']} instructions")

    if args.ascii:
        print(display_to_ascii(host.machine.screen.pixels))
    if args.png:
        save_display_png(host.machine.screen.pixels, args.png, scale=config.scale,
                         foreground=config.foreground, background=config.background)
        print(f"Screen saved to: {args.png}")
    if args.stats:
        print("CHIP-8 Emulator Statistics:")
        print("-" * 30)
        for key, value in host.machine.get_stats().items():
            print(f"{key:25s}: {value}")

    if host.crashed:
        print(f"Emulator crashed at PC=0x{host.machine.program_counter:03X}: {host.error}")
        return 1
    return 0


def cmd_disasm(args) -> int:
    lines = disassemble_rom(load_rom_file(args.rom), start_address=args.start)
    print(format_listing(lines))
    if args.flow:
        flow = analyze_control_flow(lines)
        print()
        print(f"Jumps:    {', '.join(f'{a:03X}->{t:03X}' for a, t in flow['jumps']) or '-'}")
        print(f"Calls:    {', '.join(f'{a:03X}->{t:03X}' for a, t in flow['calls']) or '-'}")
        print(f"Branches: {', '.join(f'{a:03X}' for a in flow['branches']) or '-'}")
        print(f"Loops:    {', '.join(f'{a:03X}->{t:03X}' for a, t in flow['loops']) or '-'}")
    return 0


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.debug, args.debug_file)

    try:
        if args.command == 'run':
            return cmd_run(args)
        return cmd_disasm(args)
    except FileNotFoundError:
        print(f"ROM file not found: {args.rom}")
        return 1
    except OSError as e:
        print(f"I/O error: {e}")
        return 1
    except (ProgramTooLarge, ValueError) as e:
        print(f"Error loading ROM: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
