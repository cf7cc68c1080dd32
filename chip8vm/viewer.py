"""
Interactive tkinter window for a Chip8Host.
Draws the framebuffer, feeds keyboard state in and ticks one frame per
timer period.
"""

import logging
import tkinter as tk
from tkinter import Canvas

from .config import HostConfig
from .display import DISPLAY_HEIGHT, DISPLAY_WIDTH
from .host import KEY_MAP, Chip8Host

logger = logging.getLogger(__name__)


def _hex(color) -> str:
    return '#%02x%02x%02x' % tuple(color)


class Chip8Window:
    def __init__(self, host: Chip8Host, title: str = "CHIP-8"):
        self.host = host
        self.config: HostConfig = host.config
        self.closing = False

        self.root = tk.Tk()
        self.root.title(title)
        self.root.resizable(False, False)

        scale = self.config.scale
        self.canvas = Canvas(self.root, width=DISPLAY_WIDTH * scale, height=DISPLAY_HEIGHT * scale,
                             bg=_hex(self.config.background), highlightthickness=0)
        self.canvas.pack()

        self.status = tk.Label(self.root, text="", font=('Courier', 9), anchor='w')
        self.status.pack(fill='x')

        self.root.bind('<KeyPress>', self._key_press)
        self.root.bind('<KeyRelease>', self._key_release)
        self.root.protocol("WM_DELETE_WINDOW", self.close)
        self.root.focus_set()

    def _key_press(self, event):
        key = event.keysym.lower()
        if key == 'escape':
            self.close()
        elif key in KEY_MAP:
            self.host.set_key(KEY_MAP[key], True)

    def _key_release(self, event):
        key = event.keysym.lower()
        if key in KEY_MAP:
            self.host.set_key(KEY_MAP[key], False)

    def close(self):
        if self.closing:
            return
        self.closing = True
        self.root.quit()
        self.root.destroy()

    def _draw(self):
        self.canvas.delete("all")
        scale = self.config.scale
        fill = _hex(self.config.foreground)
        pixels = self.host.machine.screen.pixels
        for y in range(DISPLAY_HEIGHT):
            for x in range(DISPLAY_WIDTH):
                if pixels[y, x]:
                    x1 = x * scale
                    y1 = y * scale
                    self.canvas.create_rectangle(x1, y1, x1 + scale, y1 + scale, fill=fill, outline=fill)

    def _tick(self):
        if self.closing:
            return
        try:
            self.host.run_frame()
            self._draw()
            machine = self.host.machine
            state = f"CRASHED: {self.host.error}" if self.host.crashed else (
                "BEEP" if self.host.sound_playing else "")
            self.status.config(text=f"PC: 0x{machine.program_counter:03X}  I: 0x{machine.index_register:03X}  {state}")
            self.root.after(max(1, int(self.config.frame_interval * 1000)), self._tick)
        except tk.TclError:
            # Window was destroyed mid-frame
            self.closing = True

    def run(self):
        self._tick()
        try:
            self.root.mainloop()
        finally:
            self.closing = True


def run_interactive(host: Chip8Host, title: str = "CHIP-8"):
    logger.info("Starting interactive window (%d cycles per frame)", host.config.cycles_per_frame)
    Chip8Window(host, title=title).run()
