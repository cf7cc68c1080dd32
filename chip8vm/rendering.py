"""
Framebuffer output helpers: terminal text and Pillow images.
"""

import numpy as np
from PIL import Image

from .config import Color


def display_to_ascii(pixels: np.ndarray, on: str = '██', off: str = '  ') -> str:
    """One text line per display row"""
    return '\n'.join(''.join(on if pixel else off for pixel in row) for row in pixels)


def display_to_image(pixels: np.ndarray, scale: int = 8,
                     foreground: Color = (255, 255, 255),
                     background: Color = (0, 0, 0)) -> Image.Image:
    """Scaled RGB image of a (height, width) boolean pixel grid"""
    if scale <= 0:
        raise ValueError(f"scale must be positive, got {scale}")

    lit = np.asarray(pixels, dtype=bool)
    palette = np.array([background, foreground], dtype=np.uint8)
    rgb = palette[lit.astype(np.uint8)]

    # Scale up for visibility
    scaled = np.repeat(np.repeat(rgb, scale, axis=0), scale, axis=1)
    return Image.fromarray(scaled)


def save_display_png(pixels: np.ndarray, path: str, scale: int = 8,
                     foreground: Color = (255, 255, 255),
                     background: Color = (0, 0, 0)) -> str:
    img = display_to_image(pixels, scale=scale, foreground=foreground, background=background)
    img.save(path)
    return path
