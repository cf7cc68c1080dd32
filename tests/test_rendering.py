import numpy as np
import pytest
from PIL import Image

from chip8vm.display import Framebuffer
from chip8vm.rendering import display_to_ascii, display_to_image, save_display_png


def small_screen():
    screen = Framebuffer()
    screen.draw_sprite(0, 0, [0b1010_0000])
    return screen


def test_ascii():
    text = display_to_ascii(small_screen().pixels)
    lines = text.split('\n')
    assert len(lines) == 32
    assert lines[0].startswith('██  ██  ')
    assert len(lines[0]) == 128
    assert lines[1].strip() == ''


def test_image_scaling_and_colours():
    img = display_to_image(small_screen().pixels, scale=4, foreground=(10, 200, 30), background=(1, 2, 3))
    assert img.size == (256, 128)
    assert img.mode == 'RGB'
    assert img.getpixel((0, 0)) == (10, 200, 30)
    assert img.getpixel((3, 3)) == (10, 200, 30)
    assert img.getpixel((4, 0)) == (1, 2, 3)
    assert img.getpixel((8, 0)) == (10, 200, 30)


def test_image_rejects_bad_scale():
    with pytest.raises(ValueError):
        display_to_image(np.zeros((32, 64), dtype=bool), scale=0)


def test_save_png(tmp_path):
    path = tmp_path / 'screen.png'
    save_display_png(small_screen().pixels, str(path), scale=2)
    with Image.open(path) as img:
        assert img.size == (128, 64)
        assert img.convert('RGB').getpixel((0, 0)) == (255, 255, 255)
        assert img.convert('RGB').getpixel((2, 0)) == (0, 0, 0)
