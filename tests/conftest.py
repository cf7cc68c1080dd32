import pytest

from chip8vm import Chip8


def assemble(*words) -> bytes:
    """Big-endian program bytes from 16-bit instruction words"""
    return b''.join(int(w).to_bytes(2, 'big') for w in words)


@pytest.fixture
def make_chip8():
    def factory(*words, **kwargs):
        return Chip8(assemble(*words), **kwargs)
    return factory


@pytest.fixture
def rom_file(tmp_path):
    def factory(*words, name='test.ch8'):
        path = tmp_path / name
        path.write_bytes(assemble(*words))
        return str(path)
    return factory
