"""
Host configuration
How fast to run the machine and how to draw it. The interpreter itself has
no settings beyond its random seed.
"""

from dataclasses import dataclass, fields, replace
from typing import Optional, Tuple

Color = Tuple[int, int, int]


@dataclass(frozen=True)
class HostConfig:
    cycles_per_frame: int = 10   # instructions run per 60 Hz frame
    timer_hz: int = 60
    scale: int = 8               # window / PNG pixels per CHIP-8 pixel
    foreground: Color = (255, 255, 255)
    background: Color = (0, 0, 0)
    seed: Optional[int] = None   # None = fresh entropy each run

    def __post_init__(self):
        for name in ('cycles_per_frame', 'timer_hz', 'scale'):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")
        for name in ('foreground', 'background'):
            color = tuple(getattr(self, name))
            if len(color) != 3 or not all(0 <= c <= 255 for c in color):
                raise ValueError(f"{name} must be an RGB triple in 0-255, got {color}")
            object.__setattr__(self, name, color)

    @property
    def frame_interval(self) -> float:
        return 1.0 / self.timer_hz

    def with_overrides(self, **overrides) -> "HostConfig":
        """Copy with every non-None override applied (argparse leaves unset options as None)"""
        known = {f.name for f in fields(self)}
        unknown = set(overrides) - known
        if unknown:
            raise TypeError(f"unknown config options: {', '.join(sorted(unknown))}")
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


def parse_color(text: str) -> Color:
    """Parse '#RRGGBB' or 'RRGGBB'"""
    value = text.strip().lstrip('#')
    if len(value) != 6:
        raise ValueError(f"expected a colour like #RRGGBB, got {text!r}")
    return (int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16))
