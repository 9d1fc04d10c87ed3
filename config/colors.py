"""Cosmetic color palette for vehicles."""

from dataclasses import dataclass
from typing import Tuple

# Type alias for RGB colors
RGB = Tuple[int, int, int]


@dataclass(frozen=True)
class Colors:
    """Colors handed to vehicles at creation; consumers decide how to draw them."""

    RED: RGB = (255, 0, 0)
    GREEN: RGB = (0, 255, 0)
    BLUE: RGB = (0, 0, 255)
    YELLOW: RGB = (255, 255, 0)
    ORANGE: RGB = (255, 165, 0)
    WHITE: RGB = (255, 255, 255)
    BLACK: RGB = (0, 0, 0)
    GRAY: RGB = (136, 136, 136)

    @classmethod
    def vehicle_palette(cls) -> Tuple[RGB, ...]:
        """Palette a new vehicle's color is drawn from."""
        return (
            cls.RED,
            cls.GREEN,
            cls.BLUE,
            cls.YELLOW,
            cls.ORANGE,
            cls.WHITE,
            cls.BLACK,
            cls.GRAY,
        )