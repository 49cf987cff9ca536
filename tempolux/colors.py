"""
TEMPOLUX Colors - Lamp type and color utilities

Lamps carry four independent 8-bit channels (R, G, B, W).
Named colors are accepted wherever an effect takes a color argument.
"""

import colorsys
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, List, Tuple

# Type alias for an RGB triple (0-255 per channel)
RGB = Tuple[int, int, int]


@dataclass
class Lamp:
    """One addressable fixture/pixel."""
    r: int = 0
    g: int = 0
    b: int = 0
    w: int = 0

    def set(self, r: int, g: int, b: int, w: int = 0) -> None:
        self.r, self.g, self.b, self.w = r, g, b, w

    def scale(self, factor: float) -> None:
        """Multiply every channel by factor (clamped to 0-255)."""
        self.r = clamp_byte(self.r * factor)
        self.g = clamp_byte(self.g * factor)
        self.b = clamp_byte(self.b * factor)
        self.w = clamp_byte(self.w * factor)

    def as_tuple(self) -> Tuple[int, int, int, int]:
        return (self.r, self.g, self.b, self.w)


COLORS: Dict[str, RGB] = {
    # Basic Colors
    "red":          (255, 0, 0),
    "green":        (0, 255, 0),
    "blue":         (0, 0, 255),
    "white":        (255, 255, 255),
    "black":        (0, 0, 0),
    "off":          (0, 0, 0),

    # Warm Colors
    "orange":       (255, 128, 0),
    "yellow":       (255, 255, 0),
    "gold":         (255, 191, 0),
    "amber":        (255, 160, 0),
    "warm_white":   (255, 204, 153),

    # Cool Colors
    "cyan":         (0, 255, 255),
    "teal":         (0, 204, 178),
    "ice":          (178, 229, 255),
    "cool_white":   (229, 242, 255),

    # Purple/Pink Family
    "purple":       (128, 0, 255),
    "magenta":      (255, 0, 255),
    "pink":         (255, 102, 178),
    "violet":       (153, 0, 204),

    # Special
    "fire":         (255, 76, 0),
    "ocean":        (0, 102, 204),
    "matrix":       (0, 255, 76),
    "cyberpunk":    (255, 0, 153),
}


def clamp_byte(value: float) -> int:
    """Truncate a channel value into 0-255."""
    if value <= 0:
        return 0
    if value >= 255:
        return 255
    return int(value)


def parse_hex_color(value: str) -> Lamp:
    """
    Parse "RRGGBB" or "#RRGGBB" into a Lamp (W = 0).

    Raises:
        ValueError: If value is not exactly six hex digits
    """
    if not isinstance(value, str):
        raise ValueError(f"hex color must be a string, got {type(value).__name__}")
    digits = value[1:] if value.startswith("#") else value
    if len(digits) != 6 or any(c not in "0123456789abcdefABCDEF" for c in digits):
        raise ValueError(f"invalid hex color '{value}' (expected 6 hex digits)")
    return Lamp(int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16), 0)


def to_hex(lamp: Lamp) -> str:
    """Format the RGB part of a lamp as "RRGGBB"."""
    return f"{lamp.r:02X}{lamp.g:02X}{lamp.b:02X}"


@lru_cache(maxsize=128)
def _named_color(name: str) -> RGB:
    return COLORS[name]


def get_color(value: str) -> Lamp:
    """
    Look up a color by name (case-insensitive) or hex string.

    Raises:
        ValueError: If value is neither a known name nor a hex color
    """
    key = value.lower().strip() if isinstance(value, str) else value
    if key in COLORS:
        r, g, b = _named_color(key)
        return Lamp(r, g, b, 0)
    return parse_hex_color(value)


def list_colors() -> List[str]:
    """Return list of all available color names."""
    return sorted(COLORS.keys())


def hsv_to_rgb(h: float, s: float = 1.0, v: float = 1.0) -> RGB:
    """
    Convert HSV to 8-bit RGB.

    Args:
        h: Hue (0.0-1.0, wraps)
        s: Saturation (0.0-1.0)
        v: Value/brightness (0.0-1.0)
    """
    r, g, b = colorsys.hsv_to_rgb(h % 1.0, s, v)
    return (clamp_byte(r * 255), clamp_byte(g * 255), clamp_byte(b * 255))


def rgb_to_hsv(r: int, g: int, b: int) -> Tuple[float, float, float]:
    """Convert 8-bit RGB to HSV (each component 0.0-1.0)."""
    return colorsys.rgb_to_hsv(r / 255.0, g / 255.0, b / 255.0)
