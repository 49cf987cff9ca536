"""
Gradient Effect - Palette gradient across the strip
"""

from typing import List

from .base import BaseEffect
from ..clock import GlobalState
from ..colors import Lamp, hsv_to_rgb, rgb_to_hsv


class GradientEffect(BaseEffect):
    """
    Gradient effect - smooth HSV blend from color1 (first lamp) to color2 (last lamp).

    Hue is interpolated along the shortest path around the color wheel.
    W is always 0.
    """

    name = "gradient"
    display_name = "Gradient"
    description = ("Creates a smooth color gradient across the lamps, "
                   "interpolating between global Color1 and Color2.")
    tags = ("color_source", "pattern")

    def process(
        self,
        lamps: List[Lamp],
        state: GlobalState,
        channel_mapping: str,
        channels_per_lamp: int,
    ) -> None:
        count = len(lamps)
        if count == 0:
            return

        c1, c2 = state.color1, state.color2
        h1, s1, v1 = rgb_to_hsv(c1.r, c1.g, c1.b)
        h2, s2, v2 = rgb_to_hsv(c2.r, c2.g, c2.b)

        # Shortest path around the color wheel
        if abs(h1 - h2) > 0.5:
            if h1 > h2:
                h2 += 1.0
            else:
                h1 += 1.0

        for i, lamp in enumerate(lamps):
            factor = i / (count - 1) if count > 1 else 0.0
            h = h1 * (1 - factor) + h2 * factor
            s = s1 * (1 - factor) + s2 * factor
            v = v1 * (1 - factor) + v2 * factor
            r, g, b = hsv_to_rgb(h, s, v)
            lamp.set(r, g, b, 0)
