"""
Solid Effect - Static color from the global palette
"""

from typing import List

from .base import BaseEffect
from ..clock import GlobalState
from ..colors import Lamp


class SolidColorEffect(BaseEffect):
    """
    Solid color effect - every lamp takes global color1.

    The simplest effect: no animation, no parameters. Changing color1 through
    set_global shows up on the next tick.
    """

    name = "solidColor"
    display_name = "Solid Color"
    description = "Sets all lamps to global Color 1."
    tags = ("color_source",)

    def process(
        self,
        lamps: List[Lamp],
        state: GlobalState,
        channel_mapping: str,
        channels_per_lamp: int,
    ) -> None:
        color = state.color1
        w = color.w if self.uses_white(channel_mapping, channels_per_lamp) else 0
        for lamp in lamps:
            lamp.set(color.r, color.g, color.b, w)
