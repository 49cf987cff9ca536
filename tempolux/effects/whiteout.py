"""
Whiteout Effect - Full white override
"""

from typing import List

from .base import BaseEffect
from ..clock import GlobalState
from ..colors import Lamp


class WhiteoutEffect(BaseEffect):
    """Whiteout effect - every lamp to full white (W only on RGBW outputs)."""

    name = "whiteout"
    display_name = "Whiteout"
    description = "Sets all lamps to full white, overriding any previous colors."
    tags = ("color_source",)

    def process(
        self,
        lamps: List[Lamp],
        state: GlobalState,
        channel_mapping: str,
        channels_per_lamp: int,
    ) -> None:
        w = 255 if self.uses_white(channel_mapping, channels_per_lamp) else 0
        for lamp in lamps:
            lamp.set(255, 255, 255, w)
