"""
Rainbow Effect - Beat-synced moving rainbow
"""

from typing import List

from .base import BaseEffect
from ..clock import GlobalState
from ..colors import Lamp, hsv_to_rgb


class RainbowEffect(BaseEffect):
    """
    Rainbow effect - full spectrum spread across the strip, moving with the beat.

    The rainbow shifts by one full strip length per beat. The per-tick step is
    derived from the chain's own tick rate:
        step = lamp_count * bpm / (60 * tick_rate)

    W is always 0.
    """

    name = "rainbow"
    display_name = "Rainbow"
    description = "Spreads the color spectrum across the lamps and moves it one strip length per beat."
    tags = ("bpm_sensitive", "color_source", "pattern")

    # Used when the snapshot carries no tick rate
    FALLBACK_TICK_RATE = 40

    def __init__(self):
        self._counter = 0.0

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

        tick_rate = state.tick_rate or self.FALLBACK_TICK_RATE
        self._counter = (self._counter + count * state.bpm / (60.0 * tick_rate)) % count

        for i, lamp in enumerate(lamps):
            hue = ((self._counter + i) / count) % 1.0
            r, g, b = hsv_to_rgb(hue, 1.0, 1.0)
            lamp.set(r, g, b, 0)
