"""
Hue Shift Effect - Beat-synced hue rotation of existing colors
"""

from typing import List

from .base import BaseEffect, BeatTracker
from .registry import ParamSchema
from ..clock import GlobalState
from ..colors import Lamp, hsv_to_rgb, rgb_to_hsv


class HueShiftEffect(BaseEffect):
    """
    Hue shift effect - rotates the hue of whatever earlier effects produced.

    Progress is accumulated from beat_progress samples (BeatTracker handles
    the beat rollover) and wrapped at beatspan beats. Over one beatspan the
    hue moves by huerange degrees. Saturation, value and W are untouched.

    Parameters:
        - direction: 'left' adds hue, 'right' subtracts it
        - beatspan: Beats for one full huerange sweep
        - huerange: Total hue shift in degrees over the beatspan
    """

    name = "hueshift"
    display_name = "Hue Shift"
    description = "Shifts the hue of the DMX data across the lamps, synchronized with the BPM."
    tags = ("bpm_sensitive", "transparent", "color", "pattern")
    params = (
        ParamSchema("direction", "str", default="left", options=("left", "right"),
                    description="The direction to shift the hue ('left' or 'right')."),
        ParamSchema("beatspan", "float", default=1.0, min=0.001,
                    description="The number of beats for a full hue rotation."),
        ParamSchema("huerange", "float", default=360.0, min=0.0, max=360.0,
                    description="The total hue shift in degrees (0-360) over the beatspan."),
    )

    def __init__(self, direction: str = "left", beatspan: float = 1.0, huerange: float = 360.0):
        self.direction = direction
        self.beatspan = beatspan
        self.huerange = huerange
        self._beats = BeatTracker()
        self._accumulated = 0.0

    def process(
        self,
        lamps: List[Lamp],
        state: GlobalState,
        channel_mapping: str,
        channels_per_lamp: int,
    ) -> None:
        self._accumulated = (self._accumulated + self._beats.advance(state.beat_progress)) % self.beatspan
        shift = (self._accumulated / self.beatspan) * (self.huerange / 360.0)
        if self.direction == "right":
            shift = -shift

        for lamp in lamps:
            h, s, v = rgb_to_hsv(lamp.r, lamp.g, lamp.b)
            lamp.r, lamp.g, lamp.b = hsv_to_rgb((h + shift) % 1.0, s, v)
