"""
Dim Effects - Static and global brightness scaling
"""

from typing import List

from .base import BaseEffect
from .registry import ParamSchema
from ..clock import GlobalState
from ..colors import Lamp


class DimEffect(BaseEffect):
    """Dim effect - multiplies every channel by a fixed percentage."""

    name = "dim"
    display_name = "Dim"
    description = "Dims all lamps by a specified percentage."
    tags = ("transparent", "brightness_mask")
    params = (
        ParamSchema("percentage", "float", default=0.5, min=0.0, max=1.0,
                    description="Brightness multiplier (0.0 - 1.0)."),
    )

    def __init__(self, percentage: float = 0.5):
        self.percentage = percentage

    def process(
        self,
        lamps: List[Lamp],
        state: GlobalState,
        channel_mapping: str,
        channels_per_lamp: int,
    ) -> None:
        p = self.percentage
        for lamp in lamps:
            lamp.r = round(lamp.r * p)
            lamp.g = round(lamp.g * p)
            lamp.b = round(lamp.b * p)
            lamp.w = round(lamp.w * p)


class IntensityEffect(BaseEffect):
    """
    Master intensity - scales every channel by the global intensity (0-255).

    Usually the last effect in a chain so operators have one fader for the
    whole group.
    """

    name = "intensity"
    display_name = "Master Intensity"
    description = "Scales all lamps by the global intensity."
    tags = ("transparent", "brightness_mask")

    def process(
        self,
        lamps: List[Lamp],
        state: GlobalState,
        channel_mapping: str,
        channels_per_lamp: int,
    ) -> None:
        if state.intensity >= 255:
            return
        factor = state.intensity / 255.0
        for lamp in lamps:
            lamp.scale(factor)
