"""
Dark Wave Effect - Travelling sine brightness mask
"""

import math
from typing import List

from .base import BaseEffect
from .registry import ParamSchema
from ..clock import GlobalState
from ..colors import Lamp


class DarkWaveEffect(BaseEffect):
    """
    Dark wave effect - a sine-shaped shadow travelling along the strip.

    One full wave spans the strip. At the wave crest a lamp is darkened by
    percentage; in the trough it is left as is. The phase advances by speed
    radians per tick.
    """

    name = "darkwave"
    display_name = "Dark Wave"
    description = "Creates a dark wave moving along the strip over the current colors."
    tags = ("transparent", "brightness_mask", "pattern")
    params = (
        ParamSchema("percentage", "float", default=0.5, min=0.0, max=1.0,
                    description="Maximum darkening at the wave crest."),
        ParamSchema("speed", "float", default=1.0,
                    description="Phase advance per tick in radians."),
    )

    def __init__(self, percentage: float = 0.5, speed: float = 1.0):
        self.percentage = percentage
        self.speed = speed
        self._step = 0.0

    def process(
        self,
        lamps: List[Lamp],
        state: GlobalState,
        channel_mapping: str,
        channels_per_lamp: int,
    ) -> None:
        self._step = (self._step + self.speed) % (2 * math.pi)
        count = len(lamps)
        for i, lamp in enumerate(lamps):
            wave = (math.sin(i / count * 2 * math.pi + self._step) + 1) / 2
            lamp.scale(1 - wave * self.percentage)
