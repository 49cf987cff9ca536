"""
Twinkle Effect - Random sparkles over the current colors
"""

import random
from typing import List, Optional

from .base import BaseEffect
from .registry import ParamSchema
from ..clock import GlobalState
from ..colors import Lamp


class TwinkleEffect(BaseEffect):
    """
    Twinkle effect - each tick a random subset of lamps flashes a color.

    The subset size is int(lamp_count * percentage); no lamp is picked twice
    in one tick. Each instance owns its RNG, so a seed gives reproducible
    output without touching the global random module.

    Parameters:
        - percentage: Fraction of lamps lit per tick (0.0-1.0)
        - color: Sparkle color (name or hex), white by default
        - seed: Optional RNG seed
    """

    name = "twinkle"
    display_name = "Twinkle"
    description = "Randomly sets a percentage of lamps to a sparkle color every tick."
    tags = ("random", "pattern")
    params = (
        ParamSchema("percentage", "float", default=0.1, min=0.0, max=1.0,
                    description="Fraction of lamps that sparkle each tick."),
        ParamSchema("color", "color", default="white",
                    description="Sparkle color (name or RRGGBB)."),
        ParamSchema("seed", "int", description="Random seed for reproducible sparkles."),
    )

    def __init__(self, percentage: float = 0.1, color: Optional[Lamp] = None, seed: Optional[int] = None):
        self.percentage = percentage
        self.color = color or Lamp(255, 255, 255, 0)
        self._rng = random.Random(seed)

    def process(
        self,
        lamps: List[Lamp],
        state: GlobalState,
        channel_mapping: str,
        channels_per_lamp: int,
    ) -> None:
        count = int(len(lamps) * self.percentage)
        if count == 0:
            return

        c = self.color
        # Full white on the W channel only where the fixture has one
        w = 255 if self.uses_white(channel_mapping, channels_per_lamp) and (c.r, c.g, c.b) == (255, 255, 255) else 0
        for index in self._rng.sample(range(len(lamps)), count):
            lamps[index].set(c.r, c.g, c.b, w)
