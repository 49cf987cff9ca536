"""
Cyberfall Effect - Digital rain brightness mask
"""

import random
import time
from typing import Callable, List, Optional

from .base import BaseEffect
from .registry import ParamSchema
from ..clock import GlobalState
from ..colors import Lamp


class CyberfallEffect(BaseEffect):
    """
    Cyberfall effect - falling "rain" heads with fading trails.

    Each lamp index is a column. An idle column starts a drop with probability
    density * dt * 2 per tick; a drop's head advances speed * dt * lamp_count / 5
    lamps per second and is retired once it has fallen lamp_count + trail_length.
    Lamps inside a trail are masked between min_brightness and max_brightness
    (linear falloff towards the tail, plus random flicker); everything else is
    masked to min_brightness.

    Parameters:
        - speed: Fall speed multiplier
        - density: Drop start rate (0.0-1.0)
        - trail_length: Trail length in lamps
        - min_brightness / max_brightness: Mask range (0-255)
        - flicker_intensity: Random brightness jitter (0.0-1.0)
        - seed: Optional RNG seed
    """

    name = "cyberfall"
    display_name = "Cyberfall"
    description = "Simulates digital rain, acting as a brightness mask over existing colors."
    tags = ("transparent", "brightness_mask", "random")
    params = (
        ParamSchema("speed", "float", default=1.0, min=0.0,
                    description="How fast the rain falls."),
        ParamSchema("density", "float", default=0.5, min=0.0, max=1.0,
                    description="How many columns are falling (0.0 - 1.0)."),
        ParamSchema("trail_length", "int", default=10, min=0,
                    description="Length of the falling tail in lamps."),
        ParamSchema("min_brightness", "int", default=0, min=0, max=255,
                    description="Brightness of dark parts (0-255)."),
        ParamSchema("max_brightness", "int", default=255, min=0, max=255,
                    description="Brightness of bright parts (0-255)."),
        ParamSchema("flicker_intensity", "float", default=0.1, min=0.0, max=1.0,
                    description="Random variation applied to brightness."),
        ParamSchema("seed", "int", description="Random seed for reproducible rain."),
    )

    def __init__(
        self,
        speed: float = 1.0,
        density: float = 0.5,
        trail_length: int = 10,
        min_brightness: int = 0,
        max_brightness: int = 255,
        flicker_intensity: float = 0.1,
        seed: Optional[int] = None,
        time_func: Callable[[], float] = time.monotonic,
    ):
        self.speed = speed
        self.density = density
        self.trail_length = trail_length
        self.min_brightness = min_brightness
        self.max_brightness = max_brightness
        self.flicker_intensity = flicker_intensity
        self._rng = random.Random(seed)
        self._time = time_func
        self._last_update = self._time()
        # Head position per column; None means idle
        self._heads: List[Optional[float]] = []

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
        if len(self._heads) != count:
            self._heads = [None] * count

        now = self._time()
        dt = now - self._last_update
        self._last_update = now

        for i, head in enumerate(self._heads):
            if head is not None:
                head += self.speed * dt * count / 5.0
                if head >= count + self.trail_length:
                    head = None
            if head is None and self._rng.random() < self.density * dt * 2.0:
                head = 0.0
            self._heads[i] = head

        span = self.max_brightness - self.min_brightness
        for i, lamp in enumerate(lamps):
            mask = float(self.min_brightness)
            head = self._heads[i]
            if head is not None and self.trail_length > 0:
                trail_pos = (head - i) / self.trail_length
                if 0.0 <= trail_pos <= 1.0:
                    factor = 1.0 - trail_pos
                    if self.flicker_intensity > 0:
                        factor += (self._rng.random() * 2 - 1) * self.flicker_intensity
                        factor = min(max(factor, 0.0), 1.0)
                    mask = self.min_brightness + factor * span
            lamp.scale(mask / 255.0)
