"""
Shift Effect - Rotates the strip contents with the beat
"""

from typing import List

from .base import BaseEffect
from .registry import ParamSchema
from ..clock import GlobalState
from ..colors import Lamp


class ShiftEffect(BaseEffect):
    """
    Shift effect - rotates the lamp buffer by one strip length per beat.

    The fractional step accumulates per tick (lamp_count * bpm / (60 * tick_rate))
    and the buffer is rotated by its rounded value. Lamps that fall off one
    end reappear at the other.
    """

    name = "shift"
    display_name = "Shift"
    description = "Shifts the lamp data left or right, one strip length per beat."
    tags = ("bpm_sensitive", "transparent", "pattern")
    params = (
        ParamSchema("direction", "str", default="left", options=("left", "right"),
                    description="The direction to shift ('left' or 'right')."),
    )

    FALLBACK_TICK_RATE = 40

    def __init__(self, direction: str = "left"):
        self.direction = direction
        self._step = 0.0

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
        self._step = (self._step + count * state.bpm / (tick_rate * 60.0)) % count
        offset = round(self._step) % count
        if offset == 0:
            return
        if self.direction == "right":
            offset = -offset

        source = [lamp.as_tuple() for lamp in lamps]
        for i, lamp in enumerate(lamps):
            lamp.set(*source[(i + offset) % count])
