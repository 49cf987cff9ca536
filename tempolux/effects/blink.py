"""
Blink Effect - Beat-synced alternation between the two palette colors
"""

from typing import Any, Dict, List

from .base import BaseEffect
from .registry import ParamSchema
from ..clock import GlobalState
from ..colors import Lamp


class BlinkEffect(BaseEffect):
    """
    Blink effect - alternates color1 and color2 on the beat.

    Each beat is split into divider * 2 segments. Within a segment, color1
    is shown for the first duty_cycle fraction and color2 for the rest.

    Parameters:
        - divider: Beat subdivision (1 = one on/off pair per half beat)
        - dutyCycle: Fraction of each segment showing color1 (0.0-1.0)
    """

    name = "blink"
    display_name = "Blink"
    description = "Alternates between two colors based on the global BPM, creating a blinking effect."
    tags = ("bpm_sensitive", "color_source", "pattern")
    params = (
        ParamSchema("divider", "int", default=1, min=1,
                    description="Divides the beat into segments for faster blinking."),
        ParamSchema("dutyCycle", "float", default=0.5, min=0.0, max=1.0,
                    description="Percentage of the segment that Color1 is shown."),
    )

    def __init__(self, divider: int = 1, duty_cycle: float = 0.5):
        self.divider = divider
        self.duty_cycle = duty_cycle

    @classmethod
    def from_args(cls, args: Dict[str, Any]) -> "BlinkEffect":
        return cls(divider=args["divider"], duty_cycle=args["dutyCycle"])

    def process(
        self,
        lamps: List[Lamp],
        state: GlobalState,
        channel_mapping: str,
        channels_per_lamp: int,
    ) -> None:
        segments = state.beat_progress * (self.divider * 2)
        progress_in_segment = segments - int(segments)
        color = state.color1 if progress_in_segment < self.duty_cycle else state.color2

        w = color.w if self.uses_white(channel_mapping, channels_per_lamp) else 0
        for lamp in lamps:
            lamp.set(color.r, color.g, color.b, w)
