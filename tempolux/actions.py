"""
TEMPOLUX Actions - Event and action executor

Events are named, ordered lists of actions loaded from config. Triggering an
event runs its actions in order; a failing action is logged and the rest
still run. Nothing is rolled back.
"""

import logging
import math
from dataclasses import replace
from threading import Lock
from typing import Any, Dict, List

from .chain import Chain
from .clock import BeatClock
from .colors import parse_hex_color, to_hex
from .errors import InvalidArgumentError, NotFoundError, TempoluxError
from .specs import (
    ActionSpec,
    AddEffect,
    EffectSpec,
    GlobalsSpec,
    RemoveEffect,
    SetGlobal,
    ToggleEffect,
)

_logger = logging.getLogger(__name__)

GLOBAL_KEYS = ("bpm", "color1", "color2", "intensity")

# Descriptive metadata for each action type (editors, docs)
ACTION_SCHEMAS: Dict[str, Dict[str, Any]] = {
    "add_effect": {
        "display_name": "Add Effect",
        "description": "Adds a new effect to a specified chain.",
        "params": {
            "chain_id": {"type": "str", "description": "The ID of the chain to add the effect to."},
            "params": {"type": "object", "description": "The full configuration of the effect to add."},
        },
    },
    "remove_effect": {
        "display_name": "Remove Effect",
        "description": "Removes an effect from a specified chain.",
        "params": {
            "chain_id": {"type": "str", "description": "The ID of the chain to remove the effect from."},
            "effect_id": {"type": "str", "description": "The ID of the effect to remove."},
        },
    },
    "toggle_effect": {
        "display_name": "Toggle Effect",
        "description": "Enables or disables an existing effect in a chain.",
        "params": {
            "chain_id": {"type": "str", "description": "The ID of the chain containing the effect."},
            "effect_id": {"type": "str", "description": "The ID of the effect to toggle."},
            "enabled": {"type": "bool", "default": True, "description": "Whether the effect should be enabled."},
        },
    },
    "set_global": {
        "display_name": "Set Global Parameter",
        "description": "Sets a global parameter (BPM, Color 1, Color 2, Intensity).",
        "params": {
            "bpm": {"type": "float", "default": 120.0, "description": "Global beats per minute."},
            "intensity": {"type": "int", "default": 255, "description": "Global intensity (0-255)."},
            "color1": {"type": "color", "default": "FF0000", "description": "Global Color 1 (hex, e.g. FF0000)."},
            "color2": {"type": "color", "default": "0000FF", "description": "Global Color 2 (hex, e.g. 0000FF)."},
        },
    },
}


class ActionExecutor:
    """
    Applies actions to the running show.

    Chain mutations go through the chain's own locked methods; global writes
    update both the persisted GlobalsSpec and the live clock.
    """

    def __init__(
        self,
        chains: Dict[str, Chain],
        clock: BeatClock,
        globals_spec: GlobalsSpec,
        events: Dict[str, List[ActionSpec]],
    ):
        self.chains = chains
        self.clock = clock
        self.globals_spec = globals_spec
        self.events = events
        self._globals_lock = Lock()

    def trigger_event(self, name: str) -> int:
        """
        Run every action bound to an event, in order.

        Returns the number of actions that succeeded. An unknown event name is
        logged and ignored.
        """
        actions = self.events.get(name)
        if actions is None:
            _logger.warning(f"[TEMPOLUX] Event '{name}' not found")
            return 0

        _logger.info(f"[TEMPOLUX] Triggering event '{name}' ({len(actions)} actions)")
        succeeded = 0
        for action in actions:
            try:
                self.execute(action)
                succeeded += 1
            except TempoluxError as e:
                _logger.warning(f"[TEMPOLUX] Event '{name}': {action.type} failed: {e}")
        return succeeded

    def execute(self, action: ActionSpec) -> None:
        """Dispatch a single action."""
        _logger.debug(f"[TEMPOLUX] Executing {action}")
        if isinstance(action, AddEffect):
            self.add_effect(action.chain_id, action.spec)
        elif isinstance(action, RemoveEffect):
            self.remove_effect(action.chain_id, action.effect_id)
        elif isinstance(action, ToggleEffect):
            self.toggle_effect(action.chain_id, action.effect_id, action.enabled)
        elif isinstance(action, SetGlobal):
            self.set_global(action.key, action.value)
        else:
            raise InvalidArgumentError(f"unsupported action: {action!r}")

    def _chain(self, chain_id: str) -> Chain:
        chain = self.chains.get(chain_id)
        if chain is None:
            raise NotFoundError(f"chain '{chain_id}' not found")
        return chain

    def add_effect(self, chain_id: str, spec: EffectSpec) -> None:
        # The same AddEffect may fire again; each chain gets its own spec object
        self._chain(chain_id).add_effect(replace(spec, args=dict(spec.args)))

    def remove_effect(self, chain_id: str, effect_id: str) -> None:
        self._chain(chain_id).remove_effect(effect_id)

    def toggle_effect(self, chain_id: str, effect_id: str, enabled: bool) -> None:
        self._chain(chain_id).toggle_effect(effect_id, enabled)

    def set_global(self, key: str, value: Any) -> None:
        """
        Validate and apply one global parameter.

        Raises:
            InvalidArgumentError: Unknown key, wrong type or out of range; the
                previous value is kept
        """
        if key == "bpm":
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise InvalidArgumentError(f"bpm must be a number (got {value!r})")
            if not math.isfinite(value) or value <= 0:
                raise InvalidArgumentError(f"bpm must be positive (got {value})")
            with self._globals_lock:
                self.globals_spec.bpm = float(value)
                self.clock.set_bpm(value)

        elif key in ("color1", "color2"):
            if not isinstance(value, str):
                raise InvalidArgumentError(f"{key} must be a hex string (got {value!r})")
            try:
                lamp = parse_hex_color(value)
            except ValueError as e:
                raise InvalidArgumentError(f"{key}: {e}") from e
            with self._globals_lock:
                setattr(self.globals_spec, key, to_hex(lamp))
                if key == "color1":
                    self.clock.set_color1(lamp)
                else:
                    self.clock.set_color2(lamp)

        elif key == "intensity":
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise InvalidArgumentError(f"intensity must be an integer (got {value!r})")
            if isinstance(value, float) and not value.is_integer():
                raise InvalidArgumentError(f"intensity must be an integer (got {value})")
            if not 0 <= value <= 255:
                raise InvalidArgumentError(f"intensity must be 0-255 (got {value})")
            with self._globals_lock:
                self.globals_spec.intensity = int(value)
                self.clock.set_intensity(int(value))

        else:
            raise InvalidArgumentError(f"unknown global '{key}' (expected one of {', '.join(GLOBAL_KEYS)})")

        _logger.info(f"[TEMPOLUX] Global {key} = {value}")
