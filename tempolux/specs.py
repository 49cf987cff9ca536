"""
TEMPOLUX Specs - Declarative show description

Plain dataclasses for chains, effects, outputs, globals and actions, plus
conversion from/to the JSON config form. The executor edits these objects in
place, so saving a config after live edits persists them.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from .errors import ConfigError


@dataclass
class EffectSpec:
    """One effect entry within a chain."""
    id: str
    type: str
    args: Dict[str, Any] = field(default_factory=dict)
    enabled: bool = True
    group: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EffectSpec":
        try:
            effect_id = data["id"]
            effect_type = data["type"]
        except (KeyError, TypeError) as e:
            raise ConfigError(f"effect entry needs 'id' and 'type': {data!r}") from e
        enabled = data.get("enabled", True)
        if enabled is None:
            enabled = True
        return cls(
            id=str(effect_id),
            type=str(effect_type),
            args=dict(data.get("args") or {}),
            enabled=bool(enabled),
            group=data.get("group") or None,
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"id": self.id, "type": self.type, "args": dict(self.args), "enabled": self.enabled}
        if self.group:
            d["group"] = self.group
        return d


@dataclass
class OutputSpec:
    """Binding of a chain to a hardware sink."""
    type: str = "null"
    args: Dict[str, Any] = field(default_factory=dict)
    channel_mapping: str = "RGBW"
    channels_per_lamp: int = 4

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "OutputSpec":
        data = data or {}
        return cls(
            type=str(data.get("type", "null")),
            args=dict(data.get("args") or {}),
            channel_mapping=data.get("channelMapping") or "RGBW",
            channels_per_lamp=int(data.get("numChannelsPerLamp") or 4),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "args": dict(self.args),
            "channelMapping": self.channel_mapping,
            "numChannelsPerLamp": self.channels_per_lamp,
        }


@dataclass
class ChainSpec:
    """Declarative description of one fixture group."""
    id: str
    tick_rate: int = 40
    lamp_count: int = 0
    priority: int = 0  # reserved, unused
    effects: List[EffectSpec] = field(default_factory=list)
    output: OutputSpec = field(default_factory=OutputSpec)

    def __post_init__(self) -> None:
        if self.tick_rate <= 0:
            raise ConfigError(f"chain '{self.id}': tickRate must be positive (got {self.tick_rate})")
        if self.lamp_count < 0:
            raise ConfigError(f"chain '{self.id}': numLamps must be >= 0 (got {self.lamp_count})")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChainSpec":
        if "id" not in data:
            raise ConfigError(f"chain entry needs an 'id': {data!r}")
        try:
            tick_rate = int(data.get("tickRate", 40))
            lamp_count = int(data.get("numLamps", 0))
            priority = int(data.get("priority", 0))
        except (TypeError, ValueError) as e:
            raise ConfigError(f"chain '{data['id']}': {e}") from e
        return cls(
            id=str(data["id"]),
            tick_rate=tick_rate,
            lamp_count=lamp_count,
            priority=priority,
            effects=[EffectSpec.from_dict(e) for e in data.get("effects") or []],
            output=OutputSpec.from_dict(data.get("output")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "priority": self.priority,
            "tickRate": self.tick_rate,
            "numLamps": self.lamp_count,
            "effects": [e.to_dict() for e in self.effects],
            "output": self.output.to_dict(),
        }


@dataclass
class GlobalsSpec:
    """Persisted global parameters (hex colors as strings)."""
    bpm: float = 174.0
    color1: str = "FFA000"
    color2: str = "000000"
    intensity: int = 255

    def to_dict(self) -> Dict[str, Any]:
        return {"bpm": self.bpm, "color1": self.color1, "color2": self.color2, "intensity": self.intensity}


# ─────────────────────────────────────────────────────────────
# Actions
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class AddEffect:
    chain_id: str
    spec: EffectSpec
    type: str = "add_effect"


@dataclass(frozen=True)
class RemoveEffect:
    chain_id: str
    effect_id: str
    type: str = "remove_effect"


@dataclass(frozen=True)
class ToggleEffect:
    chain_id: str
    effect_id: str
    enabled: bool
    type: str = "toggle_effect"


@dataclass(frozen=True)
class SetGlobal:
    key: str
    value: Any
    type: str = "set_global"


ActionSpec = Union[AddEffect, RemoveEffect, ToggleEffect, SetGlobal]


def actions_from_dict(data: Dict[str, Any]) -> List[ActionSpec]:
    """
    Parse one config action entry.

    A set_global entry may carry several keys and expands to one SetGlobal
    per key, in params order.

    Raises:
        ConfigError: If the action type is unknown or required fields are missing
    """
    action_type = data.get("type")
    params = data.get("params") or {}
    chain_id = data.get("chain_id", "")

    if action_type == "add_effect":
        return [AddEffect(chain_id, EffectSpec.from_dict(params))]
    if action_type == "remove_effect":
        return [RemoveEffect(chain_id, data.get("effect_id", ""))]
    if action_type == "toggle_effect":
        enabled = params.get("enabled")
        if not isinstance(enabled, bool):
            raise ConfigError("toggle_effect: missing or invalid 'enabled' param")
        return [ToggleEffect(chain_id, data.get("effect_id", ""), enabled)]
    if action_type == "set_global":
        if not params:
            raise ConfigError("set_global: no params given")
        return [SetGlobal(key, value) for key, value in params.items()]
    raise ConfigError(f"unknown action type: {action_type}")


def action_to_dict(action: ActionSpec) -> Dict[str, Any]:
    """Inverse of actions_from_dict for a single action."""
    if isinstance(action, AddEffect):
        return {"type": action.type, "chain_id": action.chain_id, "params": action.spec.to_dict()}
    if isinstance(action, RemoveEffect):
        return {"type": action.type, "chain_id": action.chain_id, "effect_id": action.effect_id}
    if isinstance(action, ToggleEffect):
        return {
            "type": action.type,
            "chain_id": action.chain_id,
            "effect_id": action.effect_id,
            "params": {"enabled": action.enabled},
        }
    return {"type": action.type, "params": {action.key: action.value}}
