"""
Effect Registry - Catalogue of effect constructors and parameter schemas

Built once at startup and handed to whatever needs to construct effects.
Schemas drive argument validation, config defaulting and documentation.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Set, Type

from ..colors import get_color
from ..errors import ConfigError, StartupError
from .base import BaseEffect

_logger = logging.getLogger(__name__)

EffectConstructor = Callable[[Dict[str, Any]], BaseEffect]

PARAM_TYPES = ("float", "int", "bool", "str", "color")


@dataclass(frozen=True)
class ParamSchema:
    """Schema for a single effect parameter"""
    name: str
    type: str  # "float", "int", "bool", "str", "color"
    default: Any = None
    description: str = ""
    min: Optional[float] = None  # For numeric types
    max: Optional[float] = None  # For numeric types
    options: Optional[tuple] = None  # For enum-like str params
    required: bool = False

    def to_dict(self) -> dict:
        d = {"type": self.type, "default": self.default}
        if self.description:
            d["description"] = self.description
        if self.min is not None:
            d["min"] = self.min
        if self.max is not None:
            d["max"] = self.max
        if self.options:
            d["options"] = list(self.options)
        if self.required:
            d["required"] = True
        return d


@dataclass(frozen=True)
class EffectMetadata:
    """Descriptive metadata for an effect type"""
    name: str
    display_name: str
    description: str = ""
    tags: tuple = ()
    params: tuple = field(default_factory=tuple)

    def param(self, name: str) -> Optional[ParamSchema]:
        for p in self.params:
            if p.name == name:
                return p
        return None

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "display_name": self.display_name,
            "description": self.description,
            "tags": list(self.tags),
            "params": {p.name: p.to_dict() for p in self.params},
        }


def _coerce(effect: str, schema: ParamSchema, value: Any) -> Any:
    """Check one argument against its schema, returning the normalized value."""
    where = f"{effect} effect: parameter '{schema.name}'"

    if schema.type == "bool":
        if not isinstance(value, bool):
            raise ConfigError(f"{where} must be a bool (got {value!r})")
        return value

    if schema.type in ("float", "int"):
        # bool is an int subclass; never accept it as a number
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ConfigError(f"{where} must be a number (got {value!r})")
        if schema.type == "int":
            if isinstance(value, float) and not value.is_integer():
                raise ConfigError(f"{where} must be an integer (got {value!r})")
            value = int(value)
        else:
            value = float(value)
        if schema.min is not None and value < schema.min:
            raise ConfigError(f"{where} must be >= {schema.min} (got {value})")
        if schema.max is not None and value > schema.max:
            raise ConfigError(f"{where} must be <= {schema.max} (got {value})")
        return value

    if schema.type == "color":
        try:
            return get_color(value)
        except (ValueError, AttributeError, TypeError) as e:
            raise ConfigError(f"{where}: {e}") from e

    if not isinstance(value, str):
        raise ConfigError(f"{where} must be a string (got {value!r})")
    if schema.options and value not in schema.options:
        raise ConfigError(f"{where} must be one of {', '.join(schema.options)} (got '{value}')")
    return value


class EffectRegistry:
    """
    Maps effect type names to constructors and metadata.

    Registration happens only while the registry is being built; a duplicate
    name is a startup error.
    """

    def __init__(self) -> None:
        self._constructors: Dict[str, EffectConstructor] = {}
        self._metadata: Dict[str, EffectMetadata] = {}

    def register(
        self,
        name: str,
        constructor: EffectConstructor,
        metadata: Optional[EffectMetadata] = None,
    ) -> None:
        """
        Register an effect constructor.

        Raises:
            StartupError: If name is already registered
        """
        if name in self._constructors:
            raise StartupError(f"Effect '{name}' already registered")
        if metadata is not None:
            for p in metadata.params:
                if p.type not in PARAM_TYPES:
                    raise StartupError(f"Effect '{name}': parameter '{p.name}' has unknown type '{p.type}'")
        self._constructors[name] = constructor
        if metadata is not None:
            self._metadata[name] = metadata

    def register_effect(self, effect_class: Type[BaseEffect]) -> None:
        """Register an effect class using the metadata declared on it."""
        metadata = EffectMetadata(
            name=effect_class.name,
            display_name=effect_class.display_name or effect_class.name,
            description=effect_class.description,
            tags=tuple(effect_class.tags),
            params=tuple(effect_class.params),
        )
        self.register(effect_class.name, effect_class.from_args, metadata)

    def construct(self, name: str, args: Optional[Dict[str, Any]] = None) -> BaseEffect:
        """
        Construct an effect instance from raw args.

        Raises:
            ConfigError: If name is unknown, an argument is missing/invalid
                or the constructor raises
        """
        constructor = self._constructors.get(name)
        if constructor is None:
            raise ConfigError(
                f"Unknown effect '{name}'. "
                f"Available: {', '.join(sorted(self._constructors))}"
            )
        args = dict(args or {})
        metadata = self._metadata.get(name)
        if metadata is not None:
            args = self._validate(metadata, args)

        try:
            return constructor(args)
        except ConfigError:
            raise
        except Exception as e:
            raise ConfigError(f"{name} effect: {e}") from e

    def _validate(self, metadata: EffectMetadata, args: Dict[str, Any]) -> Dict[str, Any]:
        validated: Dict[str, Any] = {}
        for schema in metadata.params:
            if schema.name in args and args[schema.name] is not None:
                validated[schema.name] = _coerce(metadata.name, schema, args[schema.name])
            elif schema.required:
                raise ConfigError(f"{metadata.name} effect: missing required parameter '{schema.name}'")
            elif schema.default is not None:
                validated[schema.name] = _coerce(metadata.name, schema, schema.default)
            else:
                validated[schema.name] = None
        extra = set(args) - set(validated)
        if extra:
            _logger.debug(f"[TEMPOLUX] {metadata.name}: ignoring unknown args {sorted(extra)}")
        return validated

    def list_available(self) -> Set[str]:
        """Return the set of registered effect names."""
        return set(self._constructors)

    def get_metadata(self, name: str) -> Optional[EffectMetadata]:
        return self._metadata.get(name)

    def defaults(self, name: str) -> Dict[str, Any]:
        """Default args for an effect type (params without a default are skipped)."""
        metadata = self._metadata.get(name)
        if metadata is None:
            return {}
        return {p.name: p.default for p in metadata.params if p.default is not None}

    def to_markdown(self) -> str:
        """Render a Markdown reference of all registered effects."""
        lines: List[str] = [
            "# Registered Effects",
            "",
            "All available lighting effects, their descriptions, and configurable parameters.",
            "",
        ]
        for name in sorted(self._constructors):
            metadata = self._metadata.get(name)
            if metadata is None:
                lines += [f"## {name}", "", "---", ""]
                continue
            lines += [f"## {metadata.display_name} (`{name}`)", "", metadata.description, ""]
            if metadata.tags:
                lines += [f"**Tags**: {', '.join(sorted(metadata.tags))}", ""]
            if metadata.params:
                lines += [
                    "### Parameters",
                    "",
                    "| Parameter | Type | Default | Min | Max | Description |",
                    "|-----------|------|---------|-----|-----|-------------|",
                ]
                for p in sorted(metadata.params, key=lambda p: p.name):
                    min_val = "-" if p.min is None else p.min
                    max_val = "-" if p.max is None else p.max
                    default = "(required)" if p.required else p.default
                    lines.append(f"| {p.name} | {p.type} | {default} | {min_val} | {max_val} | {p.description} |")
                lines.append("")
            lines += ["---", ""]
        return "\n".join(lines)
