"""
TEMPOLUX Chain - Per-fixture-group scheduler

A chain owns a lamp buffer, an ordered list of effect specs and the live
effect instances built from them. Each tick it rebuilds if its specs changed,
advances the shared beat clock, runs its effects over the buffer and sends the
result to its output.

Spec mutations may come from any thread; they take the chain lock, edit the
spec list and mark the chain dirty. The tick copies the live list under the
lock and runs effects outside it.
"""

import asyncio
import logging
from threading import Lock
from typing import List, Optional

from .clock import BeatClock
from .colors import Lamp
from .effects.base import BaseEffect
from .effects.registry import EffectRegistry
from .errors import InvalidArgumentError, NotFoundError, TempoluxError
from .outputs import Output
from .specs import ChainSpec, EffectSpec

_logger = logging.getLogger(__name__)

# Upper bound on one output send (seconds)
DEFAULT_SEND_TIMEOUT = 0.5


class Chain:
    """One fixture group running its own effect pipeline at tick_rate frames/s."""

    def __init__(
        self,
        spec: ChainSpec,
        registry: EffectRegistry,
        clock: BeatClock,
        output: Output,
        send_timeout: float = DEFAULT_SEND_TIMEOUT,
    ):
        self.spec = spec
        self.registry = registry
        self.clock = clock
        self.output = output
        self.send_timeout = send_timeout
        self.lamps: List[Lamp] = [Lamp() for _ in range(spec.lamp_count)]
        self.frame_count = 0

        self._lock = Lock()
        self._dirty = True
        # Bumped on every spec mutation; a rebuild only clears dirty if it saw the latest
        self._generation = 0
        # Generation whose rebuild failure was last logged at error level
        self._failed_generation: Optional[int] = None
        self._live: List[BaseEffect] = []
        self._stop_requested = False
        self._closed = False

    @property
    def id(self) -> str:
        return self.spec.id

    @property
    def tick_rate(self) -> int:
        return self.spec.tick_rate

    @property
    def dirty(self) -> bool:
        with self._lock:
            return self._dirty

    @property
    def live_effects(self) -> List[BaseEffect]:
        with self._lock:
            return list(self._live)

    def effect_specs(self) -> List[EffectSpec]:
        """Copy of the current spec list (same spec objects)."""
        with self._lock:
            return list(self.spec.effects)

    def enabled_effect_ids(self) -> List[str]:
        with self._lock:
            return [e.id for e in self.spec.effects if e.enabled]

    # ─────────────────────────────────────────────────────────────
    # Spec mutations
    # ─────────────────────────────────────────────────────────────

    def _mark_dirty(self) -> None:
        # Caller holds the lock
        self._dirty = True
        self._generation += 1

    def _find(self, effect_id: str) -> EffectSpec:
        for spec in self.spec.effects:
            if spec.id == effect_id:
                return spec
        raise NotFoundError(f"effect '{effect_id}' not found in chain '{self.id}'")

    def add_effect(self, spec: EffectSpec) -> None:
        """
        Append an effect spec.

        Raises:
            InvalidArgumentError: If the id is already used in this chain
        """
        with self._lock:
            if any(e.id == spec.id for e in self.spec.effects):
                raise InvalidArgumentError(f"effect '{spec.id}' already exists in chain '{self.id}'")
            self.spec.effects.append(spec)
            self._mark_dirty()

    def remove_effect(self, effect_id: str) -> EffectSpec:
        """
        Remove an effect spec by id and return it.

        Raises:
            NotFoundError: If no effect has that id
        """
        with self._lock:
            spec = self._find(effect_id)
            self.spec.effects.remove(spec)
            self._mark_dirty()
            return spec

    def toggle_effect(self, effect_id: str, enabled: bool) -> None:
        """
        Enable or disable an effect spec.

        Enabling a grouped effect disables every other enabled member of its
        group in this chain.

        Raises:
            NotFoundError: If no effect has that id
        """
        with self._lock:
            target = self._find(effect_id)
            if enabled and target.group:
                for other in self.spec.effects:
                    if other is not target and other.group == target.group and other.enabled:
                        other.enabled = False
            target.enabled = enabled
            self._mark_dirty()

    # ─────────────────────────────────────────────────────────────
    # Rebuild
    # ─────────────────────────────────────────────────────────────

    def _normalize_groups(self) -> None:
        """First enabled member of each group wins; later ones are disabled in the chain spec."""
        seen = set()
        for spec in self.spec.effects:
            if not spec.enabled or not spec.group:
                continue
            if spec.group in seen:
                _logger.debug(f"[TEMPOLUX] {self.id}: disabling '{spec.id}', group '{spec.group}' already active")
                spec.enabled = False
            else:
                seen.add(spec.group)

    def rebuild(self) -> bool:
        """
        Rebuild the live effect list from the specs if dirty.

        Returns False (chain stays dirty, previous live list kept) if any
        effect fails to construct.
        """
        with self._lock:
            if not self._dirty:
                return True
            generation = self._generation
            self._normalize_groups()
            wanted = [(s.id, s.type, dict(s.args)) for s in self.spec.effects if s.enabled]

        live: List[BaseEffect] = []
        for effect_id, effect_type, args in wanted:
            try:
                live.append(self.registry.construct(effect_type, args))
            except TempoluxError as e:
                if generation != self._failed_generation:
                    self._failed_generation = generation
                    _logger.error(f"[TEMPOLUX] {self.id}: rebuild failed on '{effect_id}': {e}")
                else:
                    _logger.debug(f"[TEMPOLUX] {self.id}: rebuild still failing on '{effect_id}': {e}")
                return False

        with self._lock:
            self._live = live
            if self._generation == generation:
                self._dirty = False
        _logger.debug(f"[TEMPOLUX] {self.id}: rebuilt with {[e.name for e in live]}")
        return True

    # ─────────────────────────────────────────────────────────────
    # Tick / loop
    # ─────────────────────────────────────────────────────────────

    async def tick(self) -> None:
        """Compute and send one frame."""
        if self.dirty:
            self.rebuild()

        with self._lock:
            effects = list(self._live)

        self.clock.update_beat_progress()
        state = self.clock.snapshot(tick_rate=self.tick_rate)
        mapping = self.spec.output.channel_mapping
        channels = self.spec.output.channels_per_lamp

        for effect in effects:
            try:
                effect.process(self.lamps, state, mapping, channels)
            except Exception as e:
                _logger.error(f"[TEMPOLUX] {self.id}: {effect.name} effect failed: {e}")

        try:
            await asyncio.wait_for(self.output.send(self.lamps), timeout=self.send_timeout)
        except asyncio.TimeoutError:
            _logger.warning(f"[TEMPOLUX] {self.id}: output send timeout")
        except Exception as e:
            _logger.error(f"[TEMPOLUX] {self.id}: output send failed: {e}")
        self.frame_count += 1

    async def run(self) -> None:
        """
        Tick at tick_rate until stop() is called or the task is cancelled.

        The output is closed once when the loop ends. The chain may be run
        again afterwards; a stop() issued before run() still ends that run.
        """
        loop = asyncio.get_running_loop()
        period = 1.0 / self.tick_rate
        self._closed = False
        _logger.info(f"[TEMPOLUX] {self.id}: starting at {self.tick_rate} ticks/s with {len(self.lamps)} lamps")
        try:
            next_tick = loop.time()
            while not self._stop_requested:
                await self.tick()
                next_tick += period
                delay = next_tick - loop.time()
                if delay < 0:
                    # Fell behind; skip the missed frames instead of bursting
                    next_tick = loop.time()
                    delay = 0
                await asyncio.sleep(delay)
        except asyncio.CancelledError:
            _logger.debug(f"[TEMPOLUX] {self.id}: loop cancelled")
            raise
        finally:
            self._stop_requested = False
            await self._close_output()
            _logger.info(f"[TEMPOLUX] {self.id}: stopped after {self.frame_count} frames")

    def stop(self) -> None:
        """Ask the loop to exit after the current tick."""
        self._stop_requested = True

    async def _close_output(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            await self.output.close()
        except Exception as e:
            _logger.error(f"[TEMPOLUX] {self.id}: output close failed: {e}")

    def __repr__(self) -> str:
        return f"<Chain {self.id}: {len(self.lamps)} lamps @ {self.tick_rate}/s>"

