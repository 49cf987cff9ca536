"""Tests for chain spec mutations, rebuilds and the tick loop."""

import asyncio
import logging

import pytest

from tempolux.effects import BaseEffect
from tempolux.errors import InvalidArgumentError, NotFoundError, OutputError
from tempolux.outputs import MemoryOutput
from tempolux.specs import EffectSpec, OutputSpec


class _Recorder(BaseEffect):
    name = "recorder"

    def __init__(self):
        self.states = []

    def process(self, lamps, state, channel_mapping, channels_per_lamp):
        self.states.append(state)


class _Boom(BaseEffect):
    name = "boom"

    def process(self, lamps, state, channel_mapping, channels_per_lamp):
        raise RuntimeError("kaboom")


class _SlowOutput(MemoryOutput):
    async def send(self, lamps):
        await asyncio.sleep(1.0)


class _FailingOutput(MemoryOutput):
    async def send(self, lamps):
        raise OutputError("device unplugged")


def solid(effect_id="solid", **kwargs):
    return EffectSpec(effect_id, "solidColor", **kwargs)


def ids(chain):
    return [e.id for e in chain.effect_specs()]


class TestTick:

    def test_solid_red_frame(self, make_chain):
        chain = make_chain([solid()])
        asyncio.run(chain.tick())
        assert chain.output.last_frame == [(255, 0, 0, 0)] * 10
        assert chain.frame_count == 1
        assert not chain.dirty

    def test_empty_chain_sends_black(self, make_chain):
        chain = make_chain([], lamp_count=3)
        asyncio.run(chain.tick())
        assert chain.output.last_frame == [(0, 0, 0, 0)] * 3

    def test_zero_lamp_chain_still_sends(self, make_chain):
        chain = make_chain([solid()], lamp_count=0)
        asyncio.run(chain.tick())
        assert chain.output.last_frame == []

    def test_effects_run_in_order(self, make_chain):
        chain = make_chain([solid(), EffectSpec("dim", "dim", {"percentage": 0.5})])
        asyncio.run(chain.tick())
        assert chain.output.last_frame[0] == (128, 0, 0, 0)

    def test_snapshot_carries_chain_tick_rate(self, registry, make_chain):
        recorder = _Recorder()
        registry.register("recorder", lambda args: recorder)
        chain = make_chain([EffectSpec("rec", "recorder")], tick_rate=25)
        asyncio.run(chain.tick())
        assert recorder.states[0].tick_rate == 25
        assert recorder.states[0].bpm == 60.0

    def test_effect_exception_does_not_stop_the_frame(self, registry, make_chain, caplog):
        registry.register("boom", lambda args: _Boom())
        chain = make_chain([EffectSpec("boom", "boom"), solid()])
        with caplog.at_level(logging.ERROR, logger="tempolux.chain"):
            asyncio.run(chain.tick())
        assert chain.output.last_frame == [(255, 0, 0, 0)] * 10
        assert "kaboom" in caplog.text

    def test_send_timeout_is_logged(self, make_chain, caplog):
        out_spec = OutputSpec(type="memory")
        chain = make_chain([solid()], output=_SlowOutput("main", out_spec), send_timeout=0.01)
        with caplog.at_level(logging.WARNING, logger="tempolux.chain"):
            asyncio.run(chain.tick())
        assert chain.frame_count == 1
        assert "timeout" in caplog.text

    def test_send_failure_is_logged(self, make_chain, caplog):
        chain = make_chain([solid()], output=_FailingOutput("main", OutputSpec(type="memory")))
        with caplog.at_level(logging.ERROR, logger="tempolux.chain"):
            asyncio.run(chain.tick())
            asyncio.run(chain.tick())
        assert chain.frame_count == 2
        assert "device unplugged" in caplog.text


class TestMutations:

    def test_add_then_remove_restores_list(self, make_chain):
        chain = make_chain([solid()])
        before = ids(chain)
        chain.add_effect(EffectSpec("dim", "dim"))
        assert ids(chain) == ["solid", "dim"]
        removed = chain.remove_effect("dim")
        assert removed.type == "dim"
        assert ids(chain) == before

    def test_add_duplicate_id(self, make_chain):
        chain = make_chain([solid()])
        with pytest.raises(InvalidArgumentError):
            chain.add_effect(solid())
        assert ids(chain) == ["solid"]

    def test_remove_and_toggle_unknown_id(self, make_chain):
        chain = make_chain([solid()])
        with pytest.raises(NotFoundError):
            chain.remove_effect("nope")
        with pytest.raises(NotFoundError):
            chain.toggle_effect("nope", True)

    def test_mutations_mark_dirty(self, make_chain):
        chain = make_chain([solid()])
        chain.rebuild()
        assert not chain.dirty
        chain.toggle_effect("solid", False)
        assert chain.dirty
        chain.rebuild()
        assert chain.live_effects == []

    def test_group_exclusivity(self, make_chain):
        chain = make_chain([
            solid("a", group="color"),
            EffectSpec("b", "rainbow", enabled=False, group="color"),
            EffectSpec("c", "dim"),
        ])
        chain.toggle_effect("b", True)
        assert chain.enabled_effect_ids() == ["b", "c"]
        # Re-enabling the active member changes nothing
        chain.toggle_effect("b", True)
        assert chain.enabled_effect_ids() == ["b", "c"]
        chain.rebuild()
        assert [e.name for e in chain.live_effects] == ["rainbow", "dim"]

    def test_disabling_a_group_member_leaves_others(self, make_chain):
        chain = make_chain([solid("a", group="color"), EffectSpec("b", "rainbow", enabled=False, group="color")])
        chain.toggle_effect("a", False)
        assert chain.enabled_effect_ids() == []

    def test_first_enabled_group_member_wins(self, make_chain):
        chain = make_chain([
            solid("a", group="color"),
            EffectSpec("b", "rainbow", group="color"),
        ])
        assert chain.rebuild()
        assert [e.name for e in chain.live_effects] == ["solidColor"]
        # The effect specs are normalized too, so it stays that way
        assert chain.enabled_effect_ids() == ["a"]

    def test_added_grouped_effect_loses_to_earlier_member(self, make_chain):
        chain = make_chain([solid("a", group="color")])
        chain.add_effect(EffectSpec("b", "rainbow", group="color"))
        chain.rebuild()
        assert chain.enabled_effect_ids() == ["a"]


class TestRebuild:

    def test_failed_rebuild_keeps_previous_live_list(self, make_chain, caplog):
        chain = make_chain([solid()])
        chain.rebuild()
        live = chain.live_effects
        chain.add_effect(EffectSpec("bad", "strobe"))
        with caplog.at_level(logging.ERROR, logger="tempolux.chain"):
            assert chain.rebuild() is False
        assert chain.dirty
        assert chain.live_effects == live
        assert "strobe" in caplog.text

    def test_failed_rebuild_still_ticks_old_effects(self, make_chain):
        chain = make_chain([solid()])
        chain.rebuild()
        chain.add_effect(EffectSpec("bad", "blink", {"divider": 0}))
        asyncio.run(chain.tick())
        assert chain.output.last_frame[0] == (255, 0, 0, 0)
        chain.remove_effect("bad")
        asyncio.run(chain.tick())
        assert not chain.dirty

    def test_constructor_key_error_keeps_old_effects(self, registry, make_chain):
        registry.register("broken", lambda args: {}["missing"])
        chain = make_chain([solid()])
        asyncio.run(chain.tick())
        chain.add_effect(EffectSpec("bad", "broken"))
        asyncio.run(chain.tick())
        assert chain.dirty
        assert chain.output.last_frame == [(255, 0, 0, 0)] * 10
        assert chain.frame_count == 2

    def test_repeated_failure_logged_once_per_change(self, registry, make_chain, caplog):
        registry.register("broken", lambda args: {}["missing"])
        chain = make_chain([solid(), EffectSpec("bad", "broken")])

        def failures():
            return [r for r in caplog.records if r.levelno == logging.ERROR and "rebuild failed" in r.getMessage()]

        with caplog.at_level(logging.ERROR, logger="tempolux.chain"):
            for _ in range(3):
                asyncio.run(chain.tick())
            assert len(failures()) == 1
            # A new spec change is reported again
            chain.toggle_effect("solid", True)
            asyncio.run(chain.tick())
            assert len(failures()) == 2
        assert chain.frame_count == 4

    def test_mutation_during_rebuild_keeps_chain_dirty(self, registry, make_chain):
        holder = {}

        def sneaky(args):
            if not holder.get("done"):
                holder["done"] = True
                holder["chain"].add_effect(EffectSpec("late", "dim"))
            return _Recorder()

        registry.register("sneaky", sneaky)
        chain = make_chain([EffectSpec("s", "sneaky")])
        holder["chain"] = chain

        assert chain.rebuild()
        # The rebuild saw a stale spec list
        assert chain.dirty
        assert len(chain.live_effects) == 1

        assert chain.rebuild()
        assert not chain.dirty
        assert [e.name for e in chain.live_effects] == ["recorder", "dim"]

    def test_rebuild_gives_fresh_instances(self, make_chain):
        chain = make_chain([EffectSpec("r", "rainbow")])
        chain.rebuild()
        first = chain.live_effects[0]
        chain.toggle_effect("r", True)
        chain.rebuild()
        assert chain.live_effects[0] is not first

    def test_args_are_copied_into_effects(self, make_chain):
        spec = EffectSpec("d", "dim", {"percentage": 0.25})
        chain = make_chain([spec])
        chain.rebuild()
        spec.args["percentage"] = 0.75
        assert chain.live_effects[0].percentage == 0.25


class TestRunLoop:

    def test_stop_closes_output_once(self, make_chain):
        chain = make_chain([solid()], tick_rate=100)

        async def scenario():
            task = asyncio.create_task(chain.run())
            await asyncio.sleep(0.05)
            chain.stop()
            await asyncio.wait_for(task, timeout=1.0)

        asyncio.run(scenario())
        assert chain.frame_count > 0
        assert chain.output.close_count == 1

    def test_cancel_closes_output_once(self, make_chain):
        chain = make_chain([solid()], tick_rate=100)

        async def scenario():
            task = asyncio.create_task(chain.run())
            await asyncio.sleep(0.05)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        asyncio.run(scenario())
        assert chain.output.close_count == 1

    def test_run_again_after_stop(self, make_chain):
        chain = make_chain([solid()], tick_rate=100)

        async def run_briefly():
            task = asyncio.create_task(chain.run())
            await asyncio.sleep(0.05)
            assert not task.done()
            chain.stop()
            await asyncio.wait_for(task, timeout=1.0)

        asyncio.run(run_briefly())
        first = chain.frame_count
        asyncio.run(run_briefly())
        assert chain.frame_count > first
        assert chain.output.close_count == 2

    def test_stop_before_run_ends_that_run(self, make_chain):
        chain = make_chain([solid()])
        chain.stop()
        asyncio.run(asyncio.wait_for(chain.run(), timeout=1.0))
        assert chain.frame_count == 0
        assert chain.output.close_count == 1

    def test_close_failure_is_logged(self, make_chain, caplog):
        class _BadClose(MemoryOutput):
            async def close(self):
                raise OutputError("stuck")

        chain = make_chain([solid()], output=_BadClose("main", OutputSpec(type="memory")))
        chain.stop()
        with caplog.at_level(logging.ERROR, logger="tempolux.chain"):
            asyncio.run(chain.run())
        assert "stuck" in caplog.text
