import asyncio
import random
import typing

import pytest

import sinegroups.errors
import sinegroups.scheduler
import sinegroups.stochastic

from conftest import FakeEngine


def _scheduler (engine: FakeEngine, **kwargs: typing.Any) -> sinegroups.scheduler.BeatScheduler:

	generator = kwargs.pop("generator", None) or sinegroups.stochastic.StochasticGenerator(rng=random.Random(7))

	return sinegroups.scheduler.BeatScheduler(engine, generator, **kwargs)


async def _render (scheduler: sinegroups.scheduler.BeatScheduler, beats: int) -> None:

	"""Run the scheduler in simulated time for a number of beats."""

	scheduler.render_mode = True
	scheduler.render_beats = beats

	await scheduler.start()

	try:
		await scheduler.wait()
	finally:
		await scheduler.stop()


class FailingGenerator:

	"""Generator that fails on chosen beats and otherwise delegates."""

	def __init__ (self, fail_beats: typing.Set[int], error: Exception) -> None:

		self.fail_beats = fail_beats
		self.error = error
		self.inner = sinegroups.stochastic.StochasticGenerator(rng=random.Random(3))

	def generate_group (self, beat: int) -> sinegroups.stochastic.GroupParameters:

		if beat in self.fail_beats:
			raise self.error

		return self.inner.generate_group(beat)


@pytest.mark.asyncio
async def test_render_plays_each_beat_in_order (engine: FakeEngine) -> None:

	"""Every beat produces exactly one group, in beat order."""

	scheduler = _scheduler(engine)
	await _render(scheduler, 6)

	assert engine.beats == [0, 1, 2, 3, 4, 5]
	assert engine.opened
	assert engine.closed
	assert scheduler.current_beat == 5


@pytest.mark.asyncio
async def test_playback_lands_on_metronome_timestamps (engine: FakeEngine) -> None:

	"""Triggers fire on the beat grid, one tempo interval apart."""

	scheduler = _scheduler(engine, beats_per_second=4.0, lookahead=0.1)
	times: typing.List[float] = []

	scheduler.on_event("play", lambda group: times.append(scheduler.now()))

	await _render(scheduler, 5)

	assert times[0] == pytest.approx(0.1)
	assert [b - a for a, b in zip(times, times[1:])] == pytest.approx([0.25] * 4)


@pytest.mark.asyncio
async def test_next_beat_is_queued_before_generation (engine: FakeEngine) -> None:

	"""Beat t+1 is already queued when beat t's group is generated."""

	seen: typing.List[bool] = []
	scheduler: typing.Optional[sinegroups.scheduler.BeatScheduler] = None
	inner = sinegroups.stochastic.StochasticGenerator(rng=random.Random(1))

	class Inspecting:

		def generate_group (self, beat: int) -> sinegroups.stochastic.GroupParameters:

			assert scheduler is not None
			seen.append(any(entry.label == "beat" and entry.args == (beat + 1,) for entry in scheduler._timers))

			return inner.generate_group(beat)

	scheduler = _scheduler(engine, generator=Inspecting())
	await _render(scheduler, 4)

	assert seen == [True, True, True, True]


@pytest.mark.asyncio
async def test_failed_generation_costs_only_that_beat (engine: FakeEngine) -> None:

	"""A generator error drops its beat but the chain continues."""

	generator = FailingGenerator({2}, RuntimeError("boom"))
	scheduler = _scheduler(engine, generator=generator)

	await _render(scheduler, 5)

	assert engine.beats == [0, 1, 3, 4]


@pytest.mark.asyncio
async def test_domain_violation_stops_the_piece (engine: FakeEngine) -> None:

	generator = FailingGenerator({3}, sinegroups.errors.DomainViolation("volume 1.2 outside [0, 1]"))
	scheduler = _scheduler(engine, generator=generator)

	with pytest.raises(sinegroups.errors.DomainViolation):
		await _render(scheduler, 10)

	assert engine.beats == [0, 1, 2]
	assert engine.closed


@pytest.mark.asyncio
async def test_engine_failure_is_surfaced () -> None:

	"""An engine that goes away ends the piece and the error reaches the caller."""

	class DroppingEngine (FakeEngine):

		def play (self, group: sinegroups.stochastic.GroupParameters) -> None:

			if group.beat == 2:
				raise sinegroups.errors.EngineUnavailable("synth went away")

			super().play(group)

	engine = DroppingEngine()
	scheduler = _scheduler(engine)

	with pytest.raises(sinegroups.errors.EngineUnavailable):
		await _render(scheduler, 10)

	assert engine.beats == [0, 1]
	assert not scheduler.running


@pytest.mark.asyncio
async def test_other_engine_errors_cost_one_beat () -> None:

	class FlakyEngine (FakeEngine):

		def play (self, group: sinegroups.stochastic.GroupParameters) -> None:

			if group.beat == 1:
				raise ValueError("bad buffer")

			super().play(group)

	engine = FlakyEngine()
	await _render(_scheduler(engine), 4)

	assert engine.beats == [0, 2, 3]


@pytest.mark.asyncio
async def test_scheduling_failure_drops_only_playback (engine: FakeEngine) -> None:

	"""A playback that cannot be queued is lost; the next beat still runs."""

	class RefusingScheduler (sinegroups.scheduler.BeatScheduler):

		def schedule (self, timestamp: float, label: str, action: typing.Callable[..., None], *args: typing.Any) -> None:

			if label == "play" and args[0].beat == 2:
				raise sinegroups.errors.SchedulingFailure("timer refused")

			super().schedule(timestamp, label, action, *args)

	scheduler = RefusingScheduler(engine, sinegroups.stochastic.StochasticGenerator(rng=random.Random(2)))
	await _render(scheduler, 5)

	assert engine.beats == [0, 1, 3, 4]


def test_schedule_requires_running_scheduler (engine: FakeEngine) -> None:

	scheduler = _scheduler(engine)

	with pytest.raises(sinegroups.errors.SchedulingFailure):
		scheduler.schedule(1.0, "play", lambda: None)


@pytest.mark.asyncio
async def test_schedule_rejects_non_finite_timestamp (engine: FakeEngine) -> None:

	scheduler = _scheduler(engine)
	await scheduler.start()

	try:
		with pytest.raises(sinegroups.errors.SchedulingFailure):
			scheduler.schedule(float("nan"), "play", lambda: None)
	finally:
		await scheduler.stop()


@pytest.mark.asyncio
async def test_engine_unavailable_at_start () -> None:

	engine = FakeEngine(fail_on_open=True)
	scheduler = _scheduler(engine)

	with pytest.raises(sinegroups.errors.EngineUnavailable):
		await scheduler.start()

	assert not scheduler.running
	assert scheduler.task is None


@pytest.mark.asyncio
async def test_start_twice_is_a_no_op (engine: FakeEngine) -> None:

	scheduler = _scheduler(engine)
	await scheduler.start()
	task = scheduler.task
	origin = scheduler.metronome.origin if scheduler.metronome else None

	await scheduler.start()

	assert scheduler.task is task
	assert scheduler.metronome is not None and scheduler.metronome.origin == origin

	await scheduler.stop()


@pytest.mark.asyncio
async def test_cannot_restart_after_stop (engine: FakeEngine) -> None:

	scheduler = _scheduler(engine)
	await scheduler.start()
	await scheduler.stop()

	assert scheduler.metronome is None

	with pytest.raises(RuntimeError):
		await scheduler.start()


@pytest.mark.asyncio
async def test_realtime_playback_and_stop (engine: FakeEngine) -> None:

	"""Live playback keeps triggering groups and stops triggering them on stop()."""

	scheduler = _scheduler(engine, beats_per_second=20.0)
	events: typing.List[str] = []

	scheduler.on_event("start", lambda: events.append("start"))
	scheduler.on_event("stop", lambda: events.append("stop"))

	await scheduler.start()
	await asyncio.sleep(0.3)
	await scheduler.stop()

	played = len(engine.groups)
	assert played >= 2
	assert engine.beats == list(range(played))

	await asyncio.sleep(0.15)

	assert len(engine.groups) == played
	assert events == ["start", "stop"]


@pytest.mark.asyncio
async def test_render_records_zero_jitter (engine: FakeEngine) -> None:

	jitter: typing.List[float] = []
	scheduler = _scheduler(engine, _jitter_log=jitter)

	await _render(scheduler, 4)

	assert jitter == [0.0, 0.0, 0.0, 0.0]


@pytest.mark.parametrize("kwargs", [
	{"beats_per_second": 0.0},
	{"lookahead": -0.1},
	{"lookahead": 1.0},
	{"start_beat": -1},
])
def test_invalid_settings_rejected (engine: FakeEngine, kwargs: dict) -> None:

	with pytest.raises(ValueError):
		_scheduler(engine, **kwargs)


def test_fake_engine_satisfies_protocol (engine: FakeEngine) -> None:

	assert isinstance(engine, sinegroups.scheduler.SoundEngineLike)


@pytest.mark.asyncio
async def test_failing_beat_listener_costs_no_beat (engine: FakeEngine) -> None:

	"""A listener that raises is logged; the beat's group is still generated and played."""

	def broken (beat: int) -> None:
		if beat == 1:
			raise RuntimeError("listener bug")

	scheduler = _scheduler(engine)
	scheduler.on_event("beat", broken)

	await _render(scheduler, 3)

	assert engine.beats == [0, 1, 2]


@pytest.mark.asyncio
async def test_stop_cancels_pending_async_listeners (engine: FakeEngine) -> None:

	started: typing.List[int] = []

	async def slow (group: sinegroups.stochastic.GroupParameters) -> None:
		started.append(group.beat)
		await asyncio.sleep(10)

	scheduler = _scheduler(engine)
	scheduler.on_event("play", slow)

	await _render(scheduler, 2)

	assert started == [0, 1]
	assert scheduler.events.pending == 0
