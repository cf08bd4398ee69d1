import asyncio
import dataclasses
import heapq
import itertools
import logging
import math
import time
import typing

import sinegroups.constants
import sinegroups.errors
import sinegroups.event_emitter
import sinegroups.metronome
import sinegroups.stochastic


logger = logging.getLogger(__name__)


@typing.runtime_checkable
class SoundEngineLike (typing.Protocol):

	"""
	Protocol for the external engine that turns group parameters into sound.
	"""

	def open (self) -> None:

		"""
		Prepare the engine. Raise ``EngineUnavailable`` if it cannot accept events.
		"""

		...

	def play (self, group: sinegroups.stochastic.GroupParameters) -> None:

		"""
		Begin rendering ``group`` now.
		"""

		...

	def close (self) -> None:
		...


@dataclasses.dataclass (order=True)
class TimerEntry:

	"""
	An action waiting in the timer queue, ordered by timestamp then insertion.
	"""

	timestamp: float
	counter: int
	label: str = dataclasses.field(compare=False)
	action: typing.Callable[..., None] = dataclasses.field(compare=False)
	args: typing.Tuple[typing.Any, ...] = dataclasses.field(compare=False, default=())


class BeatScheduler:

	"""
	Drives the self-perpetuating chain of beats.

	Each beat's continuation runs at its metronome timestamp (minus
	``lookahead``).  It first queues the continuation for the next beat, then
	asks the generator for this beat's group and queues a playback trigger at
	the beat's exact timestamp.  Because the next beat is queued before any
	generation happens, computation time never shifts the musical timeline.

	The scheduler runs once: idle until ``start()``, running until ``stop()``
	or a fatal error, then stopped for good.
	"""

	def __init__ (
		self,
		engine: SoundEngineLike,
		generator: sinegroups.stochastic.GeneratorLike,
		beats_per_second: float = sinegroups.constants.BEATS_PER_SECOND,
		lookahead: float = 0.0,
		start_beat: int = 0,
		spin_wait: bool = False,
		clock: typing.Callable[[], float] = time.perf_counter,
		_jitter_log: typing.Optional[typing.List[float]] = None
	) -> None:

		"""
		Parameters:
			engine: Sound engine receiving one ``play()`` per beat.
			generator: Produces the group for each beat.  May be replaced while
				running; each beat reads the current value.
			beats_per_second: Tempo (π by default, about 0.318 s per beat).
			lookahead: Seconds ahead of each beat at which its group is
				generated.  Must be shorter than one beat.
			start_beat: Beat index of the first group.
			spin_wait: When True, sleep to within 1 ms of each timer and
				busy-wait the rest.  Tighter timing for extra CPU.
			clock: Monotonic clock in seconds.
			_jitter_log: Optional list that receives the lateness (seconds) of
				every playback trigger.  For benchmarking.
		"""

		if not beats_per_second > 0:
			raise ValueError("Tempo must be positive")

		if not 0 <= lookahead < 1.0 / beats_per_second:
			raise ValueError("lookahead must be at least 0 and shorter than one beat")

		if start_beat < 0:
			raise ValueError("start_beat must be non-negative")

		self.engine = engine
		self.generator = generator
		self.beats_per_second = beats_per_second
		self.lookahead = lookahead
		self.start_beat = start_beat
		self._clock = clock
		self._spin_wait = spin_wait
		self._spin_threshold: float = 0.001
		self._jitter_log = _jitter_log

		# Render mode: simulate time instead of waiting for it, stop after render_beats.
		self.render_mode: bool = False
		self.render_beats: typing.Optional[int] = None
		self._simulated_time: float = 0.0

		self.metronome: typing.Optional[sinegroups.metronome.Metronome] = None
		self.current_beat: int = -1
		self.running = False
		self.error: typing.Optional[BaseException] = None
		self.task: typing.Optional[asyncio.Task] = None
		self.events = sinegroups.event_emitter.EventEmitter()

		self._started = False
		self._timers: typing.List[TimerEntry] = []
		self._timer_counter = itertools.count()

	@property
	def seconds_per_beat (self) -> float:
		return 1.0 / self.beats_per_second

	def now (self) -> float:

		"""Current time on the scheduler's timeline (simulated in render mode)."""

		if self.render_mode:
			return self._simulated_time

		return self._clock()

	def on_event (self, event_name: str, callback: typing.Callable[..., typing.Any]) -> None:

		"""
		Register a callback for ``start``, ``beat``, ``play`` or ``stop``.
		"""

		self.events.on(event_name, callback)

	async def start (self) -> None:

		"""
		Open the engine, fix the metronome origin and queue the first beat.

		Raises ``EngineUnavailable`` straight from the engine.  Calling this
		while running does nothing; calling it after ``stop()`` is an error.
		"""

		if self.running:
			return

		if self._started:
			raise RuntimeError("Scheduler has already run; create a new session to play again")

		self.engine.open()

		self._started = True
		self.running = True

		# Beat 0 lands one lookahead from now so its generation is never late.
		self.metronome = sinegroups.metronome.Metronome(
			origin = self.now() + self.lookahead,
			beats_per_second = self.beats_per_second
		)

		self.schedule(self._continuation_time(self.start_beat), "beat", self._advance_beat, self.start_beat)
		self.task = asyncio.create_task(self._run_loop())

		logger.info(f"Scheduler started at {self.metronome.bpm:.2f} BPM")

		self.events.emit("start")

	async def stop (self) -> None:

		"""
		Halt the beat chain immediately and close the engine.

		Playback triggers still waiting in the queue are discarded.
		"""

		if not self._started or self.metronome is None:
			return

		logger.info("Stopping scheduler...")

		self.running = False

		if self.task is not None and not self.task.done():
			self.task.cancel()
			await asyncio.wait([self.task])

		if self._timers:
			logger.debug(f"Discarding {len(self._timers)} queued actions")
			self._timers = []

		await self.events.cancel_pending()

		self.engine.close()
		self.metronome = None

		logger.info(f"Scheduler stopped after beat {self.current_beat}")

		self.events.emit("stop")

	async def wait (self) -> None:

		"""
		Wait for the beat chain to end and re-raise the error that ended it, if any.
		"""

		if self.task is not None:
			await asyncio.wait([self.task])

		if self.error is not None:
			raise self.error

	def schedule (self, timestamp: float, label: str, action: typing.Callable[..., None], *args: typing.Any) -> None:

		"""
		Queue ``action(*args)`` to run at ``timestamp``.

		Raises ``SchedulingFailure`` if the scheduler is not running or the
		timestamp is not a finite number.
		"""

		if not self.running:
			raise sinegroups.errors.SchedulingFailure(f"Cannot schedule {label!r}: scheduler is not running")

		if not math.isfinite(timestamp):
			raise sinegroups.errors.SchedulingFailure(f"Cannot schedule {label!r} at timestamp {timestamp!r}")

		heapq.heappush(self._timers, TimerEntry(timestamp, next(self._timer_counter), label, action, args))

	def _continuation_time (self, beat: int) -> float:

		assert self.metronome is not None, "Metronome must exist while running"

		return self.metronome.timestamp_for(beat) - self.lookahead

	def _advance_beat (self, beat: int) -> None:

		"""Queue the next beat, then generate this beat's group and queue its playback."""

		assert self.metronome is not None, "Metronome must exist while running"

		if self.render_mode and self.render_beats is not None and beat >= self.start_beat + self.render_beats:
			self.running = False
			return

		self.current_beat = beat
		self.schedule(self._continuation_time(beat + 1), "beat", self._advance_beat, beat + 1)

		self.events.emit("beat", beat)

		group = self.generator.generate_group(beat)

		try:
			self.schedule(self.metronome.timestamp_for(beat), "play", self._play, group)
		except sinegroups.errors.SchedulingFailure:
			logger.exception(f"Playback for beat {beat} dropped")

	def _play (self, group: sinegroups.stochastic.GroupParameters) -> None:

		self.engine.play(group)
		self.events.emit("play", group)

	async def _sleep_until (self, timestamp: float) -> None:

		sleep_time = timestamp - self._clock()

		if sleep_time <= 0:
			return

		if self._spin_wait and sleep_time > self._spin_threshold:
			await asyncio.sleep(sleep_time - self._spin_threshold)
			while self._clock() < timestamp:
				pass
		else:
			await asyncio.sleep(sleep_time)

	def _run_due (self, now: float) -> None:

		"""Run every queued action whose timestamp has passed, in order."""

		while self.running and self._timers and self._timers[0].timestamp <= now:

			entry = heapq.heappop(self._timers)
			lateness = now - entry.timestamp

			if entry.label == "play" and self._jitter_log is not None:
				self._jitter_log.append(lateness)

			if not self.render_mode and lateness > self.seconds_per_beat:
				logger.warning(f"{entry.label} action running {lateness:.3f}s late")

			try:
				entry.action(*entry.args)

			except (sinegroups.errors.DomainViolation, sinegroups.errors.EngineUnavailable) as e:
				logger.error(f"Stopping piece: {e}")
				self.error = e
				self.running = False

			except Exception:
				logger.exception(f"{entry.label} action failed (beat {self.current_beat})")

	async def _run_loop (self) -> None:

		"""Sleep until the earliest queued action, run everything due, repeat."""

		while self.running and self._timers:

			timestamp = self._timers[0].timestamp

			if self.render_mode:
				self._simulated_time = max(self._simulated_time, timestamp)
			else:
				await self._sleep_until(timestamp)

			self._run_due(self.now())

			if self.render_mode:
				# Let listener tasks run between simulated beats.
				await asyncio.sleep(0)

		if self.running:
			logger.warning("Timer queue is empty; beat chain ended")
			self.running = False
