import asyncio
import logging
import random
import signal
import time
import typing

import sinegroups.config
import sinegroups.constants
import sinegroups.metronome
import sinegroups.osc
import sinegroups.scheduler
import sinegroups.stochastic


logger = logging.getLogger(__name__)


class PieceSession:

	"""
	One performance of the piece.

	The session holds the sound engine and the group generator, and creates
	the beat scheduler (with its metronome) when it starts.  The generator is
	a strategy object: ``set_generator()`` swaps it while the piece is
	running, and the next beat uses the new one.

	A session plays once.  Create a new one to play again.

	Example:
		```python
		session = sinegroups.PieceSession(engine, seed=42)
		session.play()
		```
	"""

	def __init__ (
		self,
		engine: sinegroups.scheduler.SoundEngineLike,
		generator: typing.Optional[sinegroups.stochastic.GeneratorLike] = None,
		seed: typing.Optional[int] = None,
		beats_per_second: float = sinegroups.constants.BEATS_PER_SECOND,
		lookahead: float = 0.0,
		start_beat: int = 0,
		spin_wait: bool = False,
		clock: typing.Callable[[], float] = time.perf_counter
	) -> None:

		"""
		Parameters:
			engine: Receives one group per beat.
			generator: Group generator.  Defaults to a ``StochasticGenerator``
				seeded with ``seed``.
			seed: Seed for the default generator.  The same seed reproduces
				the same groups.
			beats_per_second: Tempo (π by default).
			lookahead: Seconds ahead of each beat at which its group is generated.
			start_beat: Beat index of the first group.
			spin_wait: Busy-wait the last millisecond before each timer.
			clock: Monotonic clock in seconds.
		"""

		if generator is None:
			generator = sinegroups.stochastic.StochasticGenerator(rng=random.Random(seed))

		elif seed is not None:
			logger.warning("seed is ignored when a generator is supplied")

		self.engine = engine
		self._generator: sinegroups.stochastic.GeneratorLike = generator
		self._seed = seed
		self._beats_per_second = beats_per_second
		self._lookahead = lookahead
		self._start_beat = start_beat
		self._spin_wait = spin_wait
		self._clock = clock

		self._listeners: typing.List[typing.Tuple[str, typing.Callable[..., typing.Any]]] = []
		self._scheduler: typing.Optional[sinegroups.scheduler.BeatScheduler] = None

	@classmethod
	def from_config (
		cls,
		config: sinegroups.config.PieceConfig,
		engine: typing.Optional[sinegroups.scheduler.SoundEngineLike] = None
	) -> "PieceSession":

		"""Build a session from a ``PieceConfig``, sending to OSC unless another engine is given."""

		if engine is None:
			engine = sinegroups.osc.OscEngine(
				host = config.osc_host,
				port = config.osc_port,
				latency = config.osc_latency
			)

		generator = sinegroups.stochastic.StochasticGenerator(
			rng = random.Random(config.seed),
			base_frequency = config.base_frequency,
			group_duration = config.group_duration,
			max_volume = config.max_volume
		)

		return cls(
			engine = engine,
			generator = generator,
			beats_per_second = config.beats_per_second,
			lookahead = config.lookahead
		)

	@property
	def generator (self) -> sinegroups.stochastic.GeneratorLike:
		return self._generator

	def set_generator (self, generator: sinegroups.stochastic.GeneratorLike) -> None:

		"""
		Replace the group generator.  Takes effect from the next beat.
		"""

		if not isinstance(generator, sinegroups.stochastic.GeneratorLike):
			raise TypeError("generator must provide generate_group(beat)")

		self._generator = generator

		if self._scheduler is not None:
			self._scheduler.generator = generator

		logger.info(f"Generator replaced with {type(generator).__name__}")

	@property
	def scheduler (self) -> typing.Optional[sinegroups.scheduler.BeatScheduler]:
		return self._scheduler

	@property
	def metronome (self) -> typing.Optional[sinegroups.metronome.Metronome]:

		"""The running metronome, or ``None`` before start and after stop."""

		return self._scheduler.metronome if self._scheduler is not None else None

	@property
	def current_beat (self) -> int:
		return self._scheduler.current_beat if self._scheduler is not None else -1

	@property
	def running (self) -> bool:
		return self._scheduler is not None and self._scheduler.running

	def on_event (self, event_name: str, callback: typing.Callable[..., typing.Any]) -> None:

		"""
		Register a callback for ``start``, ``beat``, ``play`` or ``stop``.

		``beat`` receives the beat index and ``play`` the ``GroupParameters``.
		"""

		self._listeners.append((event_name, callback))

		if self._scheduler is not None:
			self._scheduler.on_event(event_name, callback)

	def _create_scheduler (self) -> sinegroups.scheduler.BeatScheduler:

		if self._scheduler is not None:
			raise RuntimeError("Session has already been started; create a new session to play again")

		self._scheduler = sinegroups.scheduler.BeatScheduler(
			engine = self.engine,
			generator = self._generator,
			beats_per_second = self._beats_per_second,
			lookahead = self._lookahead,
			start_beat = self._start_beat,
			spin_wait = self._spin_wait,
			clock = self._clock
		)

		for event_name, callback in self._listeners:
			self._scheduler.on_event(event_name, callback)

		return self._scheduler

	async def start (self) -> None:

		"""
		Start the piece.  Raises ``EngineUnavailable`` if the engine cannot be opened.
		"""

		if self.running:
			return

		scheduler = self._create_scheduler()

		try:
			await scheduler.start()
		except Exception:
			# Never started; leave the session startable.
			self._scheduler = None
			raise

	async def stop (self) -> None:

		"""
		Stop the piece.  Groups already queued for playback are not played.
		"""

		if self._scheduler is not None:
			await self._scheduler.stop()

	async def wait (self) -> None:

		"""
		Wait until the piece ends on its own, re-raising the error that ended it.
		"""

		if self._scheduler is not None:
			await self._scheduler.wait()

	async def run_for (self, seconds: float) -> None:

		"""
		Start, play for ``seconds`` of wall-clock time, then stop.
		"""

		await self.start()

		assert self._scheduler is not None and self._scheduler.task is not None, "Scheduler task should exist after start()"

		timer = asyncio.create_task(asyncio.sleep(seconds))

		try:
			await asyncio.wait(
				[timer, self._scheduler.task],
				return_when = asyncio.FIRST_COMPLETED
			)
		finally:
			timer.cancel()
			await self.stop()

		if self._scheduler.error is not None:
			raise self._scheduler.error

	def play (self) -> None:

		"""
		Play until interrupted (Ctrl+C or SIGTERM).

		This call blocks.
		"""

		try:
			asyncio.run(self._run_until_stopped())

		except KeyboardInterrupt:
			pass

	def render (self, beats: int) -> None:

		"""
		Run ``beats`` beats in simulated time, as fast as possible.

		The engine receives exactly the groups it would receive live, without
		waiting between them.
		"""

		if beats < 1:
			raise ValueError("render() needs at least one beat")

		asyncio.run(self._render(beats))

	async def _render (self, beats: int) -> None:

		scheduler = self._create_scheduler()
		scheduler.render_mode = True
		scheduler.render_beats = beats

		try:
			await scheduler.start()
		except Exception:
			self._scheduler = None
			raise

		try:
			await scheduler.wait()
		finally:
			await scheduler.stop()

		logger.info(f"Rendered {beats} beats")

	async def _run_until_stopped (self) -> None:

		logger.info("Playing. Press Ctrl+C to stop.")

		await self.start()

		stop_event = asyncio.Event()
		loop = asyncio.get_running_loop()

		def _request_stop () -> None:

			"""
			Signal handler to request a clean shutdown.
			"""

			stop_event.set()

		for sig in (signal.SIGINT, signal.SIGTERM):
			loop.add_signal_handler(sig, _request_stop)

		assert self._scheduler is not None and self._scheduler.task is not None, "Scheduler task should exist after start()"

		await asyncio.wait(
			[asyncio.create_task(stop_event.wait()), self._scheduler.task],
			return_when = asyncio.FIRST_COMPLETED
		)

		await self.stop()

		if self._scheduler.error is not None:
			raise self._scheduler.error


async def start_piece (engine: sinegroups.scheduler.SoundEngineLike, **kwargs: typing.Any) -> PieceSession:

	"""
	Create a session for ``engine`` and start it.  Keyword arguments go to ``PieceSession``.
	"""

	session = PieceSession(engine, **kwargs)
	await session.start()

	return session
