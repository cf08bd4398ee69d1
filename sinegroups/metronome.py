import dataclasses
import math

import sinegroups.constants


@dataclasses.dataclass (frozen=True)
class Metronome:

	"""
	Maps beat numbers to clock timestamps at a fixed tempo.

	The origin is the timestamp of beat 0 and is fixed when the piece starts.
	Timestamps are in the same units as the clock that produced the origin
	(``time.perf_counter()`` seconds during live playback).
	"""

	origin: float
	beats_per_second: float = sinegroups.constants.BEATS_PER_SECOND

	def __post_init__ (self) -> None:

		if not self.beats_per_second > 0:
			raise ValueError("Tempo must be positive")

		if not math.isfinite(self.origin):
			raise ValueError("Metronome origin must be finite")

	@classmethod
	def from_bpm (cls, bpm: float, origin: float) -> "Metronome":
		return cls(origin=origin, beats_per_second=bpm / 60.0)

	@property
	def bpm (self) -> float:
		return self.beats_per_second * 60.0

	@property
	def seconds_per_beat (self) -> float:
		return 1.0 / self.beats_per_second

	def timestamp_for (self, beat: int) -> float:

		"""
		Timestamp at which ``beat`` falls: ``origin + beat / tempo``.
		"""

		if beat < 0:
			raise ValueError("Beat must be non-negative")

		return self.origin + beat / self.beats_per_second

	def beat_at (self, timestamp: float) -> int:

		"""
		The beat in progress at ``timestamp`` (0 for any time before the origin).
		"""

		return max(0, math.floor((timestamp - self.origin) * self.beats_per_second))

	def next_beat (self, timestamp: float) -> int:

		"""
		The first beat that has not yet been reached at ``timestamp``.
		"""

		elapsed = (timestamp - self.origin) * self.beats_per_second

		if elapsed < 0:
			return 0

		return math.floor(elapsed) + 1
