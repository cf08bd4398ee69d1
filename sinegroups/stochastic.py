import dataclasses
import logging
import random
import typing

import sinegroups.constants
import sinegroups.errors
import sinegroups.harmonicity


logger = logging.getLogger(__name__)


def harmonic_series_ratios () -> typing.List[int]:

	"""The harmonic series ratios 1 through 12."""

	return [k + 1 for k in range(sinegroups.constants.NUMBER_OF_PARTIALS)]


def fundamental_frequencies (base_frequency: float = sinegroups.constants.BASE_FREQUENCY) -> typing.List[float]:

	"""
	Fundamentals of the voices in a group: the harmonic series on top of the base pitch.

	For 55 Hz this is 55, 110, 165 ... 660.
	"""

	return [base_frequency * ratio for ratio in harmonic_series_ratios()]


def fundamental_volumes () -> typing.List[float]:

	"""Nominal partial volumes, halving from 1.0: ``2 ** -(k - 1)`` for harmonic ``k``."""

	return [2.0 ** -k for k in range(sinegroups.constants.NUMBER_OF_PARTIALS)]


@dataclasses.dataclass (frozen=True)
class VoiceParameters:

	"""
	One sine tone: a fundamental plus a ratio and a volume for each partial.

	If the first ratio is not 1 the heard fundamental is ``fundamental * ratios[0]``.
	"""

	fundamental: float
	ratios: typing.Tuple[float, ...]
	volumes: typing.Tuple[float, ...]

	@property
	def frequencies (self) -> typing.List[float]:

		"""Absolute frequency of each partial in Hz."""

		return [self.fundamental * ratio for ratio in self.ratios]


@dataclasses.dataclass (frozen=True)
class GroupParameters:

	"""
	Everything the sound engine needs to render one group.
	"""

	beat: int
	voices: typing.Tuple[VoiceParameters, ...]
	balance: float
	group_volume: float
	duration: float

	@property
	def fundamentals (self) -> typing.List[float]:
		return [voice.fundamental for voice in self.voices]

	@property
	def ratios_grid (self) -> typing.List[typing.List[float]]:
		return [list(voice.ratios) for voice in self.voices]

	@property
	def volumes_grid (self) -> typing.List[typing.List[float]]:
		return [list(voice.volumes) for voice in self.voices]


@typing.runtime_checkable
class GeneratorLike (typing.Protocol):

	"""
	Anything that can produce the parameters for a beat.

	The session holds one of these and can swap it while the piece runs.
	"""

	def generate_group (self, beat: int) -> GroupParameters:
		...


class StochasticGenerator:

	"""
	Samples the parameters of one group from the variances at a beat.

	Every value is its nominal harmonic value plus a uniform offset bounded by
	the matching variance:

	- partial ratio ``k``: ``k + U(-fv, fv)``
	- partial volume ``k``: ``min(1, |2 ** -(k - 1) + U(-pv, pv)|)``
	- balance: ``0.5 + U(-bv, bv)``
	- group volume: ``max_volume * overall_volume * (1 - U(0, gv))``

	The absolute value in the partial volume means a large negative offset
	folds back up instead of flooring at zero.  Group volume is only ever
	reduced from its ceiling.

	Draws happen in a fixed order (every voice's ratios, then every voice's
	volumes, then balance, then group volume), so a seeded ``random.Random``
	reproduces a group exactly.
	"""

	def __init__ (
		self,
		rng: typing.Optional[random.Random] = None,
		base_frequency: float = sinegroups.constants.BASE_FREQUENCY,
		group_duration: float = sinegroups.constants.GROUP_DURATION,
		max_volume: float = sinegroups.constants.VOLUME_MAX,
		curve: typing.Optional[sinegroups.harmonicity.Signal] = None
	) -> None:

		"""
		Parameters:
			rng: Random source (a fresh unseeded ``random.Random`` when omitted).
			base_frequency: Pitch the harmonic series is built on, in Hz.
			group_duration: Length of each group in seconds.
			max_volume: Group volume ceiling.
			curve: Harmonicity signal (defaults to the piece's two-minute curve).
		"""

		if base_frequency <= 0:
			raise ValueError("base_frequency must be positive")

		if group_duration <= 0:
			raise ValueError("group_duration must be positive")

		if not 0 <= max_volume <= 1:
			raise ValueError("max_volume must be between 0 and 1")

		self.rng = rng if rng is not None else random.Random()
		self.group_duration = group_duration
		self.max_volume = max_volume
		self.curve = curve

		self._ratios = harmonic_series_ratios()
		self._fundamentals = fundamental_frequencies(base_frequency)
		self._nominal_volumes = fundamental_volumes()

	def _ranged (self, low: float, high: float) -> float:
		return self.rng.uniform(low, high)

	def stochastic_partials (self, frequency_variance: float) -> typing.Tuple[float, ...]:

		"""Twelve partial ratios, each ``k`` offset by up to ± the frequency variance."""

		return tuple(
			ratio + self._ranged(-frequency_variance, frequency_variance)
			for ratio in self._ratios
		)

	def stochastic_partial_volumes (self, partial_volume_variance: float) -> typing.Tuple[float, ...]:

		"""Twelve partial volumes, folded positive then clipped at 1."""

		volumes = []

		for nominal in self._nominal_volumes:
			offset = self._ranged(-partial_volume_variance, partial_volume_variance)
			volume = min(1.0, abs(nominal + offset))

			if not 0.0 <= volume <= 1.0:
				raise sinegroups.errors.DomainViolation(f"Partial volume {volume!r} outside [0, 1]")

			volumes.append(volume)

		return tuple(volumes)

	def stochastic_balance (self, balance_variance: float) -> float:

		"""Balance around the centre (0.5); not clamped since the variance never exceeds 0.5."""

		balance = 0.5 + self._ranged(-balance_variance, balance_variance)

		if not 0.0 <= balance <= 1.0:
			raise sinegroups.errors.DomainViolation(f"Balance {balance!r} outside [0, 1]")

		return balance

	def stochastic_group_volume (self, group_volume_variance: float, overall_volume: float) -> float:

		"""Group volume, reduced from the ceiling by up to the variance."""

		ceiling = self.max_volume * overall_volume
		offset = self._ranged(0, group_volume_variance)
		volume = ceiling * (1 - offset)

		if not 0.0 <= volume <= ceiling:
			raise sinegroups.errors.DomainViolation(f"Group volume {volume!r} outside [0, {ceiling}]")

		return volume

	def generate_group (self, beat: int) -> GroupParameters:

		"""
		Sample a complete group for ``beat``.

		All voices share the fundamental table and this beat's variances, but
		each voice draws its own partials.
		"""

		bounds = sinegroups.harmonicity.variances(beat, self.curve)

		ratios_list = [self.stochastic_partials(bounds.frequency) for _ in range(sinegroups.constants.NUMBER_OF_PARTIALS)]
		volumes_list = [self.stochastic_partial_volumes(bounds.partial_volume) for _ in range(sinegroups.constants.NUMBER_OF_PARTIALS)]
		balance = self.stochastic_balance(bounds.balance)
		group_volume = self.stochastic_group_volume(bounds.group_volume, bounds.overall_volume)

		voices = tuple(
			VoiceParameters(fundamental=fundamental, ratios=ratios, volumes=volumes)
			for fundamental, ratios, volumes in zip(self._fundamentals, ratios_list, volumes_list)
		)

		logger.debug(f"Beat {beat}: balance {balance:.3f}, volume {group_volume:.4f}, frequency variance {bounds.frequency:.3f}")

		return GroupParameters(
			beat = beat,
			voices = voices,
			balance = balance,
			group_volume = group_volume,
			duration = self.group_duration
		)
