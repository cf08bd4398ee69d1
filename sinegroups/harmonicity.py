"""Harmonicity curve and the variances derived from it.

Harmonicity is the single large-scale control of the piece. It is a sine wave
rescaled into ``0..1``:

    h(t) = (sin(t / 60 - pi / 2) + 1) / 2

At beat 0 it is 0 (fully inharmonic), at beat 60π it is 1 (fully harmonic), and
one full cycle lasts 120π beats.  Every random perturbation in a group is
bounded by a variance that shrinks as harmonicity grows, so the piece drifts
between pure harmonic series and near-random clouds of sine waves.
"""

import dataclasses
import math
import typing

import sinegroups.constants
import sinegroups.errors


class Signal:

	"""
	Abstract base class for a time-varying control signal.
	"""

	def value_at (self, beat: float) -> float:
		raise NotImplementedError


class HarmonicityCurve (Signal):

	"""
	A shifted, rescaled sine that starts at its minimum.

	With the default cycle of 120π beats this is the same curve as ``harmonicity()``.
	"""

	def __init__ (self, cycle_beats: float = sinegroups.constants.HARMONICITY_CYCLE_BEATS) -> None:

		"""
		Initialize the curve.

		Parameters:
			cycle_beats: How many beats for one full cycle (default 120π).
		"""

		if not cycle_beats > 0:
			raise ValueError("cycle_beats must be positive")

		self.cycle_beats = cycle_beats

		# sin(t / 60) completes one cycle every 120π beats.
		self._divisor = cycle_beats / (2 * math.pi)

	def value_at (self, beat: float) -> float:

		"""
		Compute harmonicity at a given beat, in ``0..1``.
		"""

		return (math.sin(beat / self._divisor - math.pi / 2) + 1) / 2


def harmonicity (t: float) -> float:

	"""Harmonicity of the piece at beat ``t`` (pure, total on all reals)."""

	return (math.sin(t / 60 - math.pi / 2) + 1) / 2


@dataclasses.dataclass (frozen=True)
class VarianceSet:

	"""
	Perturbation bounds for one beat.

	``group_volume``, ``frequency``, ``partial_volume`` and ``balance`` are the
	four variances; ``overall_volume`` is the envelope that scales group volume.
	"""

	group_volume: float
	frequency: float
	partial_volume: float
	balance: float
	overall_volume: float


def _check_range (name: str, value: float, low: float, high: float) -> float:

	"""Return ``value`` unchanged, or raise ``DomainViolation`` if it is outside ``[low, high]``."""

	if not low <= value <= high:
		raise sinegroups.errors.DomainViolation(f"{name} {value!r} outside [{low}, {high}]")

	return value


def group_volume_variance_for (h: float) -> float:
	return _check_range("group volume variance", 1 - h, 0.0, 1.0)


def frequency_variance_for (h: float) -> float:
	return _check_range("frequency variance", (1 - h) / 4, 0.0, 0.25)


def partial_volume_variance_for (h: float) -> float:
	return _check_range("partial volume variance", 1 - h, 0.0, 1.0)


def balance_variance_for (h: float) -> float:
	return _check_range("balance variance", (1 - h) / 2, 0.0, 0.5)


def overall_volume_for (h: float) -> float:
	return _check_range("overall volume", 0.5 + h / 2, 0.5, 1.0)


def group_volume_variance (t: float) -> float:

	"""How far group volume may be reduced below its ceiling: ``1 - h``."""

	return group_volume_variance_for(harmonicity(t))


def frequency_variance (t: float) -> float:

	"""
	How far a partial ratio may drift from its integer: ``(1 - h) / 4``.

	A drift of 0.5 would make every frequency reachable, but above 0.25 the
	difference is hard to hear.
	"""

	return frequency_variance_for(harmonicity(t))


def partial_volume_variance (t: float) -> float:

	"""How far a partial volume may drift from its nominal value: ``1 - h``."""

	return partial_volume_variance_for(harmonicity(t))


def balance_variance (t: float) -> float:

	"""How far balance may drift from centre: ``(1 - h) / 2``."""

	return balance_variance_for(harmonicity(t))


def overall_volume (t: float) -> float:

	"""
	Volume envelope ``0.5 + h / 2``.

	Inharmonic passages sound louder, so the envelope pulls them down to half
	the ceiling at most.
	"""

	return overall_volume_for(harmonicity(t))


def variances (t: float, curve: typing.Optional[Signal] = None) -> VarianceSet:

	"""
	All perturbation bounds for beat ``t`` from a single evaluation of the curve.

	Parameters:
		t: Beat index, treated as continuous time.
		curve: Harmonicity signal to read (defaults to ``harmonicity()``).
	"""

	h = harmonicity(t) if curve is None else curve.value_at(t)
	_check_range("harmonicity", h, 0.0, 1.0)

	return VarianceSet(
		group_volume = group_volume_variance_for(h),
		frequency = frequency_variance_for(h),
		partial_volume = partial_volume_variance_for(h),
		balance = balance_variance_for(h),
		overall_volume = overall_volume_for(h)
	)
