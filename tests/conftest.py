import typing

import pytest

import sinegroups.errors
import sinegroups.stochastic


class FakeEngine:

	"""Sound engine stub that keeps every group it is asked to play."""

	def __init__ (self, fail_on_open: bool = False) -> None:

		self.groups: typing.List[sinegroups.stochastic.GroupParameters] = []
		self.fail_on_open = fail_on_open
		self.opened = False
		self.closed = False

	def open (self) -> None:

		"""Pretend to connect, or refuse when asked to."""

		if self.fail_on_open:
			raise sinegroups.errors.EngineUnavailable("Fake engine refused to open")

		self.opened = True

	def play (self, group: sinegroups.stochastic.GroupParameters) -> None:

		"""Record the group instead of rendering it."""

		self.groups.append(group)

	def close (self) -> None:

		"""Mark the engine closed."""

		self.closed = True

	@property
	def beats (self) -> typing.List[int]:
		return [group.beat for group in self.groups]


class FixedRng:

	"""Random source stub that always returns one end of the requested range."""

	def __init__ (self, end: str = "low") -> None:

		self.end = end
		self.calls = 0

	def uniform (self, low: float, high: float) -> float:

		self.calls += 1

		return low if self.end == "low" else high


@pytest.fixture
def engine () -> FakeEngine:

	"""A fresh fake engine."""

	return FakeEngine()
