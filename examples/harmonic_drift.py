import logging
import math

import sinegroups
import sinegroups.stochastic

logging.basicConfig(level=logging.INFO)


class PrintEngine:

	"""Engine that logs a summary of each group instead of sounding it."""

	def open (self) -> None:
		pass

	def play (self, group: sinegroups.stochastic.GroupParameters) -> None:
		drift = max(abs(ratio - k) for ratios in group.ratios_grid for k, ratio in enumerate(ratios, start=1))
		logging.info(f"Beat {group.beat:4d}  balance {group.balance:.2f}  volume {group.group_volume:.3f}  max drift {drift:.3f}")

	def close (self) -> None:
		pass


# Render half a cycle in simulated time: from fully inharmonic to fully harmonic.
session = sinegroups.PieceSession(PrintEngine(), seed=7)
session.render(int(60 * math.pi) + 1)
