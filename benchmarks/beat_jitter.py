"""Beat trigger jitter benchmark.

Plays the piece into a silent engine for a number of beats and measures how
late each playback trigger fires relative to its metronome timestamp.  Group
generation happens inside the timeline, so this also shows whether the
144-partial sampling ever pushes a trigger late.

Usage:
    python benchmarks/beat_jitter.py [--beats N] [--bps TEMPO] [--spin-wait]
                                     [--lookahead SECONDS] [--compare]

Options:
    --beats N           Number of beats to measure (default: 64)
    --bps TEMPO         Beats per second (default: π)
    --spin-wait         Busy-wait the final millisecond before each trigger
    --lookahead S       Generate each group S seconds ahead of its beat (default: 0)
    --compare           Run with and without spin-wait and print both
"""

import argparse
import asyncio
import logging
import math
import statistics

# Suppress scheduler logging during the benchmark.
logging.basicConfig(level=logging.ERROR)

import sinegroups.scheduler
import sinegroups.stochastic


class SilentEngine:

	"""Engine that accepts every group and does nothing with it."""

	def open (self) -> None:
		return None

	def play (self, group: sinegroups.stochastic.GroupParameters) -> None:
		return None

	def close (self) -> None:
		return None


def _run_benchmark (beats: int, beats_per_second: float, spin_wait: bool, lookahead: float) -> list[float]:

	"""Run the scheduler for *beats* beats and return per-trigger lateness (seconds)."""

	jitter_log: list[float] = []
	total_seconds = beats / beats_per_second

	async def _run () -> None:

		scheduler = sinegroups.scheduler.BeatScheduler(
			engine = SilentEngine(),
			generator = sinegroups.stochastic.StochasticGenerator(),
			beats_per_second = beats_per_second,
			lookahead = lookahead,
			spin_wait = spin_wait,
			_jitter_log = jitter_log,
		)
		await scheduler.start()
		await asyncio.sleep(total_seconds + 0.5 / beats_per_second)
		await scheduler.stop()

	asyncio.run(_run())

	return jitter_log[:beats]


def _print_report (jitter: list[float], beats_per_second: float, spin_wait: bool, lookahead: float) -> None:

	if not jitter:
		print("No jitter data collected.")
		return

	ms = sorted(j * 1000 for j in jitter)

	mode = "spin-wait ON" if spin_wait else "spin-wait OFF"

	print(f"\nBeat Jitter Benchmark: {len(jitter)} beats at {beats_per_second:.3f} beats/s ({mode}, lookahead {lookahead * 1000:.0f} ms)")
	print(f"{'─' * 62}")
	print(f"  Beat interval   : {1000 / beats_per_second:.3f} ms")
	print(f"  Mean lateness   : {statistics.mean(ms):>8.3f} ms")
	print(f"  Median lateness : {statistics.median(ms):>8.3f} ms")
	print(f"  P95 lateness    : {ms[int(len(ms) * 0.95)]:>8.3f} ms")
	print(f"  Max lateness    : {ms[-1]:>8.3f} ms")
	print(f"  Drift           : {(jitter[-1] - jitter[0]) * 1000:>+8.3f} ms  (non-accumulating)")
	print(f"{'─' * 62}")
	print()


def main () -> None:

	parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
	parser.add_argument("--beats",     type=int,   default=64,      help="Beats to measure (default: 64)")
	parser.add_argument("--bps",       type=float, default=math.pi, help="Beats per second (default: π)")
	parser.add_argument("--spin-wait", action="store_true",         help="Busy-wait the last millisecond")
	parser.add_argument("--lookahead", type=float, default=0.0,     help="Generation lookahead in seconds")
	parser.add_argument("--compare",   action="store_true",         help="Compare spin-wait off and on")
	args = parser.parse_args()

	modes = [False, True] if args.compare else [args.spin_wait]

	for spin_wait in modes:
		jitter = _run_benchmark(args.beats, args.bps, spin_wait, args.lookahead)
		_print_report(jitter, args.bps, spin_wait, args.lookahead)


if __name__ == "__main__":
	main()
