import logging

import sinegroups
import sinegroups.harmonicity

logging.basicConfig(level=logging.INFO)

# Send groups to a SuperCollider server running a "/sine_group" responder.
# 50 ms of latency lets the server start each group on the exact sample.
engine = sinegroups.OscEngine(host="127.0.0.1", port=57120, latency=0.05)

session = sinegroups.PieceSession(engine, seed=1945, lookahead=0.05)


def show_beat (beat: int) -> None:

	# One line every 10 beats keeps the log readable at π beats per second.
	if beat % 10 == 0:
		h = sinegroups.harmonicity.harmonicity(beat)
		logging.info(f"Beat {beat}: harmonicity {h:.2f}")


session.on_event("beat", show_beat)
session.play()
