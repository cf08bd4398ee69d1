"""Piece constants.

The piece is built on a low A (55 Hz). Each group holds 12 voices of 12
partials each, lasts one second, and is triggered π times per second:

- `BASE_FREQUENCY = 55.0`: fundamental of the whole piece, in Hz
- `NUMBER_OF_PARTIALS = 12`: partials per voice and voices per group
- `GROUP_DURATION = 1.0`: length of one group, in seconds
- `VOLUME_MAX = 0.1`: ceiling for group volume, keeps 144 summed sines from clipping
- `BEATS_PER_SECOND = π`: roughly three groups sound at any time

`HARMONICITY_CYCLE_BEATS` is the period of the harmonicity curve: 120π beats,
which is two minutes at the default tempo.
"""

import math


BASE_FREQUENCY = 55.0
NUMBER_OF_PARTIALS = 12
GROUP_DURATION = 1.0
VOLUME_MAX = 0.1

BEATS_PER_SECOND = math.pi
BPM = BEATS_PER_SECOND * 60

HARMONICITY_CYCLE_BEATS = 120 * math.pi
