"""
sinegroups - an endless aleatoric piece of additive sine groups.

Every π-th of a second a new group of 144 sine waves (12 tones of 12
partials) is generated and sent to a sound engine.  A large-scale
harmonicity curve controls how far each group's pitches, partial volumes,
balance and volume may stray from the pure harmonic series on 55 Hz, so the
piece drifts between perfectly harmonic chords and near-random clouds over a
two-minute cycle.

The package contains the parameter engine and the drift-free beat
scheduler.  Sound is produced elsewhere: ``OscEngine`` sends every group to
an external synth, or supply any object with ``open()``, ``play(group)`` and
``close()``.

Minimal example:

    ```python
    import sinegroups

    engine = sinegroups.OscEngine(host="127.0.0.1", port=57120)
    session = sinegroups.PieceSession(engine, seed=42)
    session.play()
    ```

Package-level exports: ``PieceSession``, ``PieceConfig``, ``OscEngine``,
``StochasticGenerator``, ``Metronome``.
"""

import sinegroups.config
import sinegroups.metronome
import sinegroups.osc
import sinegroups.session
import sinegroups.stochastic


PieceSession = sinegroups.session.PieceSession
PieceConfig = sinegroups.config.PieceConfig
OscEngine = sinegroups.osc.OscEngine
StochasticGenerator = sinegroups.stochastic.StochasticGenerator
Metronome = sinegroups.metronome.Metronome
