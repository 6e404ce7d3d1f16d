from __future__ import annotations

import math
import random
import sys
from typing import Any, Iterable, Optional, Set

from chronos_app.engine_api import Particle, Phase

EXPLODE_SPEED_MIN = 5.0
EXPLODE_SPEED_MAX = 20.0


def inject_explosion(particles: Iterable[Particle], rng: random.Random) -> None:
    """Give every particle a random heading and a speed in [5, 20]."""
    span = EXPLODE_SPEED_MAX - EXPLODE_SPEED_MIN
    for p in particles:
        angle = rng.random() * 2.0 * math.pi
        speed = EXPLODE_SPEED_MIN + rng.random() * span
        p.vx = math.cos(angle) * speed
        p.vy = math.sin(angle) * speed


def clamp_progress(value: Any) -> float:
    try:
        p = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(p):
        return 0.0
    return max(0.0, min(1.0, p))


class PhaseController:
    """
    Current phase and progress of the particle field.

    Phase changes are plain state changes consumed by the next advance(),
    except entering EXPLODE, which injects outward velocity once.
    """

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self.rng = rng or random.Random()
        self.phase: Phase = Phase.IDLE
        self.progress: float = 0.0
        self._warned: Set[str] = set()

    def set_progress(self, value: Any) -> float:
        """Store *value* clamped to [0, 1] and return the stored value."""
        self.progress = clamp_progress(value)
        return self.progress

    def set_phase(self, value: Any, particles: Iterable[Particle] = ()) -> Phase:
        """
        Record the new phase and return it.

        Unrecognized values fall back to IDLE rather than raising: the
        render loop keeps running whatever the caller passes.
        """
        phase = Phase.coerce(value)
        if phase is None:
            key = repr(value)
            if key not in self._warned:
                self._warned.add(key)
                print(f"[chronos/phase] Unknown phase {key}, falling back to idle.", file=sys.stderr)
            phase = Phase.IDLE

        self.phase = phase
        if phase is Phase.EXPLODE:
            inject_explosion(particles, self.rng)
        return phase
