from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional


class RenderSurfaceError(RuntimeError):
    """Raised when the engine cannot acquire a surface to draw on."""


@dataclass
class PluginParameter:
    """
    Description of a single configurable engine parameter.

    For numeric parameters (type == "int" or "float"), `minimum` and
    `maximum` bound the accepted values; for "enum" parameters, `choices`
    lists the accepted values.
    """
    name: str
    label: str
    type: str  # "int", "float", "bool", "enum", "color"
    default: Any
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    choices: Optional[List[Any]] = None
    description: str = ""


class Phase(str, Enum):
    """Discrete mode selecting the force law applied by the particle field."""

    IDLE = "idle"
    CHARGING = "charging"
    WARP = "warp"
    FORMING = "forming"
    EXPLODE = "explode"
    FINAL = "final"

    @classmethod
    def coerce(cls, value: Any) -> Optional["Phase"]:
        """Return the Phase named by *value*, or None if it names none."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().lower()
            for phase in cls:
                if key == phase.value:
                    return phase
            # Also accept the short name "charge".
            if key == "charge":
                return cls.CHARGING
        return None


SETTLE_PHASES = (Phase.FORMING, Phase.FINAL)


@dataclass(frozen=True)
class Point:
    """A screen coordinate on a glyph silhouette."""

    x: float
    y: float


@dataclass
class Particle:
    """
    Single simulated point.

    Positions and velocities are in widget coordinates (logical pixels).
    The velocity fields change meaning with the phase: drift heading in
    idle, radial thrust in warp, residual momentum while settling.
    """

    x: float
    y: float
    origin_x: float
    origin_y: float
    target_x: float
    target_y: float
    vx: float
    vy: float
    size: float  # disc radius, fixed at creation
    color: str  # "#rrggbb", replaced by every set_targets()
    alpha: float  # fixed opacity in [0.3, 0.8]
    friction: float  # velocity damping while settling
    ease: float  # fraction of the remaining distance covered per frame
