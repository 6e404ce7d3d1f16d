from __future__ import annotations

"""
Particle field engine.

The field owns a fixed number of Particle records and advances them once
per frame with the force law of the current phase:

  - idle:      ballistic drift with elastic wall bounce,
  - charging:  attraction to the viewport center, damped,
  - warp:      radial outward streaks that respawn near the center,
  - forming /
    final:     easing towards the assigned glyph targets,
  - explode:   ballistic flight after a one-time velocity injection.

Particles stay plain data: every force law is a function in _FORCE_LAWS
and the field picks one per frame.
"""

import math
import random
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from PyQt6.QtCore import QLineF, QPointF, QRectF, Qt
from PyQt6.QtGui import QColor, QPainter, QPen, QPolygonF

from chronos_app.engine_api import Particle, Phase, Point, SETTLE_PHASES
from chronos_app.field_config import coerce_field_config
from chronos_app.phases import PhaseController

TARGET_JITTER = 5.0
CHARGE_FORCE = 100.0
CHARGE_DAMPING = 0.9
WARP_BASE_SPEED = 20.0
WARP_SPEED_GAIN = 30.0
WARP_RESPAWN_JITTER = 50.0
STREAK_LENGTH = 2.0


class ParticleField:
    """
    Fixed-size particle population living in a width x height viewport.

    The field does not own a widget; ParticleFieldWidget drives advance()
    from its frame timer and calls paint() from paintEvent().
    """

    def __init__(
        self,
        width: float,
        height: float,
        config: Optional[Dict[str, Any]] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.config: Dict[str, Any] = coerce_field_config(config or {})
        self.rng = rng or random.Random()
        self.controller = PhaseController(self.rng)

        self.width: float = 0.0
        self.height: float = 0.0
        self.resize(width, height)

        self.particles: List[Particle] = []
        # Phase used by the last advance(); paint() draws streaks for warp.
        self._drawn_phase: Phase = Phase.IDLE

    # ------------------------------------------------------------------ #
    # State accessors                                                    #
    # ------------------------------------------------------------------ #

    @property
    def phase(self) -> Phase:
        return self.controller.phase

    @property
    def progress(self) -> float:
        return self.controller.progress

    @property
    def center(self) -> Tuple[float, float]:
        return self.width / 2.0, self.height / 2.0

    def __len__(self) -> int:
        return len(self.particles)

    # ------------------------------------------------------------------ #
    # Public operations                                                  #
    # ------------------------------------------------------------------ #

    def resize(self, width: float, height: float) -> None:
        """Store the new viewport size used by bounds checks and sampling."""
        self.width = max(0.0, float(width))
        self.height = max(0.0, float(height))

    def create(self, count: Optional[int] = None) -> None:
        """
        Allocate *count* particles at random positions in the viewport.

        Without *count*, the configured particle_count is used. Any
        previous population is replaced.
        """
        if count is None:
            count = int(self.config["particle_count"])
        count = max(0, int(count))
        color = str(self.config["default_color"])
        rng = self.rng

        particles: List[Particle] = []
        for _ in range(count):
            x = rng.random() * self.width
            y = rng.random() * self.height
            particles.append(
                Particle(
                    x=x,
                    y=y,
                    origin_x=x,
                    origin_y=y,
                    target_x=x,
                    target_y=y,
                    vx=(rng.random() - 0.5) * 2.0,
                    vy=(rng.random() - 0.5) * 2.0,
                    size=1.0 + rng.random() * 2.0,
                    color=color,
                    alpha=0.3 + rng.random() * 0.5,
                    friction=0.95 + rng.random() * 0.03,
                    ease=0.05 + rng.random() * 0.1,
                )
            )
        self.particles = particles

    def set_targets(self, points: Sequence[Point], color: Optional[str] = None) -> None:
        """
        Assign glyph targets (with per-assignment jitter) and recolor.

        Particle i takes points[i % len(points)]. An empty point set keeps
        the previous targets and colors.
        """
        if not points:
            return

        if color is None or not QColor.isValidColor(str(color)):
            color = str(self.config["default_color"])
        else:
            color = str(color)

        n_points = len(points)
        jitter = TARGET_JITTER * 2.0
        rng = self.rng
        for i, p in enumerate(self.particles):
            target = points[i % n_points]
            p.target_x = float(target.x) + (rng.random() - 0.5) * jitter
            p.target_y = float(target.y) + (rng.random() - 0.5) * jitter
            p.color = color

    def set_progress(self, value: Any) -> float:
        return self.controller.set_progress(value)

    def set_phase(self, value: Any) -> Phase:
        return self.controller.set_phase(value, self.particles)

    def advance(self, phase: Any = None) -> None:
        """Move every particle once with the force law of *phase*."""
        if phase is None:
            resolved = self.controller.phase
        else:
            resolved = Phase.coerce(phase) or Phase.IDLE
        law = _FORCE_LAWS.get(resolved, _advance_idle)
        law(self)
        self._drawn_phase = resolved

    # ------------------------------------------------------------------ #
    # Painting                                                           #
    # ------------------------------------------------------------------ #

    def paint(self, painter: QPainter, rect: Optional[QRectF] = None) -> None:
        """
        Paint the whole frame: opaque background, then every particle.

        The frame is redrawn from scratch each time, nothing is blended
        with the previous one.
        """
        if rect is None:
            rect = QRectF(0.0, 0.0, self.width, self.height)
        painter.fillRect(rect, QColor(str(self.config["background_color"])))

        painter.save()
        painter.setRenderHint(QPainter.RenderHint.Antialiasing, bool(self.config["antialiasing"]))
        streaks = self._drawn_phase is Phase.WARP
        if self.config["render_backend"] == "points_fast":
            self._paint_batched(painter, streaks)
        else:
            self._paint_each(painter, streaks)
        painter.restore()

    def _paint_each(self, painter: QPainter, streaks: bool) -> None:
        """One draw call per particle."""
        colors: Dict[str, QColor] = {}
        pen = QPen()
        pen.setWidthF(1.0)

        if streaks:
            painter.setBrush(Qt.BrushStyle.NoBrush)
        else:
            painter.setPen(QPen(Qt.PenStyle.NoPen))

        for p in self.particles:
            base = colors.get(p.color)
            if base is None:
                base = QColor(p.color)
                colors[p.color] = base
            c = QColor(base)
            c.setAlphaF(p.alpha)

            if streaks:
                pen.setColor(c)
                painter.setPen(pen)
                painter.drawLine(
                    QPointF(p.x, p.y),
                    QPointF(p.x - p.vx * STREAK_LENGTH, p.y - p.vy * STREAK_LENGTH),
                )
            else:
                painter.setBrush(c)
                r = p.size
                painter.drawEllipse(QRectF(p.x - r, p.y - r, 2.0 * r, 2.0 * r))

    def _paint_batched(self, painter: QPainter, streaks: bool) -> None:
        """Batch draw calls by (color, alpha bucket, size bucket)."""
        alpha_steps = int(self.config["alpha_quantization_steps"])
        size_bins = 3
        groups: Dict[Tuple[int, int, int, int, int], list] = {}
        rgb: Dict[str, Tuple[int, int, int]] = {}

        for p in self.particles:
            key_rgb = rgb.get(p.color)
            if key_rgb is None:
                c = QColor(p.color)
                key_rgb = (c.red(), c.green(), c.blue())
                rgb[p.color] = key_rgb

            a_bucket = int(max(0, min(alpha_steps - 1, round(p.alpha * (alpha_steps - 1)))))
            # Sizes live in [1, 3).
            s_bucket = 0 if streaks else int(max(0, min(size_bins - 1, (p.size - 1.0) / 2.0 * size_bins)))
            key = (key_rgb[0], key_rgb[1], key_rgb[2], a_bucket, s_bucket)

            if streaks:
                item = QLineF(p.x, p.y, p.x - p.vx * STREAK_LENGTH, p.y - p.vy * STREAK_LENGTH)
            else:
                item = QPointF(p.x, p.y)
            groups.setdefault(key, []).append(item)

        painter.setBrush(Qt.BrushStyle.NoBrush)
        pen = QPen()
        pen.setCapStyle(Qt.PenCapStyle.RoundCap)

        for (r, g, b, a_b, s_b), items in groups.items():
            color = QColor(r, g, b)
            color.setAlphaF(max(0.0, min(1.0, a_b / float(max(1, alpha_steps - 1)))))
            pen.setColor(color)
            if streaks:
                pen.setWidthF(1.0)
                painter.setPen(pen)
                painter.drawLines(items)
            else:
                # Diameter of the bucket's mid radius.
                pen.setWidthF(2.0 * (1.0 + (s_b + 0.5) * 2.0 / size_bins))
                painter.setPen(pen)
                painter.drawPoints(QPolygonF(items))


# ---------------------------------------------------------------------------
# Force laws
# ---------------------------------------------------------------------------


def _advance_idle(field: ParticleField) -> None:
    """Ballistic drift; flip the velocity component of an axis out of bounds."""
    w = field.width
    h = field.height
    for p in field.particles:
        p.x += p.vx
        p.y += p.vy
        if p.x < 0.0 or p.x > w:
            p.vx = -p.vx
        if p.y < 0.0 or p.y > h:
            p.vy = -p.vy


def _advance_charging(field: ParticleField) -> None:
    """Attract towards the center with force progress*100 / (distance + 1)."""
    cx, cy = field.center
    strength = field.progress * CHARGE_FORCE
    for p in field.particles:
        dx = cx - p.x
        dy = cy - p.y
        dist = math.sqrt(dx * dx + dy * dy)
        if dist > 0.0:
            force = strength / (dist + 1.0)
            p.vx += (dx / dist) * force
            p.vy += (dy / dist) * force
        p.x += p.vx
        p.y += p.vy
        p.vx *= CHARGE_DAMPING
        p.vy *= CHARGE_DAMPING


def _advance_warp(field: ParticleField) -> None:
    """Radial outward thrust, recomputed each frame; respawn near center."""
    cx, cy = field.center
    w = field.width
    h = field.height
    speed = WARP_BASE_SPEED + field.progress * WARP_SPEED_GAIN
    rng = field.rng
    for p in field.particles:
        dx = p.x - cx
        dy = p.y - cy
        dist = math.sqrt(dx * dx + dy * dy)
        if dist > 0.0:
            ux = dx / dist
            uy = dy / dist
        else:
            angle = rng.random() * 2.0 * math.pi
            ux = math.cos(angle)
            uy = math.sin(angle)
        p.vx = ux * speed
        p.vy = uy * speed
        p.x += p.vx
        p.y += p.vy
        if p.x < 0.0 or p.x > w or p.y < 0.0 or p.y > h:
            p.x = cx + (rng.random() - 0.5) * WARP_RESPAWN_JITTER
            p.y = cy + (rng.random() - 0.5) * WARP_RESPAWN_JITTER


def _advance_settle(field: ParticleField) -> None:
    """Ease towards the target, plus residual momentum damped by friction."""
    for p in field.particles:
        p.x += (p.target_x - p.x) * p.ease
        p.y += (p.target_y - p.y) * p.ease
        p.vx *= p.friction
        p.vy *= p.friction
        p.x += p.vx
        p.y += p.vy


def _advance_ballistic(field: ParticleField) -> None:
    """Free flight with no wall reflection (after an explosion)."""
    for p in field.particles:
        p.x += p.vx
        p.y += p.vy


_FORCE_LAWS: Dict[Phase, Callable[[ParticleField], None]] = {
    Phase.IDLE: _advance_idle,
    Phase.CHARGING: _advance_charging,
    Phase.WARP: _advance_warp,
    Phase.EXPLODE: _advance_ballistic,
}
for _phase in SETTLE_PHASES:
    _FORCE_LAWS[_phase] = _advance_settle
