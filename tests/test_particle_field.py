from __future__ import annotations

import math
import random

import pytest
from PyQt6.QtGui import QColor, QImage, QPainter

from chronos_app.engine_api import Phase, Point
from chronos_app.particle_field import ParticleField


def _place(field: ParticleField, x: float, y: float, vx: float = 0.0, vy: float = 0.0):
    p = field.particles[0]
    p.x, p.y, p.vx, p.vy = x, y, vx, vy
    return p


# ---------------------------------------------------------------------------
# create / set_targets / set_progress
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("count", [1, 7, 250, 2500])
def test_create_allocates_exact_count_inside_viewport(rng, count):
    field = ParticleField(640, 480, rng=rng)
    field.create(count)

    assert len(field) == count
    for p in field.particles:
        assert 0.0 <= p.x <= 640.0
        assert 0.0 <= p.y <= 480.0
        assert 0.3 <= p.alpha <= 0.8
        assert 1.0 <= p.size <= 3.0
        assert 0.95 <= p.friction < 1.0
        assert 0.05 <= p.ease < 0.15
        assert -1.0 <= p.vx <= 1.0 and -1.0 <= p.vy <= 1.0
        assert (p.origin_x, p.origin_y) == (p.x, p.y)
        assert p.color == "#00f2ff"


def test_create_without_count_uses_configured_particle_count(rng):
    field = ParticleField(200, 200, config={"particle_count": 300}, rng=rng)
    field.create()
    assert len(field) == 300


def test_set_targets_wraps_points_by_index(field):
    points = [Point(100.0, 100.0), Point(400.0, 300.0), Point(700.0, 500.0)]
    field.set_targets(points, "#ff003c")

    for i, p in enumerate(field.particles):
        expected = points[i % len(points)]
        assert abs(p.target_x - expected.x) <= 5.0
        assert abs(p.target_y - expected.y) <= 5.0
        assert p.color == "#ff003c"


def test_set_targets_jitter_is_not_a_rigid_grid(field):
    field.set_targets([Point(50.0, 50.0)], "#ffffff")
    offsets = {(round(p.target_x, 6), round(p.target_y, 6)) for p in field.particles}
    assert len(offsets) > 1


def test_set_targets_with_no_points_is_a_no_op(field):
    field.set_targets([Point(10.0, 10.0)], "#ffd700")
    before = [(p.target_x, p.target_y, p.color) for p in field.particles]

    field.set_targets([], "#000000")

    assert [(p.target_x, p.target_y, p.color) for p in field.particles] == before


def test_set_targets_invalid_color_falls_back_to_default(field):
    field.set_targets([Point(1.0, 1.0)], "not-a-color")
    assert all(p.color == "#00f2ff" for p in field.particles)


@pytest.mark.parametrize(
    "value, expected",
    [(0.25, 0.25), (-3.0, 0.0), (7.5, 1.0), (float("nan"), 0.0), ("0.5", 0.5), (None, 0.0)],
)
def test_set_progress_is_clamped(field, value, expected):
    assert field.set_progress(value) == expected
    assert field.progress == expected


# ---------------------------------------------------------------------------
# Force laws
# ---------------------------------------------------------------------------


def test_idle_flips_velocity_of_the_axis_out_of_bounds(field):
    p = _place(field, 799.5, 300.0, vx=1.0, vy=0.5)

    field.advance(Phase.IDLE)
    assert p.x == pytest.approx(800.5)
    assert p.vx == -1.0
    assert p.vy == 0.5

    field.advance(Phase.IDLE)
    assert p.x == pytest.approx(799.5)


def test_idle_keeps_particles_within_one_step_of_the_viewport(field):
    for _ in range(2000):
        field.advance(Phase.IDLE)
        for p in field.particles:
            assert -abs(p.vx) <= p.x <= field.width + abs(p.vx)
            assert -abs(p.vy) <= p.y <= field.height + abs(p.vy)


def test_charging_pulls_towards_center_then_damps(field):
    field.set_progress(1.0)
    # 30/40/50 triangle: distance 50 from the center (400, 300).
    p = _place(field, 430.0, 340.0)

    field.advance(Phase.CHARGING)

    force = 100.0 / 51.0
    dvx = -0.6 * force
    dvy = -0.8 * force
    assert p.x == pytest.approx(430.0 + dvx)
    assert p.y == pytest.approx(340.0 + dvy)
    assert p.vx == pytest.approx(dvx * 0.9)
    assert p.vy == pytest.approx(dvy * 0.9)
    assert math.hypot(p.vx, p.vy) == pytest.approx(force * 0.9)


def test_charging_at_the_center_stays_finite(field):
    field.set_progress(1.0)
    p = _place(field, 400.0, 300.0)

    field.advance(Phase.CHARGING)

    assert (p.x, p.y) == (400.0, 300.0)
    assert (p.vx, p.vy) == (0.0, 0.0)


def test_warp_velocity_is_radial_and_recomputed(field):
    field.set_progress(0.5)
    p = _place(field, 410.0, 300.0, vx=-99.0, vy=42.0)

    field.advance(Phase.WARP)

    assert p.vx == pytest.approx(35.0)
    assert p.vy == pytest.approx(0.0)
    assert p.x == pytest.approx(445.0)


def test_warp_respawns_particles_leaving_the_viewport(field):
    p = _place(field, 795.0, 300.0)

    field.advance(Phase.WARP)

    assert abs(p.x - 400.0) <= 25.0
    assert abs(p.y - 300.0) <= 25.0


def test_warp_from_the_exact_center_picks_a_heading(field):
    field.set_progress(1.0)
    p = _place(field, 400.0, 300.0)

    field.advance(Phase.WARP)

    assert math.hypot(p.vx, p.vy) == pytest.approx(50.0)
    assert math.isfinite(p.x) and math.isfinite(p.y)


@pytest.mark.parametrize("phase", [Phase.FORMING, Phase.FINAL])
def test_settle_contracts_towards_target(rng, phase):
    field = ParticleField(800, 600, rng=rng)
    field.create(200)
    for p in field.particles:
        p.target_x = rng.random() * 800.0
        p.target_y = rng.random() * 600.0
        p.vx = p.vy = 0.0
        p.ease = 0.01 + rng.random() * 0.98

    before = [math.hypot(p.target_x - p.x, p.target_y - p.y) for p in field.particles]
    field.advance(phase)
    after = [math.hypot(p.target_x - p.x, p.target_y - p.y) for p in field.particles]

    for b, a in zip(before, after):
        if b > 0.0:
            assert a < b


def test_explode_injects_outward_velocity_once(field):
    field.set_phase(Phase.EXPLODE)

    speeds = [math.hypot(p.vx, p.vy) for p in field.particles]
    assert all(5.0 - 1e-9 <= s <= 20.0 + 1e-9 for s in speeds)

    headings = [math.atan2(p.vy, p.vx) for p in field.particles]
    assert len({round(h, 3) for h in headings}) > len(headings) // 2
    assert any(p.vx > 0 for p in field.particles) and any(p.vx < 0 for p in field.particles)

    # Advancing is ballistic and does not re-inject.
    velocities = [(p.vx, p.vy) for p in field.particles]
    field.advance()
    assert [(p.vx, p.vy) for p in field.particles] == velocities


def test_explode_flight_is_not_reflected(field):
    field.set_phase(Phase.EXPLODE)
    p = _place(field, 799.0, 300.0, vx=10.0, vy=0.0)

    field.advance()
    field.advance()

    assert p.x == pytest.approx(819.0)
    assert p.vx == 10.0


def test_unknown_phase_falls_back_to_idle(field, capsys):
    assert field.set_phase("hyperdrive") is Phase.IDLE
    assert "hyperdrive" in capsys.readouterr().err

    p = _place(field, 100.0, 100.0, vx=1.0, vy=-1.0)
    field.advance("hyperdrive")
    assert (p.x, p.y) == (101.0, 99.0)


def test_phase_names_are_coerced(field):
    assert field.set_phase("WARP") is Phase.WARP
    assert field.set_phase("charge") is Phase.CHARGING
    assert field.phase is Phase.CHARGING


def test_settle_converges_on_a_single_point():
    field = ParticleField(800, 600, rng=random.Random(7))
    field.create(100)
    field.set_targets([Point(50.0, 50.0)], "#fff")
    field.set_phase(Phase.FINAL)

    for _ in range(500):
        field.advance()

    for p in field.particles:
        assert abs(p.target_x - 50.0) <= 5.0 and abs(p.target_y - 50.0) <= 5.0
        assert math.hypot(p.x - p.target_x, p.y - p.target_y) < 5.0


def test_resize_updates_center(field):
    field.resize(1000, 200)
    assert field.center == (500.0, 100.0)
    field.resize(-5, 10)
    assert (field.width, field.height) == (0.0, 10.0)


# ---------------------------------------------------------------------------
# Painting
# ---------------------------------------------------------------------------


def _render(field: ParticleField) -> QImage:
    image = QImage(int(field.width), int(field.height), QImage.Format.Format_RGB32)
    painter = QPainter(image)
    try:
        field.paint(painter)
    finally:
        painter.end()
    return image


@pytest.mark.parametrize("backend", ["ellipses", "points_fast"])
def test_paint_fills_background_and_draws_discs(qapp, backend):
    field = ParticleField(200, 150, config={"render_backend": backend}, rng=random.Random(3))
    field.create(1)
    p = _place(field, 100.0, 75.0)
    p.size = 3.0
    p.alpha = 0.8
    p.color = "#ffffff"

    image = _render(field)

    assert QColor(image.pixel(2, 2)) == QColor("#000b1e")
    center = QColor(image.pixel(100, 75))
    assert center.red() > 100 and center.green() > 100


@pytest.mark.parametrize("backend", ["ellipses", "points_fast"])
def test_paint_draws_streaks_while_warping(qapp, backend):
    field = ParticleField(200, 150, config={"render_backend": backend}, rng=random.Random(3))
    field.create(1)
    p = _place(field, 120.0, 75.0)
    p.alpha = 0.8
    p.color = "#ffffff"
    field.set_progress(0.0)
    field.advance(Phase.WARP)
    # x moved to 140 with vx = 20: the streak reaches back to x = 100.
    assert p.x == pytest.approx(140.0)

    image = _render(field)

    trail = QColor(image.pixel(120, 75))
    assert trail.red() > 60
    assert QColor(image.pixel(2, 2)) == QColor("#000b1e")
