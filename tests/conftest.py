from __future__ import annotations

import os
import random

import pytest

# Widgets and offscreen text rendering need a platform plugin, but no display.
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from PyQt6.QtWidgets import QApplication  # noqa: E402

from chronos_app.particle_field import ParticleField  # noqa: E402


@pytest.fixture(scope="session")
def qapp():
    app = QApplication.instance()
    if app is None:
        app = QApplication([])
    yield app


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1337)


@pytest.fixture
def field(rng) -> ParticleField:
    """An 800x600 field with 500 particles and a fixed seed."""
    f = ParticleField(800, 600, rng=rng)
    f.create(500)
    return f
