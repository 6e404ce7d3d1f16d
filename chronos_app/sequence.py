from __future__ import annotations

"""
Three-act sequence driving the particle field.

  BARRIER:     the intro year floats; pressing and holding charges the
               engine (particles converge on the center).
  LEAP:        full charge triggers the warp, then the new year glyphs form.
  REVELATION:  the glyphs explode and settle into the greeting.

The controller only talks to the engine through its public operations
(sample, set_targets, set_progress, set_phase). Timers live here, never in
the engine.
"""

import sys
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from PyQt6.QtCore import QObject, QTimer, pyqtSignal

from chronos_app.engine_api import Phase, Point
from chronos_app.glyph_sampler import DEFAULT_FONT_FAMILY, REVEAL_FONT_FAMILY
from chronos_app.particle_field import ParticleField

Sampler = Callable[[str, int, str], List[Point]]


class Act(str, Enum):
    BARRIER = "BARRIER"
    LEAP = "LEAP"
    REVELATION = "REVELATION"


def apply_default_sequence_config(config: Dict[str, Any]) -> Dict[str, Any]:
    """Fill in texts, colors and delays of the three acts."""
    config.setdefault("intro_text", "2025")
    config.setdefault("intro_font_size", 200)
    config.setdefault("intro_color", "#00f2ff")

    config.setdefault("leap_text", "2026 \U0001F40E")
    config.setdefault("leap_font_size", 150)
    config.setdefault("leap_color", "#ff003c")

    config.setdefault("reveal_text", "新年快乐")
    config.setdefault("reveal_font_size", 120)
    config.setdefault("reveal_font_family", REVEAL_FONT_FAMILY)
    config.setdefault("reveal_color", "#ffd700")

    # Timings in milliseconds.
    config.setdefault("charge_tick_ms", 30)
    config.setdefault("warp_duration_ms", 2500)
    config.setdefault("forming_duration_ms", 3000)
    config.setdefault("explode_duration_ms", 1500)
    return config


class SequenceController(QObject):
    """Press-and-hold charge plus the timed chain of acts."""

    actChanged = pyqtSignal(str)
    chargeChanged = pyqtSignal(int)

    MAX_CHARGE = 100

    def __init__(
        self,
        field: ParticleField,
        sampler: Sampler,
        config: Optional[Dict[str, Any]] = None,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self.field = field
        self.sampler = sampler
        self.config: Dict[str, Any] = apply_default_sequence_config(dict(config or {}))

        self.act: Act = Act.BARRIER
        self.charge: int = 0

        self._charge_timer = QTimer(self)
        self._charge_timer.timeout.connect(self._on_charge_tick)

        # Single-shot timer reused for every timed beat.
        self._beat_timer = QTimer(self)
        self._beat_timer.setSingleShot(True)
        self._beat_timer.timeout.connect(self._on_beat)
        self._next_beat: Optional[Callable[[], None]] = None

    # ------------------------------------------------------------------ #
    # Helpers                                                            #
    # ------------------------------------------------------------------ #

    def _set_act(self, act: Act) -> None:
        self.act = act
        self.actChanged.emit(act.value)

    def _set_charge(self, value: int) -> None:
        self.charge = value
        self.chargeChanged.emit(value)

    def _schedule(self, delay_key: str, beat: Callable[[], None]) -> None:
        self._next_beat = beat
        self._beat_timer.start(max(0, int(self.config[delay_key])))

    def _on_beat(self) -> None:
        beat = self._next_beat
        self._next_beat = None
        if beat is not None:
            beat()

    def _show_text(self, prefix: str, family: str = DEFAULT_FONT_FAMILY) -> None:
        text = str(self.config[f"{prefix}_text"])
        size = int(self.config[f"{prefix}_font_size"])
        points = self.sampler(text, size, family)
        if not points:
            print(
                f"[chronos/sequence] '{text}' sampled to no points; keeping previous targets.",
                file=sys.stderr,
            )
        self.field.set_targets(points, str(self.config[f"{prefix}_color"]))

    # ------------------------------------------------------------------ #
    # Act 1: barrier                                                     #
    # ------------------------------------------------------------------ #

    def reset(self) -> None:
        """Cancel pending beats and show the floating intro text."""
        self._charge_timer.stop()
        self._beat_timer.stop()
        self._next_beat = None

        self._set_act(Act.BARRIER)
        self._set_charge(0)
        self.field.set_progress(0.0)
        self._show_text("intro")
        self.field.set_phase(Phase.IDLE)

    def start_charging(self) -> None:
        if self.act is not Act.BARRIER or self._charge_timer.isActive():
            return
        self.field.set_phase(Phase.CHARGING)
        self._charge_timer.start(max(1, int(self.config["charge_tick_ms"])))

    def stop_charging(self) -> None:
        if self.act is not Act.BARRIER or self.charge >= self.MAX_CHARGE:
            return
        self._charge_timer.stop()
        self._set_charge(0)
        self.field.set_progress(0.0)
        self.field.set_phase(Phase.IDLE)

    def _on_charge_tick(self) -> None:
        value = min(self.charge + 1, self.MAX_CHARGE)
        self._set_charge(value)
        self.field.set_progress(value / float(self.MAX_CHARGE))
        if value >= self.MAX_CHARGE:
            self._leap()

    # ------------------------------------------------------------------ #
    # Act 2: leap                                                        #
    # ------------------------------------------------------------------ #

    def _leap(self) -> None:
        self._charge_timer.stop()
        self._set_act(Act.LEAP)
        self.field.set_phase(Phase.WARP)
        self._schedule("warp_duration_ms", self._form_leap_text)

    def _form_leap_text(self) -> None:
        self._show_text("leap")
        self.field.set_phase(Phase.FORMING)
        self._schedule("forming_duration_ms", self._reveal)

    # ------------------------------------------------------------------ #
    # Act 3: revelation                                                  #
    # ------------------------------------------------------------------ #

    def _reveal(self) -> None:
        self._set_act(Act.REVELATION)
        self.field.set_phase(Phase.EXPLODE)
        self._schedule("explode_duration_ms", self._settle_greeting)

    def _settle_greeting(self) -> None:
        self._show_text("reveal", str(self.config["reveal_font_family"]))
        self.field.set_phase(Phase.FINAL)

    def replay(self) -> None:
        self.reset()
