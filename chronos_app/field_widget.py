from __future__ import annotations

import random
from typing import Any, Dict, List, Optional

from PyQt6.QtCore import QRectF, Qt, QTimer, pyqtSignal
from PyQt6.QtGui import QPainter
from PyQt6.QtWidgets import QApplication, QSizePolicy, QWidget

from chronos_app.engine_api import Point, RenderSurfaceError
from chronos_app.glyph_sampler import DEFAULT_FONT_FAMILY, sample_points
from chronos_app.particle_field import ParticleField

FALLBACK_REFRESH_HZ = 60.0


class ParticleFieldWidget(QWidget):
    """
    Render surface and frame loop of a ParticleField.

    Once constructed, the widget advances and repaints the field on every
    display refresh until stop() is called (or the widget is closed).
    Mouse presses are re-emitted as pressed / released signals so the
    sequence controller can drive charging without knowing about Qt events.
    """

    pressed = pyqtSignal()
    released = pyqtSignal()

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        parent: Optional[QWidget] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        # A QWidget cannot exist without an application object.
        if QApplication.instance() is None:
            raise RenderSurfaceError("ParticleFieldWidget needs a running QApplication.")

        super().__init__(parent)
        self.setAttribute(Qt.WidgetAttribute.WA_OpaquePaintEvent, True)
        self.setMinimumSize(320, 240)
        self.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Expanding)

        self.field = ParticleField(self.width(), self.height(), config=config, rng=rng)
        self.field.create()
        # Particles are re-spread once the real window size is known.
        self._spread_pending = True

        self._frame_timer = QTimer(self)
        self._frame_timer.setTimerType(Qt.TimerType.PreciseTimer)
        self._frame_timer.timeout.connect(self._on_frame)
        self.start()

    # ------------------------------------------------------------------ #
    # Frame loop                                                         #
    # ------------------------------------------------------------------ #

    def frame_interval_ms(self) -> int:
        """Timer interval matching the configured fps or the screen refresh rate."""
        fps = float(self.field.config.get("target_fps", 0) or 0)
        if fps <= 0.0:
            screen = self.screen()
            rate = float(screen.refreshRate()) if screen is not None else 0.0
            fps = rate if rate > 0.0 else FALLBACK_REFRESH_HZ
        return max(1, int(round(1000.0 / fps)))

    def start(self) -> None:
        self._frame_timer.start(self.frame_interval_ms())

    def stop(self) -> None:
        """Halt the frame loop. Field state is kept; start() resumes it."""
        self._frame_timer.stop()

    def is_running(self) -> bool:
        return self._frame_timer.isActive()

    def _on_frame(self) -> None:
        self.field.advance()
        self.update()

    # ------------------------------------------------------------------ #
    # Engine pass-through used by the orchestrator                       #
    # ------------------------------------------------------------------ #

    def sample(self, text: str, font_size: int, font_family: str = DEFAULT_FONT_FAMILY) -> List[Point]:
        """Sample *text* against the current viewport size."""
        return sample_points(
            text,
            font_size,
            font_family,
            width=int(self.field.width),
            height=int(self.field.height),
        )

    # ------------------------------------------------------------------ #
    # Qt events                                                          #
    # ------------------------------------------------------------------ #

    def resizeEvent(self, event) -> None:  # type: ignore[override]
        super().resizeEvent(event)
        size = event.size()
        self.field.resize(size.width(), size.height())

    def showEvent(self, event) -> None:  # type: ignore[override]
        super().showEvent(event)
        if self._spread_pending:
            self._spread_pending = False
            self.field.resize(self.width(), self.height())
            self.field.create(len(self.field))

    def paintEvent(self, event) -> None:  # type: ignore[override]
        _ = event
        painter = QPainter(self)
        try:
            self.field.paint(painter, QRectF(self.rect()))
        finally:
            painter.end()

    def mousePressEvent(self, event) -> None:  # type: ignore[override]
        if event.button() == Qt.MouseButton.LeftButton:
            self.pressed.emit()
        super().mousePressEvent(event)

    def mouseReleaseEvent(self, event) -> None:  # type: ignore[override]
        if event.button() == Qt.MouseButton.LeftButton:
            self.released.emit()
        super().mouseReleaseEvent(event)

    def closeEvent(self, event) -> None:  # type: ignore[override]
        self.stop()
        super().closeEvent(event)
