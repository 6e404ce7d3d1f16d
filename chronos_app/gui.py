from __future__ import annotations

import argparse
import sys
from datetime import datetime
from typing import Any, Dict, List, Optional

from PyQt6.QtCore import QByteArray, QSettings, Qt, QTimer
from PyQt6.QtWidgets import (
    QApplication,
    QLabel,
    QMainWindow,
    QProgressBar,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from chronos_app.engine_api import RenderSurfaceError
from chronos_app.field_config import coerce_field_config, field_parameters
from chronos_app.field_widget import ParticleFieldWidget
from chronos_app.glyph_sampler import REVEAL_FONT_FAMILY, load_custom_fonts
from chronos_app.sequence import Act, SequenceController

SETTINGS_ORG = "Chronos"
SETTINGS_APP = "ChronosGallop"

BARRIER_MOTTO = "人们在失去一些东西的时候也在得到一些东西"
CHARGE_HINT = "长按屏幕 · 为时空引擎充能"
LEAP_TITLE = "JUMPING TO 2026"
LEAP_SUBTITLE = "WARP SPEED ENGAGED"
REVEAL_TITLE = "祝您新年快乐"
REVEAL_SUBTITLE = "2026 · 时空策马 · 万事胜意"

STYLESHEET = """
QLabel { color: #e6fbff; background: transparent; }
QLabel#clock { font-size: 40px; font-weight: 900; }
QLabel#motto { font-size: 15px; color: rgba(230, 251, 255, 150); letter-spacing: 2px; }
QLabel#chargeHint { font-size: 13px; color: rgba(0, 242, 255, 200); letter-spacing: 4px; }
QLabel#leapTitle { font-size: 52px; font-weight: 900; font-style: italic; color: #ff3b5c; }
QLabel#leapSubtitle { font-size: 12px; color: rgba(255, 255, 255, 130); letter-spacing: 8px; }
QLabel#revealTitle { font-size: 48px; font-weight: 700; color: #ffd700; letter-spacing: 6px; }
QLabel#revealSubtitle { font-size: 16px; color: rgba(255, 215, 0, 200); letter-spacing: 6px; }
QProgressBar { background: rgba(255, 255, 255, 25); border: none; border-radius: 2px; }
QProgressBar::chunk { background: #22d3ee; border-radius: 2px; }
QPushButton#replay {
    color: rgba(255, 255, 255, 110);
    background: transparent;
    border: 1px solid rgba(255, 255, 255, 30);
    border-radius: 14px;
    padding: 6px 24px;
    letter-spacing: 6px;
}
QPushButton#replay:hover { color: white; border-color: rgba(255, 255, 255, 90); }
"""


def format_clock(now: datetime) -> str:
    """Date and 12-hour time, e.g. '2025年12月31日——11:59:58'."""
    hours12 = now.hour % 12 or 12
    return (
        f"{now.year}年{now.month}月{now.day}日——"
        f"{hours12:02d}:{now.minute:02d}:{now.second:02d}"
    )


def _overlay_label(text: str, name: str, parent: QWidget) -> QLabel:
    label = QLabel(text, parent)
    label.setObjectName(name)
    label.setAlignment(Qt.AlignmentFlag.AlignCenter)
    label.setAttribute(Qt.WidgetAttribute.WA_TransparentForMouseEvents, True)
    return label


class MainWindow(QMainWindow):
    def __init__(self, config: Dict[str, Any], parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self.setWindowTitle("Chronos Gallop")
        self.resize(1200, 800)
        self.setStyleSheet(STYLESHEET)

        self.field_widget = ParticleFieldWidget(config=config, parent=self)
        self.setCentralWidget(self.field_widget)

        self.sequence = SequenceController(
            self.field_widget.field,
            self.field_widget.sample,
            config=config,
            parent=self,
        )
        self.field_widget.pressed.connect(self.sequence.start_charging)
        self.field_widget.released.connect(self.sequence.stop_charging)
        self.sequence.actChanged.connect(self._on_act_changed)
        self.sequence.chargeChanged.connect(self._on_charge_changed)

        self._build_overlays()

        self._clock_timer = QTimer(self)
        self._clock_timer.timeout.connect(self._refresh_clock)
        self._clock_timer.start(1000)
        self._refresh_clock()

    # ------------------------------------------------------------------ #
    # Overlays                                                           #
    # ------------------------------------------------------------------ #

    def _build_overlays(self) -> None:
        layout = QVBoxLayout(self.field_widget)
        layout.setContentsMargins(24, 24, 24, 48)

        # Act 1
        self.barrier_panel = QWidget(self.field_widget)
        self.barrier_panel.setAttribute(Qt.WidgetAttribute.WA_TransparentForMouseEvents, True)
        barrier = QVBoxLayout(self.barrier_panel)
        barrier.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.clock_label = _overlay_label("", "clock", self.barrier_panel)
        barrier.addWidget(self.clock_label)
        barrier.addWidget(_overlay_label(BARRIER_MOTTO, "motto", self.barrier_panel))
        barrier.addSpacing(48)
        self.charge_bar = QProgressBar(self.barrier_panel)
        self.charge_bar.setRange(0, SequenceController.MAX_CHARGE)
        self.charge_bar.setTextVisible(False)
        self.charge_bar.setFixedSize(192, 4)
        barrier.addWidget(self.charge_bar, alignment=Qt.AlignmentFlag.AlignCenter)
        self.charge_label = _overlay_label(CHARGE_HINT, "chargeHint", self.barrier_panel)
        barrier.addWidget(self.charge_label)
        layout.addWidget(self.barrier_panel, stretch=1)

        # Act 2
        self.leap_panel = QWidget(self.field_widget)
        self.leap_panel.setAttribute(Qt.WidgetAttribute.WA_TransparentForMouseEvents, True)
        leap = QVBoxLayout(self.leap_panel)
        leap.setAlignment(Qt.AlignmentFlag.AlignCenter)
        leap.addWidget(_overlay_label(LEAP_TITLE, "leapTitle", self.leap_panel))
        leap.addWidget(_overlay_label(LEAP_SUBTITLE, "leapSubtitle", self.leap_panel))
        layout.addWidget(self.leap_panel, stretch=1)

        # Act 3
        self.reveal_panel = QWidget(self.field_widget)
        reveal = QVBoxLayout(self.reveal_panel)
        reveal.setAlignment(Qt.AlignmentFlag.AlignCenter)
        reveal.addSpacing(200)
        title = _overlay_label(REVEAL_TITLE, "revealTitle", self.reveal_panel)
        title_font = title.font()
        title_font.setFamilies([REVEAL_FONT_FAMILY, "cursive"])
        title.setFont(title_font)
        reveal.addWidget(title)
        reveal.addWidget(_overlay_label(REVEAL_SUBTITLE, "revealSubtitle", self.reveal_panel))
        reveal.addStretch(1)
        self.replay_button = QPushButton("重新播放", self.reveal_panel)
        self.replay_button.setObjectName("replay")
        self.replay_button.setCursor(Qt.CursorShape.PointingHandCursor)
        self.replay_button.clicked.connect(self.sequence.replay)
        reveal.addWidget(self.replay_button, alignment=Qt.AlignmentFlag.AlignCenter)
        layout.addWidget(self.reveal_panel, stretch=1)

        self._on_act_changed(Act.BARRIER.value)

    def _on_act_changed(self, act: str) -> None:
        self.barrier_panel.setVisible(act == Act.BARRIER.value)
        self.leap_panel.setVisible(act == Act.LEAP.value)
        self.reveal_panel.setVisible(act == Act.REVELATION.value)

    def _on_charge_changed(self, charge: int) -> None:
        self.charge_bar.setValue(charge)
        self.charge_label.setText(CHARGE_HINT if charge == 0 else f"引擎过载中 {charge}%")

    def _refresh_clock(self) -> None:
        self.clock_label.setText(format_clock(datetime.now()))

    # ------------------------------------------------------------------ #
    # Lifecycle                                                          #
    # ------------------------------------------------------------------ #

    def start_sequence(self) -> None:
        """Show the intro text; call once the window has its real size."""
        self.sequence.reset()

    def closeEvent(self, event) -> None:  # type: ignore[override]
        self.field_widget.stop()
        settings = QSettings(SETTINGS_ORG, SETTINGS_APP)
        settings.setValue("window/geometry", self.saveGeometry())
        settings.setValue("window/fullscreen", self.isFullScreen())
        super().closeEvent(event)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def build_arg_parser() -> argparse.ArgumentParser:
    params = field_parameters()
    backend = params["render_backend"]
    count = params["particle_count"]
    fps = params["target_fps"]

    parser = argparse.ArgumentParser(
        prog="chronos-gallop",
        description="Particle-field new year sequence: press and hold to charge the engine.",
    )
    parser.add_argument(
        "--particles",
        type=int,
        default=None,
        help=f"{count.label} ({int(count.minimum)}-{int(count.maximum)}, default {count.default}).",
    )
    parser.add_argument(
        "--backend",
        choices=backend.choices,
        default=None,
        help=f"{backend.label}. {backend.description}",
    )
    parser.add_argument(
        "--fps",
        type=int,
        default=None,
        help=f"{fps.label}. {fps.description}",
    )
    parser.add_argument(
        "--fullscreen",
        action="store_true",
        help="Start in full screen.",
    )
    return parser


def load_config(settings: QSettings, args: argparse.Namespace) -> Dict[str, Any]:
    """
    Merge persisted preferences with command-line overrides.

    Overrides are written back so the next run starts with them.
    """
    config: Dict[str, Any] = {
        "particle_count": settings.value("field/particle_count", 2500, type=int),
        "render_backend": settings.value("field/render_backend", "ellipses", type=str),
        "target_fps": settings.value("field/target_fps", 0, type=int),
    }
    if args.particles is not None:
        config["particle_count"] = args.particles
    if args.backend is not None:
        config["render_backend"] = args.backend
    if args.fps is not None:
        config["target_fps"] = args.fps

    config = coerce_field_config(config)
    settings.setValue("field/particle_count", config["particle_count"])
    settings.setValue("field/render_backend", config["render_backend"])
    settings.setValue("field/target_fps", config["target_fps"])
    return config


def main(argv: Optional[List[str]] = None) -> None:
    args = build_arg_parser().parse_args(argv)

    app = QApplication(sys.argv[:1])
    load_custom_fonts()

    settings = QSettings(SETTINGS_ORG, SETTINGS_APP)
    config = load_config(settings, args)
    print(
        f"[chronos] Starting with {config['particle_count']} particles "
        f"({config['render_backend']} backend)."
    )

    try:
        win = MainWindow(config)
    except RenderSurfaceError as exc:
        print(f"[chronos] ERROR: {exc}", file=sys.stderr)
        sys.exit(1)

    geometry = settings.value("window/geometry")
    if isinstance(geometry, QByteArray):
        win.restoreGeometry(geometry)

    if args.fullscreen or settings.value("window/fullscreen", False, type=bool):
        win.showFullScreen()
    else:
        win.show()
    # Sample the intro once the layout has settled on the real size.
    QTimer.singleShot(0, win.start_sequence)

    sys.exit(app.exec())


if __name__ == "__main__":
    main()
