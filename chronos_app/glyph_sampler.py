from __future__ import annotations

"""
Text-to-point sampling.

A string is rendered, centered and in white, onto an opaque black offscreen
QImage the size of the viewport. The bitmap is then scanned on a fixed
stride with NumPy; every sampled pixel whose red channel is bright enough
becomes a glyph Point.
"""

from pathlib import Path
from typing import List

import numpy as np
from PyQt6.QtCore import QRectF, Qt
from PyQt6.QtGui import QColor, QFont, QFontDatabase, QGuiApplication, QImage, QPainter

from chronos_app.engine_api import Point, RenderSurfaceError

DEFAULT_FONT_FAMILY = "Noto Sans SC"
REVEAL_FONT_FAMILY = "Ma Shan Zheng"

SAMPLE_STEP = 4
BRIGHTNESS_THRESHOLD = 128

_GENERIC_FAMILIES = {
    "sans-serif": QFont.StyleHint.SansSerif,
    "serif": QFont.StyleHint.Serif,
    "cursive": QFont.StyleHint.Cursive,
    "monospace": QFont.StyleHint.Monospace,
}

_FONTS_LOADED = False


def load_custom_fonts() -> None:
    """
    Register all .ttf / .otf files from the project-level `fonts/`
    directory so QFontDatabase can resolve the display families.

    Safe to call more than once; only the first call scans the folder.
    """
    global _FONTS_LOADED
    if _FONTS_LOADED:
        return
    _FONTS_LOADED = True

    fonts_dir = Path(__file__).resolve().parent.parent / "fonts"
    if not fonts_dir.is_dir():
        return

    for pattern in ("*.ttf", "*.otf"):
        for font_path in sorted(fonts_dir.glob(pattern)):
            if QFontDatabase.addApplicationFont(str(font_path)) < 0:
                print(f"[chronos/fonts] Could not load font: {font_path}")


def build_font(font_size: int, font_family: str = DEFAULT_FONT_FAMILY) -> QFont:
    """
    Build the heavy display font used for glyph silhouettes.

    `font_size` is a pixel size. Unknown families fall back through the
    style hint (sans-serif, or cursive for the reveal family).
    """
    family = str(font_family or "").strip() or DEFAULT_FONT_FAMILY
    hint = _GENERIC_FAMILIES.get(family.lower())
    if hint is None:
        hint = QFont.StyleHint.Cursive if family == REVEAL_FONT_FAMILY else QFont.StyleHint.SansSerif
        font = QFont(family)
    else:
        font = QFont()
    font.setStyleHint(hint)
    font.setPixelSize(max(1, int(font_size)))
    font.setWeight(QFont.Weight.Black)
    return font


def rasterize_text(
    text: str,
    font_size: int,
    font_family: str,
    width: int,
    height: int,
) -> QImage:
    """Render *text* centered in white on an opaque black RGBA bitmap."""
    if QGuiApplication.instance() is None:
        raise RenderSurfaceError("Glyph sampling needs a running QGuiApplication.")
    load_custom_fonts()

    image = QImage(width, height, QImage.Format.Format_RGBA8888)
    if image.isNull():
        raise RenderSurfaceError(f"Could not allocate a {width}x{height} offscreen bitmap.")
    image.fill(QColor(0, 0, 0))

    painter = QPainter(image)
    try:
        painter.setFont(build_font(font_size, font_family))
        painter.setPen(QColor(255, 255, 255))
        painter.drawText(
            QRectF(0.0, 0.0, float(width), float(height)),
            Qt.AlignmentFlag.AlignCenter,
            text,
        )
    finally:
        painter.end()
    return image


def image_to_rgba(image: QImage) -> np.ndarray:
    """Return an (h, w, 4) uint8 copy of *image* in R, G, B, A byte order."""
    if image.format() != QImage.Format.Format_RGBA8888:
        image = image.convertToFormat(QImage.Format.Format_RGBA8888)
    w = image.width()
    h = image.height()
    bpl = image.bytesPerLine()

    buf = image.bits()
    buf.setsize(image.sizeInBytes())
    raw = np.frombuffer(buf, dtype=np.uint8).reshape((h, bpl))
    return raw[:, : w * 4].reshape((h, w, 4)).copy()


def scan_bitmap(
    rgba: np.ndarray,
    step: int = SAMPLE_STEP,
    threshold: int = BRIGHTNESS_THRESHOLD,
) -> List[Point]:
    """
    Emit a Point for every `step`-th pixel (both axes) whose red channel
    exceeds `threshold`, in row-major order.
    """
    step = max(1, int(step))
    red = rgba[::step, ::step, 0]
    ys, xs = np.nonzero(red > threshold)
    return [Point(float(x) * step, float(y) * step) for y, x in zip(ys.tolist(), xs.tolist())]


def sample_points(
    text: str,
    font_size: int,
    font_family: str = DEFAULT_FONT_FAMILY,
    *,
    width: int,
    height: int,
) -> List[Point]:
    """
    Sample the silhouette of *text* into screen points.

    The result depends only on the arguments and may be empty (blank text,
    glyphs falling outside the bitmap, missing font).
    """
    w = int(width)
    h = int(height)
    if not text or int(font_size) <= 0 or w <= 0 or h <= 0:
        return []

    image = rasterize_text(text, font_size, font_family, w, h)
    return scan_bitmap(image_to_rgba(image))
