from __future__ import annotations

"""
Shared configuration helpers for the particle field.

This module centralizes:
  * default config values for the field (particle count, colors, backend),
  * the PluginParameter definitions describing each key,
  * a coercion helper that clamps user values into the declared ranges.

Configs are plain dicts so they can be built from QSettings, CLI flags or
tests without any extra machinery.
"""

import math
from typing import Any, Dict

from PyQt6.QtGui import QColor

from chronos_app.engine_api import PluginParameter

DEFAULT_BACKGROUND = "#000b1e"
DEFAULT_PARTICLE_COLOR = "#00f2ff"


def apply_default_field_config(config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Ensure that the given config dict contains all expected field keys.

    Missing keys get their defaults; existing values are left untouched.
    """
    for name, param in field_parameters().items():
        config.setdefault(name, param.default)
    return config


def field_parameters() -> Dict[str, PluginParameter]:
    """Return the parameter specification of the particle field."""
    return {
        "particle_count": PluginParameter(
            name="particle_count",
            label="Particle count",
            type="int",
            default=2500,
            minimum=100,
            maximum=20000,
            description=(
                "Number of particles allocated at startup. The force laws are "
                "tuned for about 2500 particles on a desktop-sized window."
            ),
        ),
        "background_color": PluginParameter(
            name="background_color",
            label="Background color",
            type="color",
            default=DEFAULT_BACKGROUND,
            description="Opaque fill painted before the particles on every frame.",
        ),
        "default_color": PluginParameter(
            name="default_color",
            label="Particle color",
            type="color",
            default=DEFAULT_PARTICLE_COLOR,
            description="Color of freshly created particles and fallback for invalid colors.",
        ),
        "render_backend": PluginParameter(
            name="render_backend",
            label="Render backend",
            type="enum",
            default="ellipses",
            choices=["ellipses", "points_fast"],
            description=(
                "How particles are drawn. 'ellipses' issues one draw call per particle; "
                "'points_fast' batches particles by color/alpha/size and is much faster."
            ),
        ),
        "antialiasing": PluginParameter(
            name="antialiasing",
            label="Antialiasing",
            type="bool",
            default=True,
            description="Enable antialiasing (prettier, slower).",
        ),
        "alpha_quantization_steps": PluginParameter(
            name="alpha_quantization_steps",
            label="Alpha quantization steps",
            type="int",
            default=12,
            minimum=4,
            maximum=32,
            description="Number of discrete alpha levels used by the batched point renderer.",
        ),
        "target_fps": PluginParameter(
            name="target_fps",
            label="Target FPS",
            type="int",
            default=0,
            minimum=0,
            maximum=240,
            description="Frame rate of the render loop. 0 follows the screen refresh rate.",
        ),
    }


def _coerce_value(param: PluginParameter, raw: Any) -> Any:
    if param.type == "bool":
        if isinstance(raw, str):
            return raw.strip().lower() in ("1", "true", "yes", "on")
        return bool(raw)

    if param.type in ("int", "float"):
        try:
            value = float(raw)
        except (TypeError, ValueError):
            return param.default
        if math.isnan(value):
            return param.default
        if param.minimum is not None:
            value = max(float(param.minimum), value)
        if param.maximum is not None:
            value = min(float(param.maximum), value)
        return int(round(value)) if param.type == "int" else value

    if param.type == "enum":
        choices = param.choices or []
        return raw if raw in choices else param.default

    if param.type == "color":
        text = str(raw or "")
        return text if QColor.isValidColor(text) else param.default

    return raw


def coerce_field_config(config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Return a copy of *config* with defaults applied and every known key
    clamped to its declared range, choices or type.

    Unknown keys are kept as-is so callers can carry extra settings.
    """
    result = dict(config or {})
    apply_default_field_config(result)
    for name, param in field_parameters().items():
        result[name] = _coerce_value(param, result.get(name))
    return result
