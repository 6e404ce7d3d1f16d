"""Particle-field new year sequence built on PyQt6."""

__version__ = "1.0.0"
