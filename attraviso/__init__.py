"""Attraviso: nearby attractions from OpenStreetMap with best-effort images."""

__version__ = "1.0.0"
