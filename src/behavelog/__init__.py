"""Behavior log - configuration-driven entry logging."""

__version__ = "0.1.0"
