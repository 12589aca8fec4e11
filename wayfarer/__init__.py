"""Wayfarer: deterministic world-state engine for narrative RPGs."""

__version__ = "0.1.0"
