"""Commodity market pricing and trade engine for the world role-play backend."""

__version__ = "0.1.0"
