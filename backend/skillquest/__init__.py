"""Adaptive quest selection and skill progression engine."""

__version__ = "0.1.0"
