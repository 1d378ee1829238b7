"""Lesson trainer backend: profiles, lessons, error analytics and review scheduling."""

__version__ = "1.0.0"
