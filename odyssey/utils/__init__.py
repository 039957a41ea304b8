"""Utility modules for the odyssey application."""

from .race_protection import prevent_race_condition

__all__ = [
    'prevent_race_condition',
]
