"""Persistent stores used across builds."""

from .build_cache import BuildCache

__all__ = ["BuildCache"]
