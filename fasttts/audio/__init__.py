"""Audio output components."""

from .writer import AudioWriter

__all__ = ["AudioWriter"]
