"""Runtime logging helpers."""

from .logger import RunLogger

__all__ = ["RunLogger"]
