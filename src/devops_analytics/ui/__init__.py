"""Terminal output for DevOps Analytics."""

from .console import ConsoleDisplay

__all__ = ["ConsoleDisplay"]
