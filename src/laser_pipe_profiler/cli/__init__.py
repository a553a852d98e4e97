"""Command line interface modules."""

from .analyze import main as analyze_main

__all__ = [
    "analyze_main",
]
