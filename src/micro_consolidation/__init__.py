"""Micro-consolidation: background fact extraction for long-running agents."""

__version__ = "0.1.0"
