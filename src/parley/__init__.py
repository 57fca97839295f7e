"""Parley: a flag-gated branching dialogue runtime."""

__version__ = "0.1.0"
