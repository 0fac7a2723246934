# src/version.py — v1
"""Package version, single source for the CLI and build metadata."""

__version__ = "1.0.0"
