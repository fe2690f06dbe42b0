"""Command-line client for Garden container servers."""

__version__ = "0.1.0"
