"""Encrypted tar archives streamed through a passphrase cipher."""

__version__ = "1.0.0"
