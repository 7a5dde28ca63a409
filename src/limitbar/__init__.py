"""Polls AI provider usage and rate limits into one status indicator."""

__version__ = "0.1.0"
