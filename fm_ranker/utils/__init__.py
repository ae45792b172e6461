"""Shared helpers: logging setup and request timing."""
