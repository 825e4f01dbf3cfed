"""Shared helpers: logging utilities and the error taxonomy."""
