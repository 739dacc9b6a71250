"""Logosyncx: plain-file session and task context for AI coding agents."""

__version__ = "0.4.0"
