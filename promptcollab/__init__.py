"""Collaborative editing and version history service for shared prompts."""

__version__ = "0.1.0"
