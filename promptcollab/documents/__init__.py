"""Boundary to the platform's prompt (document) table."""
