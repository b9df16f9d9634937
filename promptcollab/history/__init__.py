"""Append-only, revertible version history of documents."""
