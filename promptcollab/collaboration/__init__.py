"""Collaborative editing sessions: presence, advisory locks and status polling."""
