"""Actor identity for collaboration requests."""
