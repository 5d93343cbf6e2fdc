"""Domain models (value objects and state snapshots)."""
