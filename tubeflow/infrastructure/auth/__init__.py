"""Authentication token providers."""
