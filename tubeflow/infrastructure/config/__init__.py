"""Configuration loading and the backend endpoint registry."""
