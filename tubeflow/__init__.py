"""tubeflow: resilient API client for the tube-manufacturing workflow backend."""

__version__ = "0.1.0"
