"""Domain Event definitions.

Represents significant occurrences in a request's lifecycle that other parts
of the system might react to (logging, metrics, UI).
"""
