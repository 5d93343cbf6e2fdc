"""Domain Layer: request state, configuration, errors, events and ports.

Nothing in here performs I/O.
"""
