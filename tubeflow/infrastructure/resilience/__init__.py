"""API Resilience Implementations.

Contains the request executor that enforces per-attempt timeouts, retries
transient failures with exponential backoff and supports bulk cancellation.
Bounded Context: API Resilience
"""
