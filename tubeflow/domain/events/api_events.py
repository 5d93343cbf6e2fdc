"""Domain Events related to API requests and resilience.

Examples include events for when an attempt starts, a retry is scheduled,
and when a chain succeeds, fails or is cancelled.
"""

from dataclasses import dataclass, field
import time
from typing import Optional


@dataclass
class DomainEvent:
    """Base class for domain events."""
    pass


@dataclass
class RequestStarted(DomainEvent):
    """Event triggered when an attempt is about to be sent."""
    method: str
    url: str
    attempt_number: int
    timestamp: float = field(default_factory=time.time)


@dataclass
class RequestSucceeded(DomainEvent):
    """Event triggered when an attempt chain returns a 2xx response."""
    method: str
    url: str
    status: int
    latency_ms: float
    attempts: int
    timestamp: float = field(default_factory=time.time)


@dataclass
class RetryScheduled(DomainEvent):
    """Event triggered when a failed attempt will be retried after a delay."""
    method: str
    url: str
    attempt_number: int
    delay_seconds: float
    reason: str
    timestamp: float = field(default_factory=time.time)


@dataclass
class RequestFailed(DomainEvent):
    """Event triggered when an attempt chain fails definitively (after retries)."""
    method: str
    url: str
    error_type: str
    error_message: str
    status: Optional[int] = None
    timestamp: float = field(default_factory=time.time)


@dataclass
class RequestCancelled(DomainEvent):
    """Event triggered when an in-flight attempt is aborted by teardown."""
    method: str
    url: str
    timestamp: float = field(default_factory=time.time)
