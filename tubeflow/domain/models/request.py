"""Request state snapshot and executor configuration.

`RequestState` is the caller-visible view of one executor instance. It is an
immutable snapshot: the executor replaces it on every transition, callers only
ever read it.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Mapping, Optional

from tubeflow.domain.models.errors import ApiError


class RequestStatus(str, Enum):
    """Lifecycle of the most recent attempt chain."""
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"
    TIMEOUT = "timeout"


@dataclass(frozen=True)
class RequestState:
    """Snapshot of an executor's request lifecycle."""
    status: RequestStatus = RequestStatus.IDLE
    data: Any = None
    error: Optional[ApiError] = None
    is_loading: bool = False
    retry_count: int = 0

    @property
    def is_idle(self) -> bool:
        return self.status is RequestStatus.IDLE

    @property
    def is_success(self) -> bool:
        return self.status is RequestStatus.SUCCESS

    @property
    def is_error(self) -> bool:
        return self.status is RequestStatus.ERROR

    @property
    def is_timeout(self) -> bool:
        return self.status is RequestStatus.TIMEOUT

    @property
    def can_retry(self) -> bool:
        """Whether `retry()` would re-issue the request."""
        return self.status in (RequestStatus.ERROR, RequestStatus.TIMEOUT)

    def evolve(self, **changes: Any) -> "RequestState":
        return replace(self, **changes)


IDLE_STATE = RequestState()

DEFAULT_TIMEOUT_MS = 8000
DEFAULT_MAX_RETRIES = 2
DEFAULT_INITIAL_RETRY_DELAY_MS = 500
DEFAULT_RETRY_BACKOFF_MULTIPLIER = 2.0


@dataclass(frozen=True)
class ExecutorConfig:
    """Immutable executor settings.

    Attributes:
        timeout_ms: Budget for a single attempt. Each retry gets a fresh budget.
        max_retries: Additional attempts after the first one.
        initial_retry_delay_ms: Delay before the first retry.
        retry_backoff_multiplier: Factor applied to the delay for each further retry.
        notify_on_error: Whether terminal failures are shown on the notifier.
    """
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    max_retries: int = DEFAULT_MAX_RETRIES
    initial_retry_delay_ms: int = DEFAULT_INITIAL_RETRY_DELAY_MS
    retry_backoff_multiplier: float = DEFAULT_RETRY_BACKOFF_MULTIPLIER
    notify_on_error: bool = True

    def __post_init__(self) -> None:
        if self.timeout_ms <= 0:
            raise ValueError(f"timeout_ms must be positive, got {self.timeout_ms}")
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.initial_retry_delay_ms < 0:
            raise ValueError(f"initial_retry_delay_ms must be >= 0, got {self.initial_retry_delay_ms}")
        if self.retry_backoff_multiplier < 1:
            raise ValueError(f"retry_backoff_multiplier must be >= 1, got {self.retry_backoff_multiplier}")

    @classmethod
    def from_overrides(cls, overrides: Optional[Mapping[str, Any]] = None, **kwargs: Any) -> "ExecutorConfig":
        """Merges caller overrides over the defaults. `None` values are ignored."""
        merged = dict(overrides or {})
        merged.update(kwargs)
        known = {name for name in cls.__dataclass_fields__}
        unknown = set(merged) - known
        if unknown:
            raise ValueError(f"Unknown executor options: {', '.join(sorted(unknown))}")
        return cls(**{key: value for key, value in merged.items() if value is not None})

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000

    def retry_delay_ms(self, attempt: int) -> float:
        """Delay in milliseconds after the failed attempt with index `attempt`."""
        return self.initial_retry_delay_ms * self.retry_backoff_multiplier ** attempt

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1
