"""Service for executing HTTP requests with timeouts, retries and cancellation.

Implements exponential backoff for transient failures (timeouts, network
errors, 500/502/503/504 responses), exposes the state of the latest attempt
chain as an immutable `RequestState` snapshot and tracks every in-flight
attempt so that all of them can be aborted when the owner goes away.
"""

import asyncio
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping, Optional, Set, Tuple, Union

import httpx

from tubeflow.domain.events.api_events import (
    DomainEvent, RequestStarted, RequestSucceeded, RetryScheduled,
    RequestFailed, RequestCancelled,
)
from tubeflow.domain.interfaces.notifier import Notifier
from tubeflow.domain.models.errors import (
    ApiError, ClientError, NetworkError, ParseError, RequestCancelledError,
    RequestTimeoutError, ServerError, RETRYABLE_STATUS_CODES, matches_network_signature,
)
from tubeflow.domain.models.request import ExecutorConfig, IDLE_STATE, RequestState, RequestStatus

logger = logging.getLogger(__name__)

USER_AGENT = "tubeflow-client"

SleepFunc = Callable[[float], Awaitable[Any]]
EventListener = Callable[[DomainEvent], None]
Body = Union[str, bytes, None]


@dataclass(eq=False)
class InFlightRequest:
    """One attempt: the task doing the I/O (its cancellation token) and the timer aborting it."""
    task: "asyncio.Task[httpx.Response]"
    method: str
    url: str
    timeout_handle: Optional[asyncio.TimerHandle] = None
    timed_out: bool = False
    cancelled: bool = False

    def expire(self) -> None:
        """Timer callback: the attempt ran out of budget."""
        self.timed_out = True
        self.task.cancel()

    def cancel(self) -> None:
        """Teardown: abort the attempt and its timer."""
        self.cancelled = True
        self.release_timer()
        self.task.cancel()

    def release_timer(self) -> None:
        if self.timeout_handle is not None:
            self.timeout_handle.cancel()


def classify_transport_error(exc: Exception) -> ApiError:
    """Maps a raw transport exception to a structured error."""
    message = str(exc) or type(exc).__name__
    if isinstance(exc, httpx.TimeoutException):
        return RequestTimeoutError(cause=exc)
    if isinstance(exc, httpx.TransportError):
        retryable = isinstance(exc, httpx.NetworkError) or matches_network_signature(message)
        return NetworkError(message, cause=exc, retryable=retryable)
    if matches_network_signature(message):
        return NetworkError(message, cause=exc)
    return ApiError(message, cause=exc)


class ResilientRequestExecutor:
    """Runs one logical HTTP operation at a time with bounded latency per attempt.

    The executor owns a single `RequestState`. Every `execute` call starts a new
    attempt chain and becomes the only chain allowed to update that state;
    results of superseded chains are still returned to their own callers but
    their state updates are discarded.
    """

    def __init__(
        self,
        config: Optional[ExecutorConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
        notifier: Optional[Notifier] = None,
        base_url: str = "",
        event_listener: Optional[EventListener] = None,
        sleep: Optional[SleepFunc] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initializes the executor.

        Args:
            config: Timeout/retry settings. Defaults to `ExecutorConfig()`.
            client: httpx client to send requests with. When omitted the executor
                creates one (using `base_url`) and closes it in `aclose()`.
            notifier: Surface that terminal failures are reported on.
            base_url: Base URL for relative request targets of an owned client.
            event_listener: Optional callable receiving lifecycle events.
            sleep: Coroutine used for backoff delays (seconds). Defaults to asyncio.sleep.
            transport: Transport for an owned client (ignored when `client` is given).
        """
        self.config = config or ExecutorConfig()
        self._owns_client = client is None
        # Redirects are followed, a 3xx never reaches _handle_response
        self.client = client or httpx.AsyncClient(
            base_url=base_url,
            headers={"User-Agent": USER_AGENT},
            follow_redirects=True,
            transport=transport,
        )
        self.notifier = notifier
        self._event_listener = event_listener
        self._sleep = sleep or asyncio.sleep
        self._state = IDLE_STATE
        self._generation = 0
        self._teardowns = 0
        self._in_flight: Set[InFlightRequest] = set()

        logger.debug(
            f"ResilientRequestExecutor initialized: timeout={self.config.timeout_ms}ms, "
            f"max_retries={self.config.max_retries}, initial_delay={self.config.initial_retry_delay_ms}ms, "
            f"factor={self.config.retry_backoff_multiplier}"
        )

    # --- State ---

    @property
    def state(self) -> RequestState:
        """Read-only snapshot of the current request state."""
        return self._state

    @property
    def in_flight_count(self) -> int:
        return len(self._in_flight)

    def reset(self) -> None:
        """Returns the state to idle. In-flight attempts keep running but can no longer update it."""
        self._generation += 1
        self._state = IDLE_STATE

    def _update_state(self, generation: int, **changes: Any) -> None:
        if generation != self._generation:
            logger.debug(f"Discarding state update from superseded chain {generation} (current {self._generation})")
            return
        self._state = self._state.evolve(**changes)

    # --- Public request API ---

    async def execute(
        self,
        url: str,
        *,
        method: str = "GET",
        headers: Optional[Mapping[str, str]] = None,
        body: Body = None,
        params: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        """Issues the request, retrying transient failures.

        Args:
            url: Absolute URL, or a path relative to the client's base URL.
            method: HTTP method.
            headers: Extra request headers.
            body: Raw request body.
            params: Query parameters.

        Returns:
            The parsed response payload (JSON value or text).

        Raises:
            ClientError: 4xx response (never retried).
            ServerError: 5xx response after retries are exhausted.
            RequestTimeoutError: Last attempt exceeded `timeout_ms`.
            NetworkError: Transport failure after retries are exhausted.
            RequestCancelledError: The executor was torn down mid-chain.
        """
        self._generation += 1
        generation = self._generation
        teardowns = self._teardowns
        method = method.upper()
        self._state = self._state.evolve(status=RequestStatus.LOADING, is_loading=True, error=None, retry_count=0)

        started = time.perf_counter()
        attempt = 0
        while True:
            self._update_state(generation, retry_count=attempt)
            try:
                status_code, payload = await self._attempt(method, url, headers, body, params, attempt)
            except RequestCancelledError:
                self._dispatch(RequestCancelled(method=method, url=str(url)))
                logger.info(f"{method} {url} cancelled on attempt {attempt + 1}")
                raise
            except ApiError as error:
                self._check_teardown(teardowns, method, url, "before failure was reported", error)
                if not (error.retryable and attempt < self.config.max_retries):
                    self._fail(generation, error, method, url, attempt)
                    raise
                await self._backoff(error, method, url, attempt)
                self._check_teardown(teardowns, method, url, "during retry backoff", error)
                attempt += 1
                continue

            # The attempt may have finished in the same tick as a teardown
            self._check_teardown(teardowns, method, url, "after the response arrived")
            latency_ms = (time.perf_counter() - started) * 1000
            self._update_state(
                generation,
                status=RequestStatus.SUCCESS,
                data=payload,
                error=None,
                is_loading=False,
                retry_count=attempt,
            )
            self._dispatch(RequestSucceeded(
                method=method, url=str(url), status=status_code, latency_ms=latency_ms, attempts=attempt + 1,
            ))
            return payload

    async def retry(self, url: str, **options: Any) -> Any:
        """Re-runs `execute` only if the last chain ended in error or timeout."""
        if not self._state.can_retry:
            logger.debug(f"retry() ignored, state is '{self._state.status.value}'")
            return None
        return await self.execute(url, **options)

    async def get(self, url: str, **options: Any) -> Any:
        return await self.execute(url, method="GET", **options)

    async def post(self, url: str, data: Any = None, *, headers: Optional[Mapping[str, str]] = None, **options: Any) -> Any:
        return await self.execute(url, method="POST", headers=_json_headers(headers), body=_serialize(data), **options)

    async def put(self, url: str, data: Any = None, *, headers: Optional[Mapping[str, str]] = None, **options: Any) -> Any:
        return await self.execute(url, method="PUT", headers=_json_headers(headers), body=_serialize(data), **options)

    async def delete(self, url: str, **options: Any) -> Any:
        return await self.execute(url, method="DELETE", **options)

    # --- Teardown ---

    def cancel_all(self) -> int:
        """Aborts every in-flight attempt. Never raises.

        Awaiting callers get `RequestCancelledError` and `state` is left as it
        was, so a chain torn down mid-flight stays LOADING (and `retry()` stays a
        no-op) until `reset()` or a new `execute()`.

        Returns:
            Number of attempts that were cancelled.
        """
        self._teardowns += 1
        pending = list(self._in_flight)
        self._in_flight.clear()
        for in_flight in pending:
            in_flight.cancel()
        if pending:
            logger.info(f"Cancelled {len(pending)} in-flight request(s)")
        return len(pending)

    async def aclose(self) -> None:
        """Cancels in-flight attempts and closes the HTTP client if the executor created it."""
        self.cancel_all()
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self) -> "ResilientRequestExecutor":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    # --- Attempt chain internals ---

    async def _attempt(
        self,
        method: str,
        url: str,
        headers: Optional[Mapping[str, str]],
        body: Body,
        params: Optional[Mapping[str, Any]],
        attempt: int,
    ) -> Tuple[int, Any]:
        request = self.client.build_request(
            method, url, headers=headers, content=body, params=params, timeout=self.config.timeout_seconds,
        )
        self._dispatch(RequestStarted(method=method, url=str(request.url), attempt_number=attempt + 1))
        logger.debug(f"{method} {request.url} attempt {attempt + 1}/{self.config.max_attempts}")

        # The task covers headers and body, so timeout and teardown abort both
        loop = asyncio.get_running_loop()
        in_flight = InFlightRequest(
            task=loop.create_task(self._exchange(request, attempt)),
            method=method,
            url=str(request.url),
        )
        in_flight.timeout_handle = loop.call_later(self.config.timeout_seconds, in_flight.expire)
        self._in_flight.add(in_flight)
        try:
            return await in_flight.task
        except asyncio.CancelledError:
            if in_flight.timed_out:
                raise RequestTimeoutError(f"Request timeout after {self.config.timeout_ms}ms")
            if in_flight.cancelled:
                raise RequestCancelledError()
            raise
        except ApiError:
            raise
        except Exception as exc:
            raise classify_transport_error(exc) from exc
        finally:
            in_flight.release_timer()
            self._in_flight.discard(in_flight)

    async def _exchange(self, request: httpx.Request, attempt: int) -> Tuple[int, Any]:
        """Sends the request and consumes the response within one cancellable task."""
        response = await self.client.send(request, stream=True)
        try:
            return response.status_code, await self._handle_response(response, attempt)
        finally:
            await response.aclose()

    def _check_teardown(
        self, teardowns: int, method: str, url: str, stage: str, cause: Optional[ApiError] = None,
    ) -> None:
        """Raises RequestCancelledError if `cancel_all()` ran since the chain started."""
        if self._teardowns == teardowns:
            return
        self._dispatch(RequestCancelled(method=method, url=str(url)))
        logger.info(f"{method} {url} cancelled {stage}")
        raise RequestCancelledError(f"Request cancelled {stage}", cause=cause)

    async def _handle_response(self, response: httpx.Response, attempt: int) -> Any:
        status = response.status_code
        if status in RETRYABLE_STATUS_CODES and attempt < self.config.max_retries:
            # Body is left unread, the attempt will be repeated
            raise ServerError(f"HTTP error {status}", status=status)

        try:
            await response.aread()
        except Exception as exc:
            raise classify_transport_error(exc) from exc
        data = self._parse_body(response)

        if not response.is_success:
            raise _http_error(status, data)
        return data

    def _parse_body(self, response: httpx.Response) -> Any:
        content_type = response.headers.get("content-type", "")
        if "json" in content_type.lower():
            try:
                return _decode_json(response)
            except ParseError as exc:
                logger.warning(f"{exc.message} ({response.request.method} {response.request.url}); using raw text")
        return response.text

    async def _backoff(self, error: ApiError, method: str, url: str, attempt: int) -> None:
        delay_seconds = self.config.retry_delay_ms(attempt) / 1000
        logger.warning(
            f"Retryable error on {method} {url} attempt {attempt + 1}/{self.config.max_attempts}: "
            f"{type(error).__name__}: {error.message}. Waiting {delay_seconds:.2f}s..."
        )
        self._dispatch(RetryScheduled(
            method=method, url=str(url), attempt_number=attempt + 1,
            delay_seconds=delay_seconds, reason=type(error).__name__,
        ))
        await self._sleep(delay_seconds)

    def _fail(self, generation: int, error: ApiError, method: str, url: str, attempt: int) -> None:
        self._update_state(
            generation,
            status=RequestStatus.TIMEOUT if error.is_timeout else RequestStatus.ERROR,
            data=None,
            error=error,
            is_loading=False,
            retry_count=attempt,
        )
        logger.error(f"{method} {url} failed after {attempt + 1} attempt(s): {error!r}")
        self._dispatch(RequestFailed(
            method=method, url=str(url), error_type=type(error).__name__,
            error_message=error.message, status=error.status,
        ))
        self._notify(error)

    def _notify(self, error: ApiError) -> None:
        if not self.config.notify_on_error:
            return
        if self.notifier is None:
            logger.error(f"API Error: {error.user_message}")
            return
        try:
            self.notifier.show_error(error.user_message, category=error.category)
        except Exception as e:
            logger.error(f"Failed to display error notification: {e}", exc_info=True)

    def _dispatch(self, event: DomainEvent) -> None:
        logger.debug(f"EVENT: {event}")
        if self._event_listener is not None:
            self._event_listener(event)


def _json_headers(headers: Optional[Mapping[str, str]]) -> dict:
    return {"Content-Type": "application/json", **(headers or {})}


def _serialize(data: Any) -> Optional[str]:
    return None if data is None else json.dumps(data)


def _decode_json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError as exc:
        raise ParseError(
            f"Malformed JSON body: {exc}", status=response.status_code, cause=exc, data=response.text,
        ) from exc


def _http_error(status: int, data: Any) -> ApiError:
    message = data.get("message") if isinstance(data, dict) else None
    message = str(message) if message else f"HTTP error {status}"
    if 400 <= status < 500:
        return ClientError(message, status=status, data=data)
    if status >= 500:
        return ServerError(message, status=status, data=data)
    return ApiError(message, status=status, data=data)
