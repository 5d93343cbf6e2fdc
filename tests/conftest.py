import inspect
from typing import Any, List

import httpx
import pytest

from tubeflow.domain.interfaces.notifier import Notifier
from tubeflow.domain.models.request import ExecutorConfig
from tubeflow.infrastructure.config.settings import clear_test_config
from tubeflow.infrastructure.resilience.request_executor import ResilientRequestExecutor

BASE_URL = "http://backend.test"


class ScriptedTransport:
    """MockTransport handler replaying a script of outcomes. The last outcome repeats.

    An outcome is an int (bare status response), an exception instance (raised),
    or a callable taking the request and returning a Response (or awaitable of one).
    """

    def __init__(self, *outcomes: Any):
        self._outcomes = list(outcomes)
        self.requests: List[httpx.Request] = []

    @property
    def calls(self) -> int:
        return len(self.requests)

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        outcome = self._outcomes.pop(0) if len(self._outcomes) > 1 else self._outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        if isinstance(outcome, int):
            return httpx.Response(outcome)
        result = outcome(request)
        if inspect.isawaitable(result):
            result = await result
        return result


class RecordingSleep:
    """Stand-in for asyncio.sleep that records delays without waiting."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def scripted_transport():
    """Provides the ScriptedTransport class."""
    return ScriptedTransport


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def mock_notifier(mocker):
    return mocker.MagicMock(spec=Notifier)


@pytest.fixture
def fast_config():
    """Small timeouts and delays so tests never wait long."""
    return ExecutorConfig(timeout_ms=50, max_retries=2, initial_retry_delay_ms=10, retry_backoff_multiplier=2)


@pytest.fixture
def make_executor(mock_notifier, recording_sleep, fast_config):
    """Factory building an executor whose client talks to a MockTransport."""
    def _make(transport, config=None, executor_class=ResilientRequestExecutor, **kwargs):
        client = httpx.AsyncClient(transport=httpx.MockTransport(transport), base_url=BASE_URL)
        kwargs.setdefault("notifier", mock_notifier)
        kwargs.setdefault("sleep", recording_sleep)
        return executor_class(config=config or fast_config, client=client, **kwargs)
    return _make


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch):
    """Keep developer tokens/URLs and test overrides from leaking into tests."""
    for name in ("API_URL", "TUBEFLOW_API_URL", "API_TOKEN", "TUBEFLOW_API_TOKEN"):
        monkeypatch.delenv(name, raising=False)
    yield
    clear_test_config()
