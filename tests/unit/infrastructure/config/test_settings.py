import pytest

from tubeflow.domain.models.request import ExecutorConfig
from tubeflow.infrastructure.config import settings
from tubeflow.infrastructure.config.settings import (
    get_api_base_url, get_api_token, get_api_url, get_config, get_executor_config,
    load_configuration, set_config_for_testing,
)


@pytest.fixture(autouse=True)
def empty_configuration(tmp_path, monkeypatch):
    """Start every test from an empty configuration and a directory without .env."""
    monkeypatch.chdir(tmp_path)
    for name in ("HTTP_TIMEOUT_MS", "TUBEFLOW_HTTP_TIMEOUT_MS", "TUBEFLOW_HTTP_MAX_RETRIES"):
        monkeypatch.delenv(name, raising=False)
    load_configuration(config_file=tmp_path / "missing.yaml", force=True)
    yield
    load_configuration(config_file=tmp_path / "missing.yaml", force=True)


def test_defaults_when_nothing_configured():
    assert get_config("http.timeout_ms", 123) == 123
    assert get_api_base_url() == "http://localhost:5001"
    assert get_api_token() is None
    assert get_executor_config() == ExecutorConfig()


def test_yaml_nested_keys(tmp_path):
    config_file = tmp_path / "config.yaml"
    config_file.write_text(
        "api:\n"
        "  base_url: https://erp.example.com/\n"
        "http:\n"
        "  timeout_ms: 3000\n"
        "  notify_on_error: false\n"
    )

    load_configuration(config_file=config_file, force=True)

    assert get_config("http.timeout_ms") == 3000
    assert get_api_base_url() == "https://erp.example.com"
    assert get_executor_config() == ExecutorConfig(timeout_ms=3000, notify_on_error=False)


def test_invalid_yaml_is_ignored(tmp_path):
    config_file = tmp_path / "config.yaml"
    config_file.write_text("api: [unclosed\n")

    load_configuration(config_file=config_file, force=True)

    assert get_api_base_url() == "http://localhost:5001"


def test_environment_overrides_yaml(tmp_path, monkeypatch):
    config_file = tmp_path / "config.yaml"
    config_file.write_text("http:\n  timeout_ms: 3000\n")
    load_configuration(config_file=config_file, force=True)

    monkeypatch.setenv("TUBEFLOW_HTTP_TIMEOUT_MS", "1500")
    monkeypatch.setenv("API_URL", "http://railway.example.app")

    assert get_config("http.timeout_ms") == 1500
    assert get_api_base_url() == "http://railway.example.app"


@pytest.mark.parametrize("raw, expected", [("true", True), ("False", False), ("2.5", 2.5), ("7", 7), ("abc", "abc")])
def test_environment_values_are_coerced(monkeypatch, raw, expected):
    monkeypatch.setenv("TUBEFLOW_SOME_KEY", raw)
    assert get_config("some.key") == expected


def test_test_config_has_highest_priority(monkeypatch):
    monkeypatch.setenv("API_URL", "http://from-env")
    set_config_for_testing({"API_URL": "http://from-test"})

    assert get_api_base_url() == "http://from-test"


def test_dotenv_file_is_loaded(tmp_path, monkeypatch):
    # setenv first so monkeypatch restores the variable's absence afterwards
    monkeypatch.setenv("TUBEFLOW_API_TOKEN", "placeholder")
    monkeypatch.delenv("TUBEFLOW_API_TOKEN")
    env_file = tmp_path / ".env"
    env_file.write_text("TUBEFLOW_API_TOKEN=from-dotenv\n")

    load_configuration(config_file=tmp_path / "missing.yaml", env_file=env_file, force=True)

    assert get_api_token() == "from-dotenv"


@pytest.mark.parametrize("endpoint", ["api/leads", "/api/leads"])
def test_get_api_url_avoids_double_slashes(endpoint):
    set_config_for_testing({"API_URL": "http://backend.test/"})
    assert get_api_url(endpoint) == "http://backend.test/api/leads"


def test_executor_config_overrides_win():
    set_config_for_testing({"http.max_retries": 5, "http.timeout_ms": 2000})

    config = get_executor_config(max_retries=0, timeout_ms=None)

    assert config.max_retries == 0
    assert config.timeout_ms == 2000


def test_load_is_idempotent_without_force(tmp_path):
    config_file = tmp_path / "config.yaml"
    config_file.write_text("http:\n  timeout_ms: 3000\n")

    load_configuration(config_file=config_file)

    assert settings._loaded
    assert get_config("http.timeout_ms") is None
