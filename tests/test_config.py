import pytest
from pydantic import ValidationError
from unittest.mock import patch

from tool_agent.config import UNBOUNDED, AgentConfig, agent_home, parse_max_iterations


@pytest.mark.parametrize("value, expected", [(5, 5), ("12", 12), ("unbounded", UNBOUNDED), (UNBOUNDED, UNBOUNDED)])
def test_parse_max_iterations(value, expected):
    assert parse_max_iterations(value) == expected


@pytest.mark.parametrize("value", [0, -3, "abc", 2.5, True])
def test_parse_max_iterations_rejects(value):
    with pytest.raises(ValueError):
        parse_max_iterations(value)


def test_agent_home_override(isolated_home):
    assert agent_home() == isolated_home


def test_agent_home_default(monkeypatch, tmp_path):
    monkeypatch.delenv("TOOL_AGENT_HOME")
    monkeypatch.setattr("pathlib.Path.home", lambda: tmp_path)
    assert agent_home() == tmp_path / ".tool-agent"


def test_defaults():
    config = AgentConfig()
    assert config.max_iterations == 10
    assert config.safe_mode is True
    assert config.timeout == 120
    assert config.count_denied_iterations is True


def test_invalid_values():
    with pytest.raises(ValidationError):
        AgentConfig(max_iterations=0)
    with pytest.raises(ValidationError):
        AgentConfig(timeout=0)


@patch("tool_agent.config.load_dotenv")
def test_from_env(mock_load_dotenv, monkeypatch):
    monkeypatch.setenv("OPENROUTER_API_KEY", "sk-test")
    monkeypatch.setenv("TOOL_AGENT_MODEL", "openai/gpt-4o-mini")
    monkeypatch.setenv("TOOL_AGENT_MAX_ITERATIONS", "unbounded")
    monkeypatch.setenv("TOOL_AGENT_SAFE_MODE", "false")
    monkeypatch.setenv("TOOL_AGENT_TIMEOUT", "30")

    config = AgentConfig.from_env(verbose=False)

    mock_load_dotenv.assert_called_once()
    assert config.api_key == "sk-test"
    assert config.model == "openai/gpt-4o-mini"
    assert config.max_iterations == UNBOUNDED
    assert config.safe_mode is False
    assert config.timeout == 30
    assert config.verbose is False
