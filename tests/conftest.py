import pytest

from tool_agent import display


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Point the memory store at a temp dir and silence terminal output."""
    home = tmp_path / "agent-home"
    monkeypatch.setenv("TOOL_AGENT_HOME", str(home))
    display.set_quiet(True)
    yield home
    display.set_quiet(False)
