import pytest
from unittest.mock import MagicMock, patch

from tool_agent.assistant import AssistantClient, OpenRouterAssistant


def _completion(text):
    response = MagicMock()
    response.choices[0].message.content = text
    return response


@pytest.fixture
def client():
    with patch("tool_agent.assistant.OpenAI") as mock_openai:
        yield mock_openai.return_value.chat.completions.create, mock_openai


def test_implements_protocol(client):
    assert isinstance(OpenRouterAssistant(api_key="k"), AssistantClient)


def test_client_configuration(client):
    _, mock_openai = client
    OpenRouterAssistant(api_key="k", model="m", base_url="https://example.test/v1")
    mock_openai.assert_called_once_with(base_url="https://example.test/v1", api_key="k", max_retries=0)


def test_send_keeps_history(client):
    create, _ = client
    create.side_effect = [_completion("  first reply \n"), _completion("second")]

    assistant = OpenRouterAssistant(api_key="k", model="m")
    session = assistant.create_session()
    assert session.startswith("session-")

    assert assistant.send(session, "hello", timeout=30) == "first reply"
    assert assistant.send(session, "again", timeout=30) == "second"
    assert [m["role"] for m in assistant.history(session)] == ["user", "assistant", "user", "assistant"]

    kwargs = create.call_args.kwargs
    assert kwargs["model"] == "m"
    assert kwargs["timeout"] == 30


def test_sessions_are_independent(client):
    create, _ = client
    create.return_value = _completion("ok")
    assistant = OpenRouterAssistant(api_key="k")
    a, b = assistant.create_session(), assistant.create_session()
    assert a != b
    assistant.send(a, "hi", timeout=5)
    assert assistant.history(b) == []


def test_failed_send_is_rolled_back(client):
    create, _ = client
    create.side_effect = RuntimeError("Request timed out")
    assistant = OpenRouterAssistant(api_key="k")
    session = assistant.create_session()

    with pytest.raises(RuntimeError):
        assistant.send(session, "hello", timeout=5)
    assert assistant.history(session) == []


def test_unknown_session(client):
    with pytest.raises(KeyError):
        OpenRouterAssistant(api_key="k").send("session-nope", "hi", timeout=5)


def test_none_content_becomes_empty_string(client):
    create, _ = client
    create.return_value = _completion(None)
    assistant = OpenRouterAssistant(api_key="k")
    assert assistant.send(assistant.create_session(), "hi", timeout=5) == ""
