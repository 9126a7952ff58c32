import httpx
import openai
import pytest
from unittest.mock import patch

from tool_agent import guard


@pytest.mark.parametrize(
    "task",
    [
        "Write a comprehensive implementation plan for the API",
        "Explain the architecture step by step",
        "Please create the full documentation for this module",
        "Review this THOROUGHLY",
    ],
)
def test_complex_tasks(task):
    assert guard.is_complex_task(task)
    assert guard.add_chunking_guidance(task) == task + guard.CHUNKING_GUIDANCE


def test_simple_task_unchanged():
    task = "Read main.py and count the functions"
    assert not guard.is_complex_task(task)
    assert guard.add_chunking_guidance(task) == task


def test_chunking_guidance_text():
    assert "incrementally" in guard.CHUNKING_GUIDANCE
    assert "outline" in guard.CHUNKING_GUIDANCE


@pytest.mark.parametrize(
    "size, risk",
    [
        (10, "low"),
        (guard.LARGE_INPUT_THRESHOLD, "low"),
        (guard.LARGE_INPUT_THRESHOLD + 1, "medium"),
        (guard.VERY_LARGE_INPUT_THRESHOLD + 1, "high"),
    ],
)
def test_validate_message_size(size, risk):
    result = guard.validate_message_size("x" * size, warn=False)
    assert result.risk == risk
    assert result.size == size


@patch("tool_agent.guard.display")
def test_validate_message_size_warns_but_never_blocks(mock_display):
    result = guard.validate_message_size("x" * (guard.VERY_LARGE_INPUT_THRESHOLD + 1))
    assert result.risk == "high"
    mock_display.size_warning.assert_called_once_with(result)

    guard.validate_message_size("small")
    assert mock_display.size_warning.call_count == 1


@pytest.mark.parametrize(
    "error",
    [
        "Error code: 524",
        "504 Gateway Time-out",
        "Request timed out",
        RuntimeError("read timeout"),
        TimeoutError(),
    ],
)
def test_timeout_errors(error):
    assert guard.is_timeout_error(error)


@pytest.mark.parametrize("error", ["401 Unauthorized", ValueError("bad json"), "rate limited"])
def test_non_timeout_errors(error):
    assert not guard.is_timeout_error(error)


def test_openai_timeout_types():
    request = httpx.Request("POST", "https://openrouter.ai/api/v1/chat/completions")
    assert guard.is_timeout_error(openai.APITimeoutError(request=request))

    response = httpx.Response(524, request=request)
    status_error = openai.APIStatusError("upstream", response=response, body=None)
    assert guard.is_timeout_error(status_error)


def test_timeout_retry_prompt():
    prompt = guard.timeout_retry_prompt()
    assert prompt.startswith("IMPORTANT")
    assert "timed out" in prompt
    assert "Continue from where you left off" in prompt
    assert prompt.endswith("Original message:\n\n")
