# guard.py
# Timeout & complexity guard.
#
# Pre-flight: open-ended requests get an "incremental delivery" suffix, and
# oversized messages are flagged (never blocked). Post-failure: errors that
# look like gateway timeouts are told apart from everything else so the
# orchestrator can retry once with continuation guidance.

import re

import openai

from tool_agent import display
from tool_agent.models import MessageSize

COMPLEX_TASK_PATTERNS = (
    r"implementation plan",
    r"comprehensive",
    r"detailed design",
    r"architecture",
    r"step.by.step",
    r"thoroughly",
    r"create.*documentation",
)

TIMEOUT_ERROR_PATTERNS = ("524", "504", "timeout", "timed out", "gateway time-out")

LARGE_INPUT_THRESHOLD = 100_000
VERY_LARGE_INPUT_THRESHOLD = 250_000

CHUNKING_GUIDANCE = (
    "\n\nNote: This appears to be a complex task. Please respond incrementally:\n"
    "1. First provide an outline or high-level structure\n"
    "2. Then elaborate key sections one at a time\n"
    "3. You can deliver this in parts across iterations if needed"
)


def is_complex_task(message: str) -> bool:
    return any(re.search(p, message, re.IGNORECASE) for p in COMPLEX_TASK_PATTERNS)


def add_chunking_guidance(message: str) -> str:
    if is_complex_task(message):
        return message + CHUNKING_GUIDANCE
    return message


def validate_message_size(message: str, warn: bool = True) -> MessageSize:
    """Classify timeout risk by length. Informational only."""
    size = len(message)
    if size > VERY_LARGE_INPUT_THRESHOLD:
        risk = "high"
    elif size > LARGE_INPUT_THRESHOLD:
        risk = "medium"
    else:
        risk = "low"

    result = MessageSize(risk=risk, size=size)
    if warn and risk != "low":
        display.size_warning(result)
    return result


def is_timeout_error(error: BaseException | str) -> bool:
    if isinstance(error, (openai.APITimeoutError, TimeoutError)):
        return True
    if isinstance(error, openai.APIStatusError) and error.status_code in (504, 524):
        return True
    text = str(error).lower()
    return any(pattern in text for pattern in TIMEOUT_ERROR_PATTERNS)


def timeout_retry_prompt() -> str:
    return (
        "IMPORTANT: Your previous response likely timed out before it reached me. "
        "Continue from where you left off, and keep this response focused and concise:\n\n"
        "1. Break the work into phases if it is large\n"
        "2. Start with the most essential information\n"
        "3. Prefer one tool decision over long explanations\n\n"
        "Original message:\n\n"
    )
