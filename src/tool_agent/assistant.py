# assistant.py
# Remote assistant channel.
#
# The orchestrator only needs two calls: open a session, send text and get
# text back. Framing (system prompt, tool docs, result feedback) is owned by
# harness.py; this module only owns transport.

import uuid
from typing import Protocol, runtime_checkable

from openai import OpenAI

from tool_agent.config import DEFAULT_BASE_URL, DEFAULT_MODEL


@runtime_checkable
class AssistantClient(Protocol):
    def create_session(self) -> str: ...

    def send(self, session_id: str, text: str, timeout: float) -> str: ...


class OpenRouterAssistant:
    """
    AssistantClient backed by any OpenAI-compatible chat endpoint.

    Each session is an in-memory message list; a send that fails is rolled
    back so a retry does not duplicate the user turn.

    Example:
        assistant = OpenRouterAssistant(api_key=os.getenv("OPENROUTER_API_KEY"))
        session = assistant.create_session()
        reply = assistant.send(session, "Hello", timeout=60)
    """

    def __init__(self, api_key: str, model: str = DEFAULT_MODEL, base_url: str = DEFAULT_BASE_URL) -> None:
        self._model = model
        self._client = OpenAI(base_url=base_url, api_key=api_key, max_retries=0)
        self._sessions: dict[str, list[dict]] = {}

    def create_session(self) -> str:
        session_id = f"session-{uuid.uuid4().hex[:12]}"
        self._sessions[session_id] = []
        return session_id

    def history(self, session_id: str) -> list[dict]:
        return list(self._sessions[session_id])

    def send(self, session_id: str, text: str, timeout: float) -> str:
        if session_id not in self._sessions:
            raise KeyError(f"Unknown session: {session_id}")

        messages = self._sessions[session_id]
        messages.append({"role": "user", "content": text})
        try:
            response = self._client.chat.completions.create(
                model=self._model,
                messages=messages,
                timeout=timeout,
            )
        except Exception:
            messages.pop()
            raise

        content = (response.choices[0].message.content or "").strip()
        messages.append({"role": "assistant", "content": content})
        return content
