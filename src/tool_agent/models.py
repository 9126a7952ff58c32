# models.py
# Data contracts for the agentic tool loop.
# No business logic lives here: pure schema and validation.

from typing import Any, Callable, Literal

from pydantic import BaseModel, ConfigDict, Field


class ToolSpec(BaseModel):
    """A named capability the model can request. Registered once, never mutated."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str = Field(..., description="Unique registry key.")
    description: str = Field(..., description="Shown to the model.")
    risky: bool = Field(default=False, description="Requires approval in safe mode.")
    parameters: dict[str, str] = Field(default_factory=dict, description="Parameter docs.")
    handler: Callable[..., Any]


class ToolDecision(BaseModel):
    """The parsed intent of one assistant reply."""

    model_config = ConfigDict(frozen=True)

    action: str | None = None
    input: dict[str, Any] = Field(default_factory=dict)
    reasoning: str = ""
    status: Literal["continue", "final"] = "continue"


class ToolResult(BaseModel):
    """Envelope produced by every tool invocation."""

    success: bool
    result: str | None = None
    error: str | None = None

    @property
    def text(self) -> str:
        return (self.result if self.success else self.error) or ""


class ActionRecord(BaseModel):
    """Audit entry for one iteration's tool attempt. action=None marks a no-op."""

    model_config = ConfigDict(frozen=True)

    iteration: int
    action: str | None
    input: dict[str, Any] = Field(default_factory=dict)
    result: str = ""
    success: bool


class AgenticResult(BaseModel):
    """Assembled exactly once, when the loop terminates."""

    task: str
    final_response: str
    iterations: int
    actions_taken: list[ActionRecord] = Field(default_factory=list)
    session_id: str | None = None
    success: bool
    state: Literal["final", "exhausted", "failed"]


class ApprovalDecision(BaseModel):
    approved: bool
    input: dict[str, Any] = Field(default_factory=dict)


class MessageSize(BaseModel):
    risk: Literal["low", "medium", "high"]
    size: int


class MemoryFile(BaseModel):
    path: str
    size: int
    modified: str
    size_human: str
