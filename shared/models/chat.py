from enum import Enum

from pydantic import BaseModel, Field

from shared.models.tools import ToolCall


class OrchestratorState(str, Enum):
    IDLE = "idle"
    CLASSIFYING = "classifying"
    DIRECT_ANSWER = "direct_answer"
    DELEGATING = "delegating"
    RESPONDING = "responding"


class ChatRoute(str, Enum):
    DIRECT = "direct"
    DELEGATED = "delegated"


class ChatCompletion(BaseModel):
    """Normalised reply of a chat model: final text, tool calls, or both."""

    content: str = ""
    tool_calls: list[ToolCall] = Field(default_factory=list)

    @property
    def wants_tools(self) -> bool:
        return bool(self.tool_calls)


class DelegationResult(BaseModel):
    answer: str
    tools_used: list[str] = Field(default_factory=list)
    success: bool = True


class ChatReply(BaseModel):
    response: str
    session_id: str
    route: ChatRoute
    tools_used: list[str] = Field(default_factory=list)
    language: str = "en"
