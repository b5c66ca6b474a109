"""Tool call and tool outcome models.

Tool outcomes form a discriminated union on ``status`` so callers can tell a
success payload from a structured failure without inspecting strings.
"""

import uuid
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field


class ToolCall(BaseModel):
    """A single tool invocation requested by the language model."""

    name: str
    args: dict = Field(default_factory=dict)
    id: str = Field(default_factory=lambda: uuid.uuid4().hex[:12])


class ToolSuccess(BaseModel):
    status: Literal["success"] = "success"
    tool: str
    output: str


class ToolFailure(BaseModel):
    status: Literal["failure"] = "failure"
    tool: str
    error: str


ToolOutcome = Annotated[Union[ToolSuccess, ToolFailure], Field(discriminator="status")]


class ToolContext(BaseModel):
    """Request scope handed to every tool of one chat cycle.

    Tools read tenant identifiers from here instead of trusting model-provided arguments.
    """

    owner_id: str | None = None
    property_id: int | None = None
    user_id: str | None = None
    language: str = "en"
