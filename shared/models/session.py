from collections import deque
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field


def _now() -> datetime:
    return datetime.now(timezone.utc)


class MessagePair(BaseModel):
    """One user input and the reply given to it."""

    input: str
    output: str
    created_at: datetime = Field(default_factory=_now)


class Session(BaseModel):
    """Bounded conversation window of one session.

    The deque evicts the oldest pair once the window is full.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    session_id: str
    window: int = 6
    pairs: deque = Field(default_factory=deque)
    created_at: datetime = Field(default_factory=_now)
    last_access: datetime = Field(default_factory=_now)

    def model_post_init(self, __context) -> None:
        self.pairs = deque(self.pairs, maxlen=self.window)

    def touch(self) -> None:
        self.last_access = _now()

    def to_messages(self) -> list[dict]:
        """Render the window as chat messages, oldest first."""
        messages: list[dict] = []
        for pair in self.pairs:
            messages.append({"role": "user", "content": pair.input})
            messages.append({"role": "assistant", "content": pair.output})
        return messages
