"""In-memory conversation memory keyed by session ID."""

from datetime import datetime, timedelta, timezone

from shared.helper.HelperConfig import HelperConfig
from shared.models.session import MessagePair, Session


class SessionStore:
    """Holds the last SESSION_WINDOW message pairs of every session.

    Sessions are created on first access. With SESSION_TTL_SECONDS > 0, a
    session idle for longer than the TTL is dropped the next time it is read.
    Different session IDs never share state; two concurrent requests on the
    same session ID are not serialised and may interleave their appends.
    """

    def __init__(self, helper_config: HelperConfig) -> None:
        self.logging = helper_config.get_logger()
        self.window = int(helper_config.get_number_val("SESSION_WINDOW", default=6))
        self.ttl_seconds = int(helper_config.get_number_val("SESSION_TTL_SECONDS", default=0))
        self._sessions: dict[str, Session] = {}

    def _is_expired(self, session: Session) -> bool:
        if self.ttl_seconds <= 0:
            return False
        return datetime.now(timezone.utc) - session.last_access > timedelta(seconds=self.ttl_seconds)

    def get(self, session_id: str) -> Session:
        """Return the session, creating it (or replacing an expired one) as needed."""
        session = self._sessions.get(session_id)
        if session is not None and self._is_expired(session):
            self.logging.debug("Session %s expired after %ds idle, starting fresh.", session_id, self.ttl_seconds)
            session = None
        if session is None:
            session = Session(session_id=session_id, window=self.window)
            self._sessions[session_id] = session
        session.touch()
        return session

    def append(self, session_id: str, user_input: str, output: str) -> None:
        """Record a completed exchange. The oldest pair is evicted once the window is full."""
        self.get(session_id).pairs.append(MessagePair(input=user_input, output=output))

    def history(self, session_id: str) -> list[MessagePair]:
        """Pairs of the session, oldest first. Unknown sessions have an empty history."""
        session = self._sessions.get(session_id)
        if session is None or self._is_expired(session):
            return []
        return list(session.pairs)

    def clear(self, session_id: str) -> None:
        """Forget a session. Clearing an unknown session is a no-op."""
        if self._sessions.pop(session_id, None) is not None:
            self.logging.info("Cleared session %s", session_id)

    def session_count(self) -> int:
        return len(self._sessions)
