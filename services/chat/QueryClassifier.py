import re

# anchored at the start, whole words only: "hi" matches "hi there" but not "hiking"
BASIC_PATTERNS: tuple[str, ...] = (
    r"hi", r"hello", r"hey", r"good (?:morning|afternoon|evening)",
    r"thanks?(?: you)?", r"thank you", r"bye", r"goodbye", r"see you", r"help",
    r"xin chào", r"chào(?: bạn| anh| chị| em)?", r"cảm ơn", r"cám ơn", r"tạm biệt",
)

_BASIC_RE = re.compile(
    r"^\s*(?:" + "|".join(BASIC_PATTERNS) + r")(?!\w)",
    re.IGNORECASE,
)


class QueryClassifier:
    """Decides whether a message is small talk the orchestrator answers itself.

    Everything that is not a greeting, thanks, goodbye or help request is
    delegated to the tool-using information provider.
    """

    @staticmethod
    def is_basic(message: str) -> bool:
        if not message:
            return False
        return _BASIC_RE.match(message) is not None
