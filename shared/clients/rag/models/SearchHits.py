from pydantic import BaseModel


class SearchHits(BaseModel):
    """Structured output of a single search request.

    Attributes:
        hits:      List of raw hit dicts ({"_id", "_score", "_source"}) in engine order.
        total:     Total number of matches reported by the engine.
        took:      Time taken by the engine to execute the request (ms).
        timed_out: Whether the engine hit its own search timeout.
    """

    hits: list[dict]
    total: int = 0
    took: float = 0
    timed_out: bool = False


class DeleteReport(BaseModel):
    """Outcome of a delete-by-query run.

    Attributes:
        deleted:   Number of chunks removed.
        failures:  Per-chunk failure entries reported by the engine.
        took:      Time taken by the engine (ms).
        timed_out: Whether the engine hit its own timeout while deleting.
    """

    deleted: int = 0
    failures: list[dict] = []
    took: float = 0
    timed_out: bool = False

    @property
    def is_partial(self) -> bool:
        return bool(self.failures) or self.timed_out
