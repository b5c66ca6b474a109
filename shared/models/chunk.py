from pydantic import BaseModel


class SectionChunk(BaseModel):
    """A titled, token-bounded slice of a document produced by the chunker."""

    title: str
    content: str

    @property
    def text(self) -> str:
        """The chunk text as indexed, prefixed with its title tag."""
        return f"[{self.title}]\n{self.content}"


class ChunkingReport(BaseModel):
    chunks: list[SectionChunk]
    capture_rate: float
