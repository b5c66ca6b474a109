"""ChunkDocument model: the payload indexed into the search engine for every chunk."""

from datetime import datetime, timezone

from pydantic import BaseModel, Field, field_validator

MAX_CHUNKS_PER_DOCUMENT = 10000


def make_chunk_id(document_id: int, chunk_index: int) -> int:
    """Build the corpus-wide chunk ID from the parent document ID and chunk index.

    Equal to the decimal concatenation of the document ID and the zero-padded
    four digit index, e.g. document 42, chunk 3 -> 420003.

    Args:
        document_id (int): ID of the parent document.
        chunk_index (int): Zero-based position of the chunk within the document.

    Returns:
        int: The chunk ID.

    Raises:
        ValueError: If the index does not fit into four digits.
    """
    if not 0 <= chunk_index < MAX_CHUNKS_PER_DOCUMENT:
        raise ValueError(
            f"Chunk index {chunk_index} of document {document_id} is out of range "
            f"(max {MAX_CHUNKS_PER_DOCUMENT - 1})."
        )
    return document_id * MAX_CHUNKS_PER_DOCUMENT + chunk_index


class ChunkDocument(BaseModel):
    """Metadata and vector stored for each chunk in the search engine.

    owner_id and property_id are copied from the parent document so every
    retrieval can be filtered by tenant scope.

    Attributes:
        chunk_id:     Corpus-wide unique ID, see make_chunk_id().
        document_id:  ID of the parent document.
        title:        Title of the parent document.
        chunk_text:   Chunk text including its "[section]" title tag.
        chunk_index:  Zero-based position of this chunk within the document.
        owner_id:     Owner of the parent document, if scoped.
        property_id:  Property of the parent document, if scoped.
        embedding:    Unit-normalised embedding of chunk_text.
        created_at:   Indexing timestamp.
    """

    chunk_id: int
    document_id: int
    title: str
    chunk_text: str
    chunk_index: int
    owner_id: str | None = None
    property_id: int | None = None
    embedding: list[float]
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("chunk_text")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("chunk_text must not be empty")
        return value

    @classmethod
    def build(
        cls,
        document_id: int,
        chunk_index: int,
        title: str,
        chunk_text: str,
        embedding: list[float],
        owner_id: str | None = None,
        property_id: int | None = None,
    ) -> "ChunkDocument":
        return cls(
            chunk_id=make_chunk_id(document_id, chunk_index),
            document_id=document_id,
            title=title,
            chunk_text=chunk_text,
            chunk_index=chunk_index,
            owner_id=owner_id,
            property_id=property_id,
            embedding=embedding,
        )
