"""Document model and its lifecycle state machine."""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field

from shared.models.errors import InvalidStatusTransitionError


class KBScope(str, Enum):
    PROPERTY = "property"
    OWNER = "owner"
    GLOBAL = "global"


class DocumentStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


# allowed moves; completed and failed are terminal
_TRANSITIONS: dict[DocumentStatus, set[DocumentStatus]] = {
    DocumentStatus.PENDING: {DocumentStatus.PROCESSING, DocumentStatus.FAILED},
    DocumentStatus.PROCESSING: {DocumentStatus.COMPLETED, DocumentStatus.FAILED},
    DocumentStatus.COMPLETED: set(),
    DocumentStatus.FAILED: set(),
}


class Document(BaseModel):
    """A knowledge-base document owned by the ingestion pipeline.

    The status field must only be changed through transition_to(). A failed
    document stays failed; re-ingestion creates a new document.

    Attributes:
        id:           Document ID as assigned by the property backend.
        title:        Human-readable title, copied onto every chunk.
        kb_scope:     Tenant isolation level of the document.
        owner_id:     Owner the document belongs to. Required for property/owner scope.
        property_id:  Property the document describes, if any.
        status:       Current lifecycle status.
        source_url:   Where the raw file can be downloaded from, if not passed inline.
        metadata:     Free-form listing metadata used for text enrichment.
        chunk_count:  Number of chunks indexed once completed.
        error:        Failure reason once failed.
    """

    id: int
    title: str = ""
    kb_scope: KBScope = KBScope.PROPERTY
    owner_id: str | None = None
    property_id: int | None = None
    status: DocumentStatus = DocumentStatus.PENDING
    source_url: str | None = None
    metadata: dict = Field(default_factory=dict)
    chunk_count: int = 0
    error: str | None = None
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def can_transition_to(self, status: DocumentStatus) -> bool:
        return status in _TRANSITIONS[self.status]

    def transition_to(self, status: DocumentStatus, error: str | None = None) -> None:
        """Move the document to the next lifecycle status.

        Args:
            status (DocumentStatus): The target status.
            error (str | None): Failure reason, stored when moving to failed.

        Raises:
            InvalidStatusTransitionError: If the move skips a state or leaves a terminal state.
        """
        if not self.can_transition_to(status):
            raise InvalidStatusTransitionError(
                f"Document {self.id}: cannot move from '{self.status.value}' to '{status.value}'."
            )
        self.status = status
        if status == DocumentStatus.FAILED:
            self.error = error
        self.updated_at = datetime.now(timezone.utc)

    @property
    def is_terminal(self) -> bool:
        return not _TRANSITIONS[self.status]
