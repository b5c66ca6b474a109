from pydantic import BaseModel, Field

from services.retrieval.HybridRetriever import HybridRetriever
from services.tools.ToolInterface import ToolInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.document import KBScope
from shared.models.search import RetrievalOptions, SearchType
from shared.models.tools import ToolContext

KB_MIN_SCORE = 0.6
NO_RESULTS = "No relevant information found in the knowledge base for this query."


class KnowledgeBaseInput(BaseModel):
    query: str = Field(min_length=1, description="The search query to find relevant information")
    top_k: int = Field(default=5, ge=1, le=20, description="Number of passages to return (default: 5)")


class KnowledgeBaseTool(ToolInterface):
    name = "search_knowledge_base"
    description = (
        "Search the property knowledge base for information about rules, regulations, pricing, "
        "amenities, or any property-specific details. Use this when the user asks about internal "
        "property information, house rules, rental terms, or documents uploaded by the property owner."
    )
    input_model = KnowledgeBaseInput

    def __init__(self, helper_config: HelperConfig, retriever: HybridRetriever):
        super().__init__(helper_config=helper_config)
        self._retriever = retriever

    @staticmethod
    def scope_for(context: ToolContext) -> KBScope:
        """Narrowest scope the request context allows."""
        if context.owner_id and context.property_id is not None:
            return KBScope.PROPERTY
        if context.owner_id:
            return KBScope.OWNER
        return KBScope.GLOBAL

    async def _run(self, args: KnowledgeBaseInput, context: ToolContext) -> str:
        # tenant scope comes from the request, never from model arguments
        options = RetrievalOptions(
            top_k=args.top_k,
            min_score=KB_MIN_SCORE,
            search_type=SearchType.HYBRID,
            rerank=True,
            owner_id=context.owner_id,
            property_id=context.property_id,
            kb_scope=self.scope_for(context),
        )
        results = await self._retriever.retrieve(args.query, options)
        if not results:
            return NO_RESULTS
        return self._retriever.format_context(results)
