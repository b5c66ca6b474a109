from pydantic import BaseModel, Field

from services.tools.ToolInterface import ToolInterface
from shared.clients.websearch.WebSearchClientInterface import WebSearchClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.tools import ToolContext


class WebSearchInput(BaseModel):
    query: str = Field(min_length=1, description="The search query for finding real-time information on the web")
    max_results: int = Field(default=5, ge=1, le=10, description="Maximum number of results (default: 5)")


class WebSearchTool(ToolInterface):
    name = "web_search"
    description = (
        "Search the web for real-time information that is not in the knowledge base or the platform "
        "data: government utility rates (electricity, water), market prices, legal regulations or news. "
        "Only use this when no other tool can answer."
    )
    input_model = WebSearchInput

    def __init__(self, helper_config: HelperConfig, websearch_client: WebSearchClientInterface):
        super().__init__(helper_config=helper_config)
        self._websearch = websearch_client

    async def _run(self, args: WebSearchInput, context: ToolContext) -> str:
        results = await self._websearch.do_search(args.query, max_results=args.max_results)
        if not results:
            return (
                f'No web search results found for query: "{args.query}". '
                "The information might not be publicly available or the query needs to be refined."
            )
        blocks = [f"**{r.title}**\n{r.snippet}" for r in results]
        return f'Web search results for "{args.query}":\n\n' + "\n\n---\n\n".join(blocks)
