"""Registry of the tools available to the information provider."""

from services.retrieval.HybridRetriever import HybridRetriever
from services.tools.DistanceTool import DistanceTool
from services.tools.KnowledgeBaseTool import KnowledgeBaseTool
from services.tools.NearbyRoomsTool import NearbyRoomsTool
from services.tools.OwnerDetailsTool import OwnerDetailsTool
from services.tools.PropertyDetailsTool import PropertyDetailsTool
from services.tools.RoomSearchTool import RoomSearchTool
from services.tools.ToolInterface import ToolInterface
from services.tools.UtilityPricingTool import UtilityPricingTool
from services.tools.WebSearchTool import WebSearchTool
from shared.clients.backend.BackendClientInterface import BackendClientInterface
from shared.clients.websearch.WebSearchClientInterface import WebSearchClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.tools import ToolCall, ToolContext, ToolFailure, ToolOutcome


class ToolRegistry:
    def __init__(self, helper_config: HelperConfig, tools: list[ToolInterface] | None = None) -> None:
        self.logging = helper_config.get_logger()
        self._tools: dict[str, ToolInterface] = {}
        for tool in tools or []:
            self.register(tool)

    def register(self, tool: ToolInterface) -> None:
        """Add a tool.

        Raises:
            ValueError: If a tool with the same name is already registered.
        """
        if tool.name in self._tools:
            raise ValueError(f"Tool '{tool.name}' is already registered.")
        self._tools[tool.name] = tool
        self.logging.debug("Registered tool '%s'", tool.name)

    def get(self, name: str) -> ToolInterface | None:
        return self._tools.get(name)

    def names(self) -> list[str]:
        return list(self._tools)

    def get_schemas(self) -> list[dict]:
        return [tool.get_schema() for tool in self._tools.values()]

    async def invoke(self, call: ToolCall, context: ToolContext) -> ToolOutcome:
        """Run a single tool call. Unknown tools yield a ToolFailure."""
        tool = self._tools.get(call.name)
        if tool is None:
            self.logging.warning("Model requested unknown tool '%s'", call.name)
            return ToolFailure(tool=call.name, error=f"Unknown tool '{call.name}'.")
        return await tool.invoke(call.args, context)


def build_default_registry(
    helper_config: HelperConfig,
    retriever: HybridRetriever,
    backend_client: BackendClientInterface,
    websearch_client: WebSearchClientInterface,
) -> ToolRegistry:
    """Registry with every tool of the information provider."""
    return ToolRegistry(helper_config, tools=[
        WebSearchTool(helper_config, websearch_client),
        KnowledgeBaseTool(helper_config, retriever),
        OwnerDetailsTool(helper_config, backend_client),
        PropertyDetailsTool(helper_config, backend_client),
        RoomSearchTool(helper_config, backend_client),
        NearbyRoomsTool(helper_config, backend_client),
        UtilityPricingTool(helper_config, backend_client),
        DistanceTool(helper_config, backend_client),
    ])
