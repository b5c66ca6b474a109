from pydantic import BaseModel, Field

from services.tools.ToolInterface import ToolInterface
from services.tools.listing_format import pick_room, to_json
from shared.clients.backend.BackendClientInterface import BackendClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.tools import ToolContext


class PropertyDetailsInput(BaseModel):
    property_id: int = Field(description="The property ID to fetch details for")


class PropertyDetailsTool(ToolInterface):
    name = "get_property_details"
    description = (
        "Get detailed information about a specific property/room from the backend system. Use this "
        "when the user asks about property features, location, price, availability, images, or "
        "general property information."
    )
    input_model = PropertyDetailsInput

    def __init__(self, helper_config: HelperConfig, backend_client: BackendClientInterface):
        super().__init__(helper_config=helper_config)
        self._backend = backend_client

    async def _run(self, args: PropertyDetailsInput, context: ToolContext) -> str:
        prop = await self._backend.do_fetch_property(args.property_id)
        if prop is None:
            raise self.fail(f"Property with ID {args.property_id} not found in the system.")
        return to_json(pick_room(prop))
