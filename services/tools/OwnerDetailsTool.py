from pydantic import BaseModel, Field

from services.tools.ToolInterface import ToolInterface
from services.tools.listing_format import OWNER_FIELDS, pick, to_json
from shared.clients.backend.BackendClientInterface import BackendClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.tools import ToolContext


class OwnerDetailsInput(BaseModel):
    owner_id: str = Field(min_length=1, description="The owner ID to fetch details for")


class OwnerDetailsTool(ToolInterface):
    name = "get_owner_details"
    description = (
        "Get detailed information about a property owner/landlord, including their profile, contact "
        "details, and all their listed rooms. Use this when the user asks about the landlord, owner "
        "contact info, or wants to see all properties of an owner."
    )
    input_model = OwnerDetailsInput

    def __init__(self, helper_config: HelperConfig, backend_client: BackendClientInterface):
        super().__init__(helper_config=helper_config)
        self._backend = backend_client

    async def _run(self, args: OwnerDetailsInput, context: ToolContext) -> str:
        owner = await self._backend.do_fetch_owner(args.owner_id)
        if owner is None:
            raise self.fail(f"Owner with ID {args.owner_id} not found in the system.")
        return to_json(pick(owner, OWNER_FIELDS))
