from pydantic import BaseModel, Field

from services.tools.ToolInterface import ToolInterface
from services.tools.listing_format import pick_room, to_json
from shared.clients.backend.BackendClientInterface import BackendClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.tools import ToolContext

DEFAULT_RADIUS = 500


class NearbyRoomsInput(BaseModel):
    address: str = Field(min_length=1, description="Address or place to search around (e.g. '318 Tôn Đản')")
    radius: int = Field(default=DEFAULT_RADIUS, ge=1, description="Search radius in meters (default: 500)")
    city: str | None = Field(default=None, description="City appended to the address for better geocoding")


class NearbyRoomsTool(ToolInterface):
    name = "search_nearby_rooms"
    description = (
        "Search for rooms near a specific address or location. Use this when the user asks about rooms "
        "near a place, street, or area. A city, if given, is appended to the address for more precise "
        "geocoding."
    )
    input_model = NearbyRoomsInput

    def __init__(self, helper_config: HelperConfig, backend_client: BackendClientInterface):
        super().__init__(helper_config=helper_config)
        self._backend = backend_client

    @staticmethod
    def build_address(address: str, city: str | None) -> str:
        if city and city.lower() not in address.lower():
            return f"{address}, {city}"
        return address

    async def _run(self, args: NearbyRoomsInput, context: ToolContext) -> str:
        address = self.build_address(args.address, args.city)
        rooms = await self._backend.do_search_nearby(address, args.radius)
        if isinstance(rooms, dict):
            rooms = rooms.get("content") or rooms.get("items") or []
        return to_json({
            "address": address,
            "radius": args.radius,
            "total": len(rooms),
            "rooms": [pick_room(room) for room in rooms],
        })
