from pydantic import BaseModel, Field

from services.tools.ToolInterface import ToolInterface
from services.tools.listing_format import to_json
from shared.clients.backend.BackendClientInterface import BackendClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.tools import ToolContext


class DistanceInput(BaseModel):
    from_property_id: int | None = Field(default=None, description="Source property ID (optional if from_address is given)")
    to_property_id: int | None = Field(default=None, description="Destination property ID (optional if to_address is given)")
    from_address: str | None = Field(default=None, description="Source address (optional if from_property_id is given)")
    to_address: str | None = Field(default=None, description="Destination address (optional if to_property_id is given)")


def _coordinates(pair) -> dict | None:
    if isinstance(pair, (list, tuple)) and len(pair) >= 2:
        return {"latitude": pair[0], "longitude": pair[1]}
    return None


class DistanceTool(ToolInterface):
    name = "calculate_distance"
    description = (
        "Calculate the straight-line distance between two properties or addresses. Use this when the "
        "user asks how far apart two locations are. Accepts property IDs, addresses, or a mix. Returns "
        "the distance in kilometers and meters with coordinates."
    )
    input_model = DistanceInput

    def __init__(self, helper_config: HelperConfig, backend_client: BackendClientInterface):
        super().__init__(helper_config=helper_config)
        self._backend = backend_client

    async def _run(self, args: DistanceInput, context: ToolContext) -> str:
        if args.from_property_id is None and not args.from_address:
            raise self.fail("Must provide source location (from_property_id or from_address).")
        if args.to_property_id is None and not args.to_address:
            raise self.fail("Must provide destination location (to_property_id or to_address).")

        params: dict = {}
        if args.from_property_id is not None:
            params["fromPropertyId"] = args.from_property_id
        if args.to_property_id is not None:
            params["toPropertyId"] = args.to_property_id
        if args.from_address:
            params["fromAddress"] = args.from_address
        if args.to_address:
            params["toAddress"] = args.to_address

        result = await self._backend.do_calculate_distance(params)
        if not result:
            raise self.fail("The backend could not locate one of the given places.")

        km, meters = result.get("distanceKm"), result.get("distanceMeters")
        return to_json({
            "source": f"Property ID {args.from_property_id}" if args.from_property_id is not None else f"Address: {args.from_address}",
            "destination": f"Property ID {args.to_property_id}" if args.to_property_id is not None else f"Address: {args.to_address}",
            "distance": {"kilometers": km, "meters": meters, "formatted": f"{km} km ({meters} meters)"},
            "coordinates": {
                "from": _coordinates(result.get("fromCoordinates")),
                "to": _coordinates(result.get("toCoordinates")),
            },
        })
