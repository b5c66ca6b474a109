import re

from pydantic import BaseModel, Field

from services.tools.ToolInterface import ToolInterface
from services.tools.listing_format import pick_room, to_json
from shared.clients.backend.BackendClientInterface import BackendClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.tools import ToolContext

_CRITERION = re.compile(r"^([^:<>~]+)(:>|:<|:|>|<|~)(.+)$")

# criteria field -> backend filter field
FIELD_MAPPING = {
    "price": "price",
    "size": "size",
    "city": "city",
    "district": "district",
    "ward": "ward",
    "street": "street",
}

DEFAULT_PAGE_PARAMS = {"page": 0, "size": 20, "sort": "price", "order": "ASC"}


def parse_criteria(criteria: str) -> dict:
    """Turn "price:<5000000,size:>20,city:Đà Nẵng" into backend search parameters.

    Criteria without an operator are joined into the free-text ``search`` term.

    Returns:
        dict: {"filter"?, "search"?, "page", "size", "sort", "order"}.
    """
    filters: list[str] = []
    terms: list[str] = []
    for criterion in (c.strip() for c in criteria.split(",")):
        if not criterion:
            continue
        match = _CRITERION.match(criterion)
        if match is None:
            terms.append(criterion)
            continue
        field, operator, value = match.group(1).strip(), match.group(2), match.group(3).strip()
        if not field or not value:
            continue
        filters.append(f"{FIELD_MAPPING.get(field.lower(), field)}{operator}{value}")

    params: dict = {}
    if filters:
        params["filter"] = ",".join(filters)
    if terms:
        params["search"] = " ".join(terms)
    params.update(DEFAULT_PAGE_PARAMS)
    return params


class RoomSearchInput(BaseModel):
    criteria: str = Field(
        min_length=1,
        description=(
            "Search criteria in format 'field:operator:value,...' "
            "(e.g. 'price:<5000000,size:>20,city:Thành phố Đà Nẵng')"
        ),
    )


class RoomSearchTool(ToolInterface):
    name = "search_rooms"
    description = (
        "Search for rooms based on criteria like price, room size and location (city, district, ward, "
        "street). Criteria are comma separated 'field:operator:value' entries. Operators: ':' (equals), "
        "':>' (greater than), ':<' (less than), '~' (contains). Example: "
        "'district:Quận Thanh Khê,price:>3000000'."
    )
    input_model = RoomSearchInput

    def __init__(self, helper_config: HelperConfig, backend_client: BackendClientInterface):
        super().__init__(helper_config=helper_config)
        self._backend = backend_client

    async def _run(self, args: RoomSearchInput, context: ToolContext) -> str:
        params = parse_criteria(args.criteria)
        self.logging.debug("Room search parameters: %s", params)
        rooms = await self._backend.do_search_properties(params)
        return to_json({"total": len(rooms), "rooms": [pick_room(room) for room in rooms]})
