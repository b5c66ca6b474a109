import statistics

from pydantic import BaseModel, Field

from services.tools.ToolInterface import ToolInterface
from services.tools.listing_format import format_vnd, to_json, to_number
from shared.clients.backend.BackendClientInterface import BackendClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.tools import ToolContext

SAMPLE_SIZE = 5
PRICING_NOTE = (
    "These statistics cover room rent only. Utility costs (electricity, water, internet) are usually "
    "charged separately and vary by landlord; combine with web_search for current government rates."
)


def price_percentile(values: list[float], target: float) -> int:
    """Share of values at or below target, in percent. 50 when there is nothing to compare."""
    if not values:
        return 50
    return round(sum(1 for v in values if v <= target) / len(values) * 100)


def market_statistics(properties: list[dict]) -> dict:
    prices = [p for p in (to_number(prop.get("price")) for prop in properties) if p > 0]
    sizes = [s for s in (to_number(prop.get("roomSize")) for prop in properties) if s > 0]
    per_sqm = [
        to_number(prop.get("price")) / to_number(prop.get("roomSize"))
        for prop in properties
        if to_number(prop.get("price")) > 0 and to_number(prop.get("roomSize")) > 0
    ]
    return {
        "total": len(properties),
        "prices": prices,
        "price_min": min(prices) if prices else 0,
        "price_max": max(prices) if prices else 0,
        "price_avg": statistics.mean(prices) if prices else 0,
        "price_median": statistics.median(prices) if prices else 0,
        "size_min": min(sizes) if sizes else 0,
        "size_max": max(sizes) if sizes else 0,
        "size_avg": statistics.mean(sizes) if sizes else 0,
        "price_per_sqm_avg": statistics.mean(per_sqm) if per_sqm else 0,
    }


class UtilityPricingInput(BaseModel):
    current_property_id: int | None = Field(default=None, description="The property to compare against others")
    max_results: int = Field(default=10, ge=1, le=50, description="Number of properties to compare (default: 10)")


class UtilityPricingTool(ToolInterface):
    name = "compare_utility_pricing"
    description = (
        "Compare property pricing with the market. Use this for questions like 'Is this cheaper than "
        "other rentals?' or 'Is this a good deal?'. Returns min, max, average and median prices, price "
        "per m² and the percentile of the current property within its district."
    )
    input_model = UtilityPricingInput

    def __init__(self, helper_config: HelperConfig, backend_client: BackendClientInterface):
        super().__init__(helper_config=helper_config)
        self._backend = backend_client

    async def _run(self, args: UtilityPricingInput, context: ToolContext) -> str:
        property_id = args.current_property_id if args.current_property_id is not None else context.property_id

        current = None
        if property_id is not None:
            current = await self._backend.do_fetch_property(property_id)
            if current is None:
                self.logging.warning("Property %s not found, comparing across all areas.", property_id)

        params: dict = {"page": 0, "size": args.max_results, "sort": "price", "order": "ASC"}
        if current and current.get("district"):
            params["filter"] = f"district:{current['district']}"
        properties = await self._backend.do_search_properties(params)
        stats = market_statistics(properties)

        result: dict = {
            "searchArea": f"{current['district']}, {current.get('city')}" if current and current.get("district") else "All areas",
            "marketStatistics": {
                "totalProperties": stats["total"],
                "priceRange": {
                    "min": format_vnd(stats["price_min"]),
                    "max": format_vnd(stats["price_max"]),
                    "average": format_vnd(stats["price_avg"]),
                    "median": format_vnd(stats["price_median"]),
                },
                "sizeRange": {
                    "min": f"{stats['size_min']:.1f} m²",
                    "max": f"{stats['size_max']:.1f} m²",
                    "average": f"{stats['size_avg']:.1f} m²",
                },
                "averagePricePerSqm": format_vnd(stats["price_per_sqm_avg"]) + "/m²",
            },
            "currentPropertyAnalysis": self._compare_current(current, stats) if current else "No current property specified",
            "sampleProperties": [
                {
                    "id": p.get("id"),
                    "title": p.get("title"),
                    "price": p.get("price"),
                    "size": p.get("roomSize"),
                    "location": f"{p.get('district')}, {p.get('city')}",
                    "available": p.get("isRoomAvailable"),
                }
                for p in properties[:SAMPLE_SIZE]
            ],
            "note": PRICING_NOTE,
        }
        return to_json(result)

    @staticmethod
    def _compare_current(current: dict, stats: dict) -> dict:
        price = to_number(current.get("price"))
        size = to_number(current.get("roomSize"))
        per_sqm = price / size if price and size else 0
        return {
            "propertyId": current.get("id"),
            "title": current.get("title"),
            "price": format_vnd(price),
            "size": f"{size:.1f} m²",
            "pricePerSqm": format_vnd(per_sqm) + "/m²",
            "location": f"{current.get('district')}, {current.get('city')}",
            "priceVsAverage": "ABOVE" if price > stats["price_avg"] else "BELOW",
            "pricePerSqmVsAverage": "ABOVE" if per_sqm > stats["price_per_sqm_avg"] else "BELOW",
            "pricePercentile": price_percentile(stats["prices"], price),
        }
