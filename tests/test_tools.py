"""
Tests for the information provider tools and their registry
"""

import json

import pytest
from unittest.mock import AsyncMock, MagicMock

from services.tools.DistanceTool import DistanceTool
from services.tools.KnowledgeBaseTool import NO_RESULTS, KnowledgeBaseTool
from services.tools.NearbyRoomsTool import NearbyRoomsTool
from services.tools.OwnerDetailsTool import OwnerDetailsTool
from services.tools.PropertyDetailsTool import PropertyDetailsTool
from services.tools.RoomSearchTool import RoomSearchTool, parse_criteria
from services.tools.ToolRegistry import ToolRegistry, build_default_registry
from services.tools.UtilityPricingTool import UtilityPricingTool, market_statistics, price_percentile
from services.tools.WebSearchTool import WebSearchTool
from services.tools.listing_format import format_vnd
from shared.clients.websearch.WebSearchClientInterface import WebSearchResult
from shared.models.document import KBScope
from shared.models.errors import ProviderUnavailableError
from shared.models.search import SearchResult
from shared.models.tools import ToolCall, ToolContext, ToolFailure, ToolSuccess

CONTEXT = ToolContext(owner_id="o1", property_id=7)

ROOM = {
    "id": 7, "title": "Phòng gần biển", "price": 3500000, "roomSize": 25, "district": "Quận Sơn Trà",
    "city": "Đà Nẵng", "isRoomAvailable": True, "internalNote": "not for the model",
}


class TestListingFormat:
    def test_format_vnd(self):
        assert format_vnd(3500000) == "3.500.000 VND"
        assert format_vnd(0) == "0 VND"

    def test_parse_criteria_filters_and_terms(self):
        params = parse_criteria("price:<5000000, size:>20, city:Đà Nẵng, gần biển")

        assert params["filter"] == "price:<5000000,size:>20,city:Đà Nẵng"
        assert params["search"] == "gần biển"
        assert params["sort"] == "price"
        assert params["order"] == "ASC"

    def test_parse_criteria_contains_operator(self):
        assert parse_criteria("street~Tôn Đản")["filter"] == "street~Tôn Đản"

    def test_price_percentile(self):
        assert price_percentile([], 100) == 50
        assert price_percentile([1, 2, 3, 4], 2) == 50
        assert price_percentile([1, 2, 3, 4], 4) == 100

    def test_market_statistics_skips_unpriced(self):
        stats = market_statistics([
            {"price": 2000000, "roomSize": 20},
            {"price": "4000000", "roomSize": 40},
            {"price": None, "roomSize": 10},
        ])

        assert stats["total"] == 3
        assert stats["price_avg"] == 3000000
        assert stats["price_per_sqm_avg"] == 100000


class TestToolInvocation:
    @pytest.mark.asyncio
    async def test_invalid_arguments_become_failure(self, helper_config, backend_client):
        outcome = await PropertyDetailsTool(helper_config, backend_client).invoke({"property_id": "abc"}, CONTEXT)

        assert isinstance(outcome, ToolFailure)
        assert outcome.error.startswith("Invalid arguments")
        backend_client.do_fetch_property.assert_not_called()

    @pytest.mark.asyncio
    async def test_property_details_picks_listing_fields(self, helper_config, backend_client):
        backend_client.do_fetch_property.return_value = ROOM

        outcome = await PropertyDetailsTool(helper_config, backend_client).invoke({"property_id": 7}, CONTEXT)

        assert isinstance(outcome, ToolSuccess)
        data = json.loads(outcome.output)
        assert data["title"] == "Phòng gần biển"
        assert "internalNote" not in data

    @pytest.mark.asyncio
    async def test_missing_property_is_failure(self, helper_config, backend_client):
        outcome = await PropertyDetailsTool(helper_config, backend_client).invoke({"property_id": 99}, CONTEXT)

        assert outcome == ToolFailure(tool="get_property_details", error="Tool 'get_property_details' failed: Property with ID 99 not found in the system.")

    @pytest.mark.asyncio
    async def test_provider_error_is_isolated(self, helper_config, backend_client):
        backend_client.do_fetch_owner.side_effect = ProviderUnavailableError("backend down")

        outcome = await OwnerDetailsTool(helper_config, backend_client).invoke({"owner_id": "o1"}, CONTEXT)

        assert isinstance(outcome, ToolFailure)
        assert outcome.error == "backend down"

    @pytest.mark.asyncio
    async def test_unexpected_error_is_isolated(self, helper_config, backend_client, caplog):
        backend_client.do_search_properties.side_effect = KeyError("content")

        outcome = await RoomSearchTool(helper_config, backend_client).invoke({"criteria": "price:<1"}, CONTEXT)

        assert isinstance(outcome, ToolFailure)
        assert "Unexpected error" in outcome.error
        assert "unexpected error" in caplog.text

    @pytest.mark.asyncio
    async def test_room_search_sends_parsed_criteria(self, helper_config, backend_client):
        backend_client.do_search_properties.return_value = [ROOM]

        outcome = await RoomSearchTool(helper_config, backend_client).invoke({"criteria": "district:Quận Sơn Trà"}, CONTEXT)

        params = backend_client.do_search_properties.call_args.args[0]
        assert params["filter"] == "district:Quận Sơn Trà"
        assert json.loads(outcome.output)["total"] == 1

    @pytest.mark.asyncio
    async def test_nearby_rooms_appends_city(self, helper_config, backend_client):
        backend_client.do_search_nearby.return_value = {"content": [ROOM]}

        outcome = await NearbyRoomsTool(helper_config, backend_client).invoke(
            {"address": "318 Tôn Đản", "city": "Đà Nẵng", "radius": 800}, CONTEXT
        )

        backend_client.do_search_nearby.assert_awaited_once_with("318 Tôn Đản, Đà Nẵng", 800)
        assert json.loads(outcome.output)["total"] == 1

    def test_nearby_address_keeps_existing_city(self):
        assert NearbyRoomsTool.build_address("Tôn Đản, Đà Nẵng", "đà nẵng") == "Tôn Đản, Đà Nẵng"

    @pytest.mark.asyncio
    async def test_pricing_defaults_to_context_property(self, helper_config, backend_client):
        backend_client.do_fetch_property.return_value = ROOM
        backend_client.do_search_properties.return_value = [
            ROOM, {"id": 8, "price": 2500000, "roomSize": 25, "district": "Quận Sơn Trà", "city": "Đà Nẵng"},
        ]

        outcome = await UtilityPricingTool(helper_config, backend_client).invoke({}, CONTEXT)

        backend_client.do_fetch_property.assert_awaited_once_with(7)
        assert backend_client.do_search_properties.call_args.args[0]["filter"] == "district:Quận Sơn Trà"
        analysis = json.loads(outcome.output)["currentPropertyAnalysis"]
        assert analysis["priceVsAverage"] == "ABOVE"
        assert analysis["pricePercentile"] == 100

    @pytest.mark.asyncio
    async def test_distance_requires_source(self, helper_config, backend_client):
        outcome = await DistanceTool(helper_config, backend_client).invoke({"to_property_id": 2}, CONTEXT)

        assert isinstance(outcome, ToolFailure)
        assert "source location" in outcome.error
        backend_client.do_calculate_distance.assert_not_called()

    @pytest.mark.asyncio
    async def test_distance_formats_result(self, helper_config, backend_client):
        backend_client.do_calculate_distance.return_value = {
            "distanceKm": 1.2, "distanceMeters": 1200, "fromCoordinates": [16.0, 108.2], "toCoordinates": [16.1, 108.3],
        }

        outcome = await DistanceTool(helper_config, backend_client).invoke(
            {"from_property_id": 1, "to_address": "Cầu Rồng"}, CONTEXT
        )

        assert backend_client.do_calculate_distance.call_args.args[0] == {"fromPropertyId": 1, "toAddress": "Cầu Rồng"}
        data = json.loads(outcome.output)
        assert data["distance"]["formatted"] == "1.2 km (1200 meters)"
        assert data["coordinates"]["from"] == {"latitude": 16.0, "longitude": 108.2}

    @pytest.mark.asyncio
    async def test_web_search_formats_results(self, helper_config):
        websearch = MagicMock()
        websearch.do_search = AsyncMock(return_value=[WebSearchResult(title="Giá điện", snippet="2.000 đ/kWh")])

        outcome = await WebSearchTool(helper_config, websearch).invoke({"query": "giá điện Đà Nẵng"}, CONTEXT)

        assert outcome.output == 'Web search results for "giá điện Đà Nẵng":\n\n**Giá điện**\n2.000 đ/kWh'

    @pytest.mark.asyncio
    async def test_web_search_without_results(self, helper_config):
        websearch = MagicMock()
        websearch.do_search = AsyncMock(return_value=[])

        outcome = await WebSearchTool(helper_config, websearch).invoke({"query": "x"}, CONTEXT)

        assert outcome.output.startswith("No web search results found")


class TestKnowledgeBaseTool:
    @pytest.fixture
    def retriever(self):
        retriever = MagicMock()
        retriever.retrieve = AsyncMock(return_value=[])
        retriever.format_context = MagicMock(return_value="context")
        return retriever

    @pytest.mark.parametrize("context, scope", [
        (ToolContext(owner_id="o1", property_id=7), KBScope.PROPERTY),
        (ToolContext(owner_id="o1"), KBScope.OWNER),
        (ToolContext(), KBScope.GLOBAL),
    ])
    def test_scope_for(self, context, scope):
        assert KnowledgeBaseTool.scope_for(context) == scope

    @pytest.mark.asyncio
    async def test_scope_comes_from_context(self, helper_config, retriever):
        tool = KnowledgeBaseTool(helper_config, retriever)

        outcome = await tool.invoke({"query": "nội quy"}, CONTEXT)

        options = retriever.retrieve.call_args.args[1]
        assert (options.owner_id, options.property_id, options.kb_scope) == ("o1", 7, KBScope.PROPERTY)
        assert options.min_score == 0.6
        assert outcome.output == NO_RESULTS

    @pytest.mark.asyncio
    async def test_results_rendered_as_context(self, helper_config, retriever):
        retriever.retrieve.return_value = [SearchResult(chunk_id=1, document_id=0, score=1.0)]

        outcome = await KnowledgeBaseTool(helper_config, retriever).invoke({"query": "nội quy"}, CONTEXT)

        assert outcome.output == "context"


class TestToolRegistry:
    def test_default_registry_has_every_tool(self, helper_config, backend_client):
        registry = build_default_registry(helper_config, MagicMock(), backend_client, MagicMock())

        assert sorted(registry.names()) == sorted([
            "web_search", "search_knowledge_base", "get_owner_details", "get_property_details",
            "search_rooms", "search_nearby_rooms", "compare_utility_pricing", "calculate_distance",
        ])

    def test_schemas_have_no_titles(self, helper_config, backend_client):
        registry = ToolRegistry(helper_config, tools=[PropertyDetailsTool(helper_config, backend_client)])

        schema = registry.get_schemas()[0]

        assert schema["name"] == "get_property_details"
        assert "title" not in schema["parameters"]
        assert "title" not in schema["parameters"]["properties"]["property_id"]
        assert schema["parameters"]["required"] == ["property_id"]

    def test_duplicate_registration_rejected(self, helper_config, backend_client):
        registry = ToolRegistry(helper_config, tools=[PropertyDetailsTool(helper_config, backend_client)])

        with pytest.raises(ValueError, match="already registered"):
            registry.register(PropertyDetailsTool(helper_config, backend_client))

    @pytest.mark.asyncio
    async def test_unknown_tool_is_failure(self, helper_config):
        outcome = await ToolRegistry(helper_config).invoke(ToolCall(name="hack", args={}), CONTEXT)

        assert isinstance(outcome, ToolFailure)
        assert outcome.error == "Unknown tool 'hack'."
