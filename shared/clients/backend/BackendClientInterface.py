from abc import abstractmethod

import httpx

from shared.clients.ClientInterface import ClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.errors import ProviderUnavailableError


class BackendClientInterface(ClientInterface):
    """Client of the property platform backend.

    Serves live listing data to the chat tools, reports ingestion status of
    documents and downloads uploaded document files.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "backend"

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_property(self, property_id: int) -> str:
        """Returns the endpoint path of a single property (e.g. "/api/mcp/tools/property/12")."""
        pass

    @abstractmethod
    def _get_endpoint_owner(self, owner_id: str) -> str:
        """Returns the endpoint path of a single owner including their listed rooms."""
        pass

    @abstractmethod
    def _get_endpoint_property_search(self) -> str:
        """Returns the endpoint path for criteria based property search."""
        pass

    @abstractmethod
    def _get_endpoint_property_nearby(self) -> str:
        """Returns the endpoint path for radius based property search around an address."""
        pass

    @abstractmethod
    def _get_endpoint_distance(self) -> str:
        """Returns the endpoint path for distance calculations between properties or addresses."""
        pass

    @abstractmethod
    def _get_endpoint_document(self, document_id: int) -> str:
        """Returns the endpoint path used to report a document's ingestion status."""
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def _get_json(self, endpoint: str, params: dict | None = None) -> dict | list | None:
        """GET an endpoint and return its JSON body, or None on 404.

        Raises:
            ProviderUnavailableError: On any other non-2xx status or transport failure.
        """
        response = await self.do_request(method="GET", endpoint=endpoint, params=params)
        if response.status_code == 404:
            return None
        if not response.is_success:
            self.logging.error(
                "Backend request %s failed with status %d: %s",
                endpoint, response.status_code, response.text[:200],
            )
            raise ProviderUnavailableError(
                f"Backend request {endpoint} failed with status {response.status_code}: {response.text[:200]}"
            )
        return response.json()

    async def do_fetch_property(self, property_id: int) -> dict | None:
        """Fetch a property listing.

        Returns:
            dict | None: The property, or None if it does not exist.
        """
        return await self._get_json(self._get_endpoint_property(property_id))

    async def do_fetch_owner(self, owner_id: str) -> dict | None:
        """Fetch an owner profile and their rooms.

        Returns:
            dict | None: The owner, or None if they do not exist.
        """
        return await self._get_json(self._get_endpoint_owner(owner_id))

    async def do_search_properties(self, params: dict) -> list[dict]:
        """Search properties by backend filter parameters.

        Args:
            params (dict): Query parameters (filter, search, page, size, sort, order).

        Returns:
            list[dict]: Matching properties; empty when nothing matches.
        """
        result = await self._get_json(self._get_endpoint_property_search(), params=params)
        if isinstance(result, dict):
            # paged responses wrap the rows
            result = result.get("content") or result.get("items") or []
        return result or []

    async def do_search_nearby(self, address: str, radius: int | None = None) -> dict | list:
        params: dict = {"address": address}
        if radius:
            params["radius"] = radius
        return await self._get_json(self._get_endpoint_property_nearby(), params=params) or []

    async def do_calculate_distance(self, params: dict) -> dict | None:
        """Ask the backend for the distance between two properties or addresses.

        Raises:
            ProviderUnavailableError: When the backend rejects the locations or is unavailable.
        """
        return await self._get_json(self._get_endpoint_distance(), params=params)

    async def do_update_document_status(self, document_id: int, payload: dict) -> httpx.Response:
        """Report a document's ingestion status to the backend.

        Args:
            document_id (int): The document ID.
            payload (dict): {"status", "chunk_count", "error"}.
        """
        return await self.do_request(
            method="PATCH",
            endpoint=self._get_endpoint_document(document_id),
            json=payload,
            raise_on_error=True,
        )

    async def do_download(self, url: str) -> httpx.Response:
        """Download a document file from a path or absolute URL handed out by the backend.

        The backend API key is only sent when the URL points at the backend itself.
        """
        is_external = url.startswith(("http://", "https://")) and not url.startswith(self._get_base_url().rstrip("/"))
        return await self.do_request(method="GET", endpoint=url, raise_on_error=True, include_auth=not is_external)
