from abc import abstractmethod

from pydantic import BaseModel

from shared.clients.ClientInterface import ClientInterface
from shared.helper.HelperConfig import HelperConfig


class WebSearchResult(BaseModel):
    title: str
    snippet: str
    url: str | None = None


class WebSearchClientInterface(ClientInterface):
    """Public web search used for questions the platform data cannot answer."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "websearch"

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_search(self) -> str:
        """Returns the endpoint path of the search results page (e.g. "/html/")."""
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_search_params(self, query: str) -> dict:
        """Returns the query parameters of a search request."""
        pass

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    @abstractmethod
    def extract_results(self, page: str, max_results: int) -> list[WebSearchResult]:
        """Parse the raw results page into at most max_results entries."""
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_search(self, query: str, max_results: int = 5) -> list[WebSearchResult]:
        """Search the web.

        Args:
            query (str): The search query.
            max_results (int): Maximum number of results to return.

        Returns:
            list[WebSearchResult]: Results in page order; empty when nothing was found.

        Raises:
            ProviderUnavailableError: If the search page cannot be fetched.
        """
        response = await self.do_request(
            method="GET",
            endpoint=self._get_endpoint_search(),
            params=self.get_search_params(query),
            raise_on_error=True,
        )
        return self.extract_results(response.text, max_results)
