from shared.clients.ClientManager import ClientManager
from shared.clients.websearch.WebSearchClientInterface import WebSearchClientInterface


class WebSearchClientManager(ClientManager):
    """
    Instantiates the web search client selected by WEBSEARCH_ENGINE (e.g. "duckduckgo").
    """

    client_type = "websearch"
    class_prefix = "WebSearchClient"

    def get_client(self) -> WebSearchClientInterface:
        return self.client
