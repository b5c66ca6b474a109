from shared.clients.ClientManager import ClientManager
from shared.clients.rag.RAGClientInterface import RAGClientInterface


class RAGClientManager(ClientManager):
    """
    Instantiates the search engine client selected by RAG_ENGINE (e.g. "elasticsearch").
    """

    client_type = "rag"
    class_prefix = "RAGClient"

    def get_client(self) -> RAGClientInterface:
        return self.client
