from shared.clients.ClientManager import ClientManager
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface


class EmbedClientManager(ClientManager):
    """
    Instantiates the embedding client selected by EMBED_ENGINE (e.g. "ollama").
    """

    client_type = "embed"
    class_prefix = "EmbedClient"

    def get_client(self) -> EmbedClientInterface:
        return self.client
