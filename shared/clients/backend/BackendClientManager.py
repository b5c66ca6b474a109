from shared.clients.ClientManager import ClientManager
from shared.clients.backend.BackendClientInterface import BackendClientInterface


class BackendClientManager(ClientManager):
    """
    Instantiates the property backend client selected by BACKEND_ENGINE (e.g. "rest").
    """

    client_type = "backend"
    class_prefix = "BackendClient"

    def get_client(self) -> BackendClientInterface:
        return self.client
