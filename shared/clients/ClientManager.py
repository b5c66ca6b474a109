from shared.clients.ClientInterface import ClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.errors import ConfigurationError


class ClientManager:
    """
    Base manager that instantiates the client of one client type from configuration.

    The engine is read from "{TYPE}_ENGINE" and resolved to the class
    shared.clients.{type}.{engine}.{Prefix}{Engine}, e.g. RAG_ENGINE=elasticsearch
    loads shared.clients.rag.elasticsearch.RAGClientElasticsearch.
    """

    client_type: str = ""
    class_prefix: str = ""

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.client = self._initialize_client()

    def _get_engine_from_env(self) -> str:
        """
        Reads the engine name of this client type from ENV configuration.

        Returns:
            str: Capitalised engine name (e.g. "Elasticsearch").

        Raises:
            ConfigurationError: If no engine is specified in the configuration.
        """
        env_key = f"{self.client_type.upper()}_ENGINE"
        engine = self.helper_config.get_string_val(env_key)
        if not engine.strip():
            raise ConfigurationError(f"No {self.client_type} engine specified in configuration ({env_key}).")
        return engine.strip().lower().capitalize()

    def _initialize_client(self) -> ClientInterface:
        """
        Initializes the client based on the engine specified in the configuration.

        Returns:
            ClientInterface: The client instance for the configured engine.

        Raises:
            ConfigurationError: If the engine cannot be resolved to a client class.
        """
        engine = self._get_engine_from_env()
        class_name = f"{self.class_prefix}{engine}"
        try:
            module = __import__(
                f"shared.clients.{self.client_type}.{engine.lower()}.{class_name}",
                fromlist=[class_name],
            )
            client_class = getattr(module, class_name)
        except (ImportError, AttributeError) as e:
            raise ConfigurationError(f"Unsupported {self.client_type} engine specified: '{engine}'. Error: {e}")
        client = client_class(helper_config=self.helper_config)
        self.logging.debug("Instantiated %s client for engine: %s", self.client_type, engine)
        return client

    def get_client(self) -> ClientInterface:
        """
        Returns the instantiated client.
        """
        return self.client
