from shared.clients.backend.BackendClientInterface import BackendClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class BackendClientRest(BackendClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default=None, val_type="string")
        self._api_key = self.get_config_val("API_KEY", default="", val_type="string")
        self._tools_prefix = self.get_config_val("TOOLS_PREFIX", default="/api/mcp/tools", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Rest"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default=None),
            EnvConfig(env_key="API_KEY", val_type="string", default=""),
            EnvConfig(env_key="TOOLS_PREFIX", val_type="string", default="/api/mcp/tools"),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        if self._api_key:
            return {"x-api-key": self._api_key}
        return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/health"

    def _get_endpoint_property(self, property_id: int) -> str:
        return f"{self._tools_prefix}/property/{property_id}"

    def _get_endpoint_owner(self, owner_id: str) -> str:
        return f"{self._tools_prefix}/owner/{owner_id}"

    def _get_endpoint_property_search(self) -> str:
        return f"{self._tools_prefix}/property/search"

    def _get_endpoint_property_nearby(self) -> str:
        return f"{self._tools_prefix}/property/nearby"

    def _get_endpoint_distance(self) -> str:
        return f"{self._tools_prefix}/distance"

    def _get_endpoint_document(self, document_id: int) -> str:
        return f"/api/v1/documents/{document_id}"
