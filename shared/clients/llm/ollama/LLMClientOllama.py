from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.chat import ChatCompletion
from shared.models.config import EnvConfig
from shared.models.tools import ToolCall


class LLMClientOllama(LLMClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default=None, val_type="string")
        self._api_key = self.get_config_val("API_KEY", default="", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Ollama"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default=None),
            EnvConfig(env_key="API_KEY", val_type="string", default=""),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        if self._api_key:
            return {"Authorization": f"Bearer {self._api_key}"}
        return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return ""

    def _get_endpoint_chat(self) -> str:
        return "/api/chat"

    ################ PAYLOAD BUILDER ##################
    def _convert_message(self, message: dict) -> dict:
        role = message["role"]
        if role == "assistant" and message.get("tool_calls"):
            return {
                "role": "assistant",
                "content": message.get("content", ""),
                "tool_calls": [
                    {"function": {"name": call["name"], "arguments": call.get("args", {})}}
                    for call in message["tool_calls"]
                ],
            }
        if role == "tool":
            return {"role": "tool", "content": message["content"], "tool_name": message.get("name", "")}
        return {"role": role, "content": message["content"]}

    def get_chat_payload(self, messages: list[dict], tools: list[dict] | None, temperature: float, max_tokens: int) -> dict:
        """Build the Ollama /api/chat request body.

        Returns:
            dict: {"model", "messages", "stream": False, "options", ["tools"]}
        """
        body: dict = {
            "model": self.chat_model,
            "messages": [self._convert_message(m) for m in messages],
            "stream": False,
            "options": {"temperature": temperature, "num_predict": max_tokens},
        }
        if tools:
            body["tools"] = [
                {
                    "type": "function",
                    "function": {
                        "name": tool["name"],
                        "description": tool.get("description", ""),
                        "parameters": tool.get("parameters", {"type": "object", "properties": {}}),
                    },
                }
                for tool in tools
            ]
        return body

    ##########################################
    ################# OTHER ##################
    ##########################################

    def extract_chat_completion(self, response_data: dict) -> ChatCompletion:
        """Extract reply text and tool calls from an Ollama /api/chat response.

        Raises:
            ValueError: If the response does not contain a message.
        """
        message = response_data.get("message")
        if not isinstance(message, dict):
            raise ValueError(
                "Ollama chat response does not contain a valid message. "
                "Response keys: %s" % list(response_data.keys())
            )
        calls = []
        for raw_call in message.get("tool_calls") or []:
            function = raw_call.get("function") or {}
            args = function.get("arguments") or {}
            if function.get("name"):
                calls.append(ToolCall(name=function["name"], args=args if isinstance(args, dict) else {}))
        return ChatCompletion(content=message.get("content") or "", tool_calls=calls)
