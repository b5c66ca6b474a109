from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.chat import ChatCompletion
from shared.models.config import EnvConfig
from shared.models.tools import ToolCall

# schema keys understood by the Gemini function declaration format
_SCHEMA_KEYS = {"type", "format", "description", "nullable", "enum", "properties", "required", "items"}


def to_gemini_schema(schema: dict) -> dict:
    """Reduce a pydantic JSON schema to the OpenAPI subset Gemini accepts.

    Optional fields (anyOf [X, null]) become X with nullable=True; titles,
    defaults and other unsupported keys are dropped.
    """
    if "anyOf" in schema:
        variants = [v for v in schema["anyOf"] if v.get("type") != "null"]
        merged = dict(variants[0]) if variants else {"type": "string"}
        if len(variants) < len(schema["anyOf"]):
            merged["nullable"] = True
        if "description" in schema:
            merged["description"] = schema["description"]
        schema = merged

    result: dict = {}
    for key, value in schema.items():
        if key not in _SCHEMA_KEYS:
            continue
        if key == "properties":
            result[key] = {name: to_gemini_schema(sub) for name, sub in value.items()}
        elif key == "items":
            result[key] = to_gemini_schema(value)
        elif key == "type":
            result[key] = value.upper() if isinstance(value, str) else value
        else:
            result[key] = value
    return result


class LLMClientGoogle(LLMClientInterface):
    """Gemini models through the Generative Language REST API."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default="https://generativelanguage.googleapis.com", val_type="string")
        self._api_key = self.get_config_val("API_KEY", default=None, val_type="string")
        self._api_version = self.get_config_val("API_VERSION", default="v1beta", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Google"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default="https://generativelanguage.googleapis.com"),
            EnvConfig(env_key="API_KEY", val_type="string", default=None),
            EnvConfig(env_key="API_VERSION", val_type="string", default="v1beta"),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        return {"x-goog-api-key": self._api_key}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return f"/{self._api_version}/models/{self.chat_model}"

    def _get_endpoint_chat(self) -> str:
        return f"/{self._api_version}/models/{self.chat_model}:generateContent"

    ################ PAYLOAD BUILDER ##################
    def _convert_messages(self, messages: list[dict]) -> tuple[str, list[dict]]:
        """Split neutral messages into a system instruction and Gemini contents.

        Consecutive turns of the same role are merged, so all function responses
        of one tool batch land in a single user turn.
        """
        system_parts: list[str] = []
        contents: list[dict] = []
        for message in messages:
            role = message["role"]
            if role == "system":
                system_parts.append(message["content"])
                continue
            if role == "tool":
                gemini_role = "user"
                parts = [{"functionResponse": {"name": message.get("name", ""), "response": {"content": message["content"]}}}]
            elif role == "assistant":
                gemini_role = "model"
                parts = [{"text": message["content"]}] if message.get("content") else []
                parts += [
                    {"functionCall": {"name": call["name"], "args": call.get("args", {})}}
                    for call in message.get("tool_calls") or []
                ]
            else:
                gemini_role = "user"
                parts = [{"text": message["content"]}]
            if not parts:
                continue
            if contents and contents[-1]["role"] == gemini_role:
                contents[-1]["parts"].extend(parts)
            else:
                contents.append({"role": gemini_role, "parts": parts})
        return "\n\n".join(system_parts), contents

    def get_chat_payload(self, messages: list[dict], tools: list[dict] | None, temperature: float, max_tokens: int) -> dict:
        system_instruction, contents = self._convert_messages(messages)
        body: dict = {
            "contents": contents,
            "generationConfig": {"temperature": temperature, "maxOutputTokens": max_tokens},
        }
        if system_instruction:
            body["systemInstruction"] = {"parts": [{"text": system_instruction}]}
        if tools:
            body["tools"] = [{
                "functionDeclarations": [
                    {
                        "name": tool["name"],
                        "description": tool.get("description", ""),
                        "parameters": to_gemini_schema(tool.get("parameters", {"type": "object", "properties": {}})),
                    }
                    for tool in tools
                ]
            }]
        return body

    ##########################################
    ################# OTHER ##################
    ##########################################

    def extract_chat_completion(self, response_data: dict) -> ChatCompletion:
        """Extract reply text and function calls from a generateContent response.

        Raises:
            ValueError: If there is no candidate (e.g. the prompt was blocked).
        """
        candidates = response_data.get("candidates") or []
        if not candidates:
            feedback = response_data.get("promptFeedback", {})
            raise ValueError(f"Gemini returned no candidates (feedback: {feedback})")
        parts = (candidates[0].get("content") or {}).get("parts") or []
        texts: list[str] = []
        calls: list[ToolCall] = []
        for part in parts:
            if "text" in part:
                texts.append(part["text"])
            elif "functionCall" in part:
                call = part["functionCall"]
                calls.append(ToolCall(name=call.get("name", ""), args=call.get("args") or {}))
        return ChatCompletion(content="".join(texts), tool_calls=[c for c in calls if c.name])
