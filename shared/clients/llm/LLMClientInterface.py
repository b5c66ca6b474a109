from abc import abstractmethod
import json

from shared.clients.ClientInterface import ClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.chat import ChatCompletion
from shared.models.errors import ProviderUnavailableError
from shared.models.tools import ToolCall


def _strip_code_fences(text: str) -> str:
    if text.startswith("```"):
        lines = [line for line in text.split("\n") if not line.strip().startswith("```")]
        return "\n".join(lines)
    return text


def _load_json_fragment(raw: str) -> dict | list | None:
    """Parse JSON from model text, tolerating code fences and surrounding prose."""
    text = _strip_code_fences(raw.strip())
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass
    for opener, closer in (("[", "]"), ("{", "}")):
        start = raw.find(opener)
        end = raw.rfind(closer) + 1
        if start >= 0 and end > start:
            try:
                return json.loads(raw[start:end])
            except json.JSONDecodeError:
                continue
    return None


def parse_tool_call_descriptors(text: str, known_tools: set[str]) -> list[ToolCall]:
    """Recover tool calls a model wrote into its text reply instead of emitting them natively.

    Accepted shapes (as a list, a single object, or wrapped in {"tool_calls": [...]}):
    {"functionCall": {"name": ..., "args": {...}}}, {"name": ..., "args": {...}} and
    {"name": ..., "arguments": {...} | "<json>"}. Only names of known tools count.

    Args:
        text (str): The raw text reply of the model.
        known_tools (set[str]): Names of the tools offered in the request.

    Returns:
        list[ToolCall]: The recovered calls, empty when the text is a regular answer.
    """
    if not text or not known_tools or not any(name in text for name in known_tools):
        return []
    parsed = _load_json_fragment(text)
    if isinstance(parsed, dict):
        parsed = parsed.get("tool_calls", [parsed])
    if not isinstance(parsed, list):
        return []

    calls: list[ToolCall] = []
    for entry in parsed:
        if not isinstance(entry, dict):
            continue
        descriptor = entry.get("functionCall") or entry.get("function") or entry
        if not isinstance(descriptor, dict):
            continue
        name = descriptor.get("name")
        if name not in known_tools:
            continue
        args = descriptor.get("args", descriptor.get("arguments", {}))
        if isinstance(args, str):
            try:
                args = json.loads(args) if args.strip() else {}
            except json.JSONDecodeError:
                args = {}
        calls.append(ToolCall(name=name, args=args if isinstance(args, dict) else {}))
    return calls


class LLMClientInterface(ClientInterface):
    """Chat model client.

    Messages are passed in a neutral format and translated by each engine:
    {"role": "system" | "user", "content": str},
    {"role": "assistant", "content": str, "tool_calls": [{"id", "name", "args"}]},
    {"role": "tool", "name": str, "tool_call_id": str, "content": str}.
    Tools are passed as {"name", "description", "parameters" (JSON schema)}.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

        # chat / completion config
        self.chat_model = helper_config.get_string_val(f"{self.get_client_type().upper()}_CHAT_MODEL")
        self.default_temperature = helper_config.get_number_val(f"{self.get_client_type().upper()}_TEMPERATURE", default=0.5)
        self.default_max_tokens = int(helper_config.get_number_val(f"{self.get_client_type().upper()}_MAX_TOKENS", default=1024))

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "llm"

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_chat(self) -> str:
        """Returns the endpoint path for chat/completion requests (e.g. "/api/chat")."""
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_chat_payload(self, messages: list[dict], tools: list[dict] | None, temperature: float, max_tokens: int) -> dict:
        """Build the backend-specific request body for a chat request.

        Args:
            messages (list[dict]): Messages in the neutral format.
            tools (list[dict] | None): Tool schemas the model may call.
            temperature (float): Sampling temperature.
            max_tokens (int): Upper bound of generated tokens.

        Returns:
            dict: JSON-serialisable request body.
        """
        pass

    ##########################################
    ################# OTHER ##################
    ##########################################

    @abstractmethod
    def extract_chat_completion(self, response_data: dict) -> ChatCompletion:
        """Extract the reply text and native tool calls from a raw chat API response.

        Args:
            response_data (dict): The parsed JSON response body.

        Returns:
            ChatCompletion: The normalised reply.

        Raises:
            ValueError: If the response does not contain a valid reply.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_chat(
        self,
        messages: list[dict],
        tools: list[dict] | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> ChatCompletion:
        """Send a chat request and return the normalised completion.

        When tools are offered and the model answers with tool-call descriptors in
        plain text, the descriptors are turned into regular tool calls.

        Args:
            messages (list[dict]): Messages in the neutral format.
            tools (list[dict] | None): Tool schemas the model may call.
            temperature (float | None): Sampling temperature, engine default if None.
            max_tokens (int | None): Upper bound of generated tokens, engine default if None.

        Returns:
            ChatCompletion: Reply text and/or tool calls.

        Raises:
            ProviderUnavailableError: If the request fails or the reply cannot be parsed.
        """
        body = self.get_chat_payload(
            messages=messages,
            tools=tools or None,
            temperature=self.default_temperature if temperature is None else temperature,
            max_tokens=self.default_max_tokens if max_tokens is None else max_tokens,
        )
        response = await self.do_request(
            method="POST",
            endpoint=self._get_endpoint_chat(),
            json=body,
            raise_on_error=True,
        )
        try:
            completion = self.extract_chat_completion(response.json())
        except ValueError as exc:
            raise ProviderUnavailableError(f"Invalid chat response from {self.get_engine_name()}: {exc}") from exc

        if tools and not completion.tool_calls:
            recovered = parse_tool_call_descriptors(completion.content, {tool["name"] for tool in tools})
            if recovered:
                self.logging.warning(
                    "Model '%s' returned %d tool call(s) as text, treating them as tool calls.",
                    self.chat_model, len(recovered),
                )
                completion = ChatCompletion(content="", tool_calls=recovered)
        return completion
