"""Conversational orchestrator.

One chat cycle moves through idle → classifying → direct_answer | delegating
→ responding → idle. Small talk is answered directly; everything else is
delegated to the tool-using information provider under a deadline. The
number of cycles in flight is bounded by the concurrency gate.
"""

import asyncio

from services.chat.ConcurrencyGate import ConcurrencyGate
from services.chat.QueryClassifier import QueryClassifier
from services.chat.SessionStore import SessionStore
from services.chat.ToolExecutor import ToolExecutor
from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.helper.HelperLanguage import HelperLanguage
from shared.helper.HelperPrompts import HelperPrompts
from shared.models.chat import ChatReply, ChatRoute, DelegationResult, OrchestratorState
from shared.models.errors import DelegationTimeoutError, ProviderUnavailableError, ValidationError
from shared.models.tools import ToolContext

DIRECT_TEMPERATURE = 0.5
DIRECT_MAX_TOKENS = 1024
WRAPPER_TEMPERATURE = 0.3


class Orchestrator:
    def __init__(
        self,
        helper_config: HelperConfig,
        llm_client: LLMClientInterface,
        executor: ToolExecutor,
        sessions: SessionStore,
        gate: ConcurrencyGate,
        prompts: HelperPrompts,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._llm = llm_client
        self._executor = executor
        self._sessions = sessions
        self._gate = gate
        self._prompts = prompts
        self.delegation_timeout = float(helper_config.get_number_val("DELEGATION_TIMEOUT_SECONDS", default=30))
        self.wrap_responses = helper_config.get_bool_val("ORCHESTRATOR_WRAP_RESPONSES", default=True)

    ##########################################
    ############### CHAT CYCLE ###############
    ##########################################

    async def handle_message(self, message: str, session_id: str, context: ToolContext | None = None) -> ChatReply:
        """Run one chat cycle and record it in the session.

        Args:
            message (str): The user message.
            session_id (str): Conversation key.
            context (ToolContext | None): Owner/property/user scope of the request.

        Returns:
            ChatReply: The reply with its route and the tools used.

        Raises:
            ValidationError: If the message is blank.
            DelegationTimeoutError: If the delegation path exceeded its deadline. The session is untouched.
            ProviderUnavailableError: If the language model failed. The session is untouched.
        """
        if not message or not message.strip():
            raise ValidationError("Message must not be empty.")

        language = HelperLanguage.detect(message)
        context = (context or ToolContext()).model_copy(update={"language": language})

        async with self._gate.slot():
            self._log_state(session_id, OrchestratorState.CLASSIFYING)
            history = self._sessions.get(session_id).to_messages()

            try:
                if QueryClassifier.is_basic(message):
                    self._log_state(session_id, OrchestratorState.DIRECT_ANSWER)
                    route = ChatRoute.DIRECT
                    result = DelegationResult(answer=await self._answer_directly(message, history, context))
                else:
                    self._log_state(session_id, OrchestratorState.DELEGATING)
                    route = ChatRoute.DELEGATED
                    result = await self._delegate(message, history, context)
                    if result.success and self.wrap_responses:
                        result.answer = await self._wrap(message, result.answer, language)
            except ProviderUnavailableError as e:
                if e.user_message is None:
                    e.user_message = HelperLanguage.message("provider_unavailable", language)
                self.logging.error("Chat cycle of session %s failed: %s", session_id, e.message)
                raise

            self._log_state(session_id, OrchestratorState.RESPONDING)
            self._sessions.append(session_id, message, result.answer)
            self._log_state(session_id, OrchestratorState.IDLE)

        self.logging.info(
            "Session %s answered via %s route (tools: %s, language: %s).",
            session_id, route.value, result.tools_used or "none", language,
        )
        return ChatReply(
            response=result.answer,
            session_id=session_id,
            route=route,
            tools_used=result.tools_used,
            language=language,
        )

    ##########################################
    ################ ROUTES ##################
    ##########################################

    async def _answer_directly(self, message: str, history: list[dict], context: ToolContext) -> str:
        system_prompt = self._prompts.render(
            "orchestrator",
            property_id=context.property_id if context.property_id is not None else "not specified",
            owner_id=context.owner_id or "not specified",
            language=HelperLanguage.language_name(context.language),
        )
        completion = await self._llm.do_chat(
            [{"role": "system", "content": system_prompt}, *history, {"role": "user", "content": message}],
            temperature=DIRECT_TEMPERATURE,
            max_tokens=DIRECT_MAX_TOKENS,
        )
        answer = completion.content.strip()
        if not answer:
            raise ProviderUnavailableError("Chat model returned an empty reply.")
        return answer

    async def _delegate(self, message: str, history: list[dict], context: ToolContext) -> DelegationResult:
        try:
            return await asyncio.wait_for(
                self._executor.delegate(message, context, history),
                timeout=self.delegation_timeout,
            )
        except asyncio.TimeoutError:
            self.logging.warning("Delegation exceeded %.1fs, abandoning the request.", self.delegation_timeout)
            raise DelegationTimeoutError(
                self.delegation_timeout,
                user_message=HelperLanguage.message("timeout", context.language),
            ) from None

    async def _wrap(self, message: str, answer: str, language: str) -> str:
        """Rephrase a delegated answer conversationally. Falls back to the raw answer."""
        prompt = self._prompts.render(
            "response_wrapper",
            query=message,
            answer=answer,
            language=HelperLanguage.language_name(language),
        )
        try:
            completion = await self._llm.do_chat([{"role": "user", "content": prompt}], temperature=WRAPPER_TEMPERATURE)
        except ProviderUnavailableError as e:
            self.logging.warning("Response wrapper failed, returning the raw answer: %s", e.message)
            return answer
        return completion.content.strip() or answer

    def _log_state(self, session_id: str, state: OrchestratorState) -> None:
        self.logging.debug("Session %s → %s", session_id, state.value)
