"""Delegation path of the orchestrator.

The information provider runs a bounded plan/act loop: the planner call
returns either a final answer or tool calls; tool calls are executed in
parallel by this executor and their results fed into the next planner call.
"""

import asyncio

from services.tools.ToolRegistry import ToolRegistry
from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.helper.HelperLanguage import HelperLanguage
from shared.helper.HelperPrompts import HelperPrompts
from shared.models.chat import DelegationResult
from shared.models.tools import ToolCall, ToolContext, ToolOutcome, ToolSuccess

PLANNER_TEMPERATURE = 0.2
PLANNER_MAX_TOKENS = 2048
SYNTHESIS_TEMPERATURE = 0.3
RESULT_SEPARATOR = "\n\n---\n\n"


class ToolExecutor:
    def __init__(
        self,
        helper_config: HelperConfig,
        llm_client: LLMClientInterface,
        registry: ToolRegistry,
        prompts: HelperPrompts,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._llm = llm_client
        self._registry = registry
        self._prompts = prompts
        self.max_iterations = max(1, int(helper_config.get_number_val("AGENT_MAX_ITERATIONS", default=3)))

    ##########################################
    ############### DELEGATION ###############
    ##########################################

    async def delegate(self, message: str, context: ToolContext, history: list[dict] | None = None) -> DelegationResult:
        """Answer a message with the help of the registered tools.

        Args:
            message (str): The user message.
            context (ToolContext): Request scope; also passed to every tool.
            history (list[dict] | None): Prior conversation in the neutral message format.

        Returns:
            DelegationResult: The answer, the tools used, and whether any tool produced data.

        Raises:
            ProviderUnavailableError: If a planner or synthesis call fails.
        """
        messages: list[dict] = [
            {"role": "system", "content": self._render_system_prompt(context)},
            *(history or []),
            {"role": "user", "content": message},
        ]
        schemas = self._registry.get_schemas()
        successes: list[ToolSuccess] = []
        tools_used: list[str] = []

        for iteration in range(1, self.max_iterations + 1):
            completion = await self._llm.do_chat(
                messages, tools=schemas, temperature=PLANNER_TEMPERATURE, max_tokens=PLANNER_MAX_TOKENS
            )
            if not completion.wants_tools:
                answer = completion.content.strip()
                if answer:
                    self.logging.debug("Planner answered after %d iteration(s).", iteration)
                    return DelegationResult(answer=answer, tools_used=tools_used)
                self.logging.warning("Planner returned neither text nor tool calls on iteration %d.", iteration)
                break

            calls = completion.tool_calls
            self.logging.info("Iteration %d: running %d tool call(s): %s", iteration, len(calls), [c.name for c in calls])
            outcomes = await self.run_tools(calls, context)
            for call in calls:
                if call.name not in tools_used:
                    tools_used.append(call.name)

            batch_successes = [o for o in outcomes if isinstance(o, ToolSuccess)]
            if not batch_successes:
                self.logging.warning("All %d tool call(s) of iteration %d failed.", len(calls), iteration)
            if not batch_successes and not successes:
                return DelegationResult(
                    answer=HelperLanguage.message("tools_failed", context.language),
                    tools_used=tools_used,
                    success=False,
                )
            successes.extend(batch_successes)
            messages.extend(self._tool_round_messages(completion.content, calls, outcomes))

        if not successes:
            return DelegationResult(
                answer=HelperLanguage.message("tools_failed", context.language),
                tools_used=tools_used,
                success=False,
            )

        self.logging.info("Planner did not finish within %d iterations, synthesizing from %d result(s).", self.max_iterations, len(successes))
        answer = await self.synthesize(message, successes, context)
        return DelegationResult(answer=answer, tools_used=tools_used)

    async def run_tools(self, calls: list[ToolCall], context: ToolContext) -> list[ToolOutcome]:
        """Run tool calls in parallel. Failures are isolated per call."""
        return list(await asyncio.gather(*(self._registry.invoke(call, context) for call in calls)))

    async def synthesize(self, message: str, outcomes: list[ToolSuccess], context: ToolContext) -> str:
        """Compose a final answer from successful tool outputs."""
        tool_results = RESULT_SEPARATOR.join(f"Tool: {o.tool}\nResult: {o.output}" for o in outcomes)
        prompt = self._prompts.render(
            "synthesis",
            query=message,
            tool_results=tool_results,
            language=HelperLanguage.language_name(context.language),
        )
        completion = await self._llm.do_chat([{"role": "user", "content": prompt}], temperature=SYNTHESIS_TEMPERATURE)
        return completion.content.strip() or tool_results

    ##########################################
    ################ HELPERS #################
    ##########################################

    def _render_system_prompt(self, context: ToolContext) -> str:
        return self._prompts.render(
            "info_provider",
            property_id=context.property_id if context.property_id is not None else "not specified",
            owner_id=context.owner_id or "not specified",
            language=HelperLanguage.language_name(context.language),
        )

    @staticmethod
    def _tool_round_messages(content: str, calls: list[ToolCall], outcomes: list[ToolOutcome]) -> list[dict]:
        messages: list[dict] = [{
            "role": "assistant",
            "content": content,
            "tool_calls": [{"id": c.id, "name": c.name, "args": c.args} for c in calls],
        }]
        for call, outcome in zip(calls, outcomes):
            messages.append({
                "role": "tool",
                "name": call.name,
                "tool_call_id": call.id,
                "content": outcome.output if isinstance(outcome, ToolSuccess) else f"Error: {outcome.error}",
            })
        return messages
