"""
Tests for the delegation loop of the information provider
"""

import asyncio

import pytest
from pydantic import BaseModel

from services.chat.ToolExecutor import ToolExecutor
from services.tools.ToolRegistry import ToolRegistry
from services.tools.ToolInterface import ToolInterface
from shared.helper.HelperLanguage import HelperLanguage
from shared.models.chat import ChatCompletion
from shared.models.tools import ToolCall, ToolContext


class EchoInput(BaseModel):
    text: str = ""


class EchoTool(ToolInterface):
    name = "echo"
    description = "Echo the text"
    input_model = EchoInput

    def __init__(self, helper_config, delay: float = 0.0):
        super().__init__(helper_config=helper_config)
        self.delay = delay
        self.running = 0
        self.max_running = 0

    async def _run(self, args: EchoInput, context: ToolContext) -> str:
        self.running += 1
        self.max_running = max(self.max_running, self.running)
        await asyncio.sleep(self.delay)
        self.running -= 1
        return f"echo:{args.text}"


class BrokenTool(EchoTool):
    name = "broken"

    async def _run(self, args: EchoInput, context: ToolContext) -> str:
        raise self.fail("backend unavailable")


def _calls(*names: str) -> ChatCompletion:
    return ChatCompletion(tool_calls=[ToolCall(name=name, args={"text": name}) for name in names])


class TestToolExecutor:
    @pytest.fixture
    def echo(self, helper_config):
        return EchoTool(helper_config, delay=0.01)

    @pytest.fixture
    def executor(self, helper_config, llm_client, prompts, echo):
        registry = ToolRegistry(helper_config, tools=[echo, BrokenTool(helper_config)])
        return ToolExecutor(helper_config=helper_config, llm_client=llm_client, registry=registry, prompts=prompts)

    @pytest.mark.asyncio
    async def test_direct_planner_answer(self, executor, llm_client):
        llm_client.do_chat.return_value = ChatCompletion(content="  The rent is 3 million.  ")

        result = await executor.delegate("rent?", ToolContext(owner_id="o1", property_id=7))

        assert result.answer == "The rent is 3 million."
        assert result.success
        assert result.tools_used == []
        messages = llm_client.do_chat.call_args.args[0]
        assert messages[0]["role"] == "system"
        assert "Property ID: 7" in messages[0]["content"]
        assert messages[-1] == {"role": "user", "content": "rent?"}

    @pytest.mark.asyncio
    async def test_history_is_passed_to_planner(self, executor, llm_client):
        llm_client.do_chat.return_value = ChatCompletion(content="ok")
        history = [{"role": "user", "content": "earlier"}, {"role": "assistant", "content": "reply"}]

        await executor.delegate("now", ToolContext(), history)

        messages = llm_client.do_chat.call_args.args[0]
        assert messages[1:3] == history

    @pytest.mark.asyncio
    async def test_tool_round_then_answer(self, executor, llm_client):
        llm_client.do_chat.side_effect = [_calls("echo"), ChatCompletion(content="Done.")]

        result = await executor.delegate("q", ToolContext())

        assert result.answer == "Done."
        assert result.tools_used == ["echo"]
        second_messages = llm_client.do_chat.call_args_list[1].args[0]
        assert second_messages[-2]["tool_calls"][0]["name"] == "echo"
        assert second_messages[-1] == {
            "role": "tool", "name": "echo",
            "tool_call_id": second_messages[-2]["tool_calls"][0]["id"], "content": "echo:echo",
        }

    @pytest.mark.asyncio
    async def test_tool_calls_run_in_parallel(self, executor, llm_client, echo):
        llm_client.do_chat.side_effect = [_calls("echo", "echo", "echo"), ChatCompletion(content="ok")]

        await executor.delegate("q", ToolContext())

        assert echo.max_running == 3

    @pytest.mark.asyncio
    async def test_partial_failure_is_fed_back(self, executor, llm_client):
        llm_client.do_chat.side_effect = [_calls("echo", "broken"), ChatCompletion(content="Partial answer.")]

        result = await executor.delegate("q", ToolContext())

        assert result.success
        assert result.tools_used == ["echo", "broken"]
        tool_messages = [m for m in llm_client.do_chat.call_args_list[1].args[0] if m["role"] == "tool"]
        assert tool_messages[1]["content"].startswith("Error: ")

    @pytest.mark.asyncio
    async def test_all_tools_failing_returns_localized_message(self, executor, llm_client):
        llm_client.do_chat.return_value = _calls("broken")

        result = await executor.delegate("Giá thuê bao nhiêu?", ToolContext(language="vi"))

        assert not result.success
        assert result.answer == HelperLanguage.message("tools_failed", "vi")
        assert llm_client.do_chat.await_count == 1

    @pytest.mark.asyncio
    async def test_failed_round_keeps_earlier_results(self, executor, llm_client):
        llm_client.do_chat.side_effect = [_calls("echo"), _calls("broken"), ChatCompletion(content="The rent is 3M.")]

        result = await executor.delegate("q", ToolContext())

        assert result.success
        assert result.answer == "The rent is 3M."
        assert result.tools_used == ["echo", "broken"]
        assert llm_client.do_chat.await_count == 3
        tool_messages = [m for m in llm_client.do_chat.call_args.args[0] if m["role"] == "tool"]
        assert [m["content"] for m in tool_messages] == ["echo:echo", "Error: Tool 'broken' failed: backend unavailable"]

    @pytest.mark.asyncio
    async def test_iteration_limit_synthesizes_answer(self, executor, llm_client):
        llm_client.do_chat.side_effect = [_calls("echo")] * 3 + [ChatCompletion(content="Synthesized.")]

        result = await executor.delegate("q", ToolContext())

        assert result.answer == "Synthesized."
        assert llm_client.do_chat.await_count == 4
        synthesis_prompt = llm_client.do_chat.call_args.args[0][0]["content"]
        assert "Tool: echo\nResult: echo:echo" in synthesis_prompt

    @pytest.mark.asyncio
    async def test_empty_planner_reply_without_results(self, executor, llm_client):
        llm_client.do_chat.return_value = ChatCompletion(content="")

        result = await executor.delegate("q", ToolContext())

        assert not result.success
