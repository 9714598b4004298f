"""Tests for the agent core: conversation state, policy, arguments, dispatch and the ReAct loop."""

import asyncio
import json
import os
import sys

import pytest

from miniagent.agent import (
    AgentLoop,
    ConversationState,
    Decision,
    LoopPhase,
    Message,
    ToolCall,
    ToolDispatcher,
    ToolPolicy,
    decide,
)
from miniagent.agent.arguments import FindArgs, GrepArgs, LsofArgs, PsArgs, SsArgs, decode_args
from miniagent.agent.confirm import QueueConfirmation, is_decline
from miniagent.agent.loop import CANCELLED_OBSERVATION, EMPTY_OBSERVATION, clean_final_answer
from miniagent.agent.models import ChatResponse
from miniagent.agent.platforms import LinuxExecutor
from miniagent.agent.runner import ProcessResult, classify, run_process
from miniagent.errors import (
    ArgumentError,
    ConfigError,
    ExecutionError,
    ModelTransportError,
    PolicyError,
    UnknownToolError,
)


# ═══════════════════════════════════════════════════════════════
# Fixtures
# ═══════════════════════════════════════════════════════════════

class FakeRunner:
    """Records every command and replays scripted (output, exit_code) pairs."""

    def __init__(self, *results):
        self.results = list(results)
        self.calls = []

    async def __call__(self, command, *argv):
        self.calls.append((command, *argv))
        output, exit_code = self.results.pop(0) if self.results else ("", 0)
        return ProcessResult(command=command, argv=tuple(argv), output=output, exit_code=exit_code)


class FakeClient:
    """Model client that replays scripted responses (or raises scripted errors)."""

    model = "fake-model"

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    async def chat(self, messages, tools=None):
        self.calls.append(list(messages))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    async def health_check(self):
        return True

    async def close(self):
        pass


class ScriptedConfirmation:
    def __init__(self, *answers):
        self.answers = list(answers)
        self.asked = []

    async def confirm(self, tool_call):
        self.asked.append(tool_call.id)
        answer = self.answers.pop(0)
        if answer is EOFError:
            raise EOFError
        return answer


def tool_reply(*calls, content=None):
    tool_calls = tuple(
        ToolCall(id=call_id, name=name, arguments=json.dumps(args)) for call_id, name, args in calls
    )
    return ChatResponse(choices=[Message(role="assistant", content=content, tool_calls=tool_calls)])


def answer_reply(text):
    return ChatResponse(choices=[Message(role="assistant", content=text)])


def make_agent(client, runner=None, confirmation=None, policy=None):
    policy = policy or ToolPolicy()
    executor = LinuxExecutor(runner=runner or FakeRunner(), policy=policy)
    return AgentLoop(
        client,
        ToolDispatcher(executor, policy),
        confirmation or ScriptedConfirmation(),
        system_prompt="You are a test agent.",
    )


def collect(agent, text):
    async def _go():
        return [event async for event in agent.process_message(text)]
    return asyncio.run(_go())


def types(events):
    return [e.type for e in events]


# ═══════════════════════════════════════════════════════════════
# Wire Models
# ═══════════════════════════════════════════════════════════════

class TestModels:
    def test_tool_call_from_dict_encodes_object_arguments(self):
        tc = ToolCall.from_dict({"id": "c1", "function": {"name": "ps", "arguments": {"user": "root"}}})
        assert tc.name == "ps"
        assert json.loads(tc.arguments) == {"user": "root"}

    def test_tool_call_to_dict(self):
        tc = ToolCall(id="c1", name="find", arguments='{"name": "*.log"}')
        assert tc.to_dict() == {
            "id": "c1",
            "type": "function",
            "function": {"name": "find", "arguments": '{"name": "*.log"}'},
        }

    def test_message_from_dict_maps_empty_content_to_none(self):
        msg = Message.from_dict({"role": "assistant", "content": ""})
        assert msg.content is None
        assert msg.tool_calls == ()

    def test_message_to_dict_omits_absent_fields(self):
        assert Message(role="user", content="hi").to_dict() == {"role": "user", "content": "hi"}
        tool = Message(role="tool", content="out", tool_call_id="c1").to_dict()
        assert tool["tool_call_id"] == "c1"
        assert "tool_calls" not in tool

    def test_chat_response_from_dict(self):
        resp = ChatResponse.from_dict({
            "id": "r1",
            "model": "m",
            "choices": [{"message": {
                "role": "assistant",
                "content": None,
                "tool_calls": [{"id": "c1", "type": "function",
                                "function": {"name": "ss", "arguments": "{}"}}],
            }}],
        })
        assert resp.id == "r1"
        assert resp.choices[0].tool_calls[0].name == "ss"

    def test_chat_response_without_choices(self):
        assert ChatResponse.from_dict({"choices": []}).choices == []


# ═══════════════════════════════════════════════════════════════
# Conversation State
# ═══════════════════════════════════════════════════════════════

class TestConversationState:
    def test_single_system_message(self):
        state = ConversationState()
        state.append_system("first")
        state.append_system("second")
        assert len(state) == 1
        assert state.snapshot()[0].content == "first"

    def test_append_assistant_forces_role(self):
        state = ConversationState()
        msg = state.append_assistant(Message(role="user", content="x", tool_call_id="c9"))
        assert msg.role == "assistant"
        assert msg.tool_call_id is None

    def test_pending_tool_calls(self):
        state = ConversationState()
        state.append_user("go")
        state.append_assistant(Message(role="assistant", tool_calls=(
            ToolCall(id="a", name="ps"), ToolCall(id="b", name="find"),
        )))
        assert [tc.id for tc in state.pending_tool_calls()] == ["a", "b"]
        state.append_tool_observation("a", "out")
        assert [tc.id for tc in state.pending_tool_calls()] == ["b"]
        state.append_tool_observation("b", "out")
        assert state.pending_tool_calls() == []

    def test_out_of_order_observation_is_still_kept(self):
        state = ConversationState()
        state.append_assistant(Message(role="assistant", tool_calls=(ToolCall(id="a", name="ps"),)))
        state.append_tool_observation("zzz", "out")
        assert state.snapshot()[-1].tool_call_id == "zzz"

    def test_snapshot_is_immutable_copy(self):
        state = ConversationState()
        state.append_user("hi")
        snap = state.snapshot()
        state.append_user("again")
        assert isinstance(snap, tuple)
        assert len(snap) == 1

    def test_to_wire(self):
        state = ConversationState()
        state.append_system("sys")
        state.append_user("hi")
        assert state.to_wire() == [
            {"role": "system", "content": "sys"},
            {"role": "user", "content": "hi"},
        ]


# ═══════════════════════════════════════════════════════════════
# Tool Policy
# ═══════════════════════════════════════════════════════════════

class TestPolicy:
    def test_no_lists_allows_everything(self):
        assert decide("wget", (), ()) is Decision.ALLOWED

    def test_deny_wins_over_allow(self):
        assert decide("ps", {"ps"}, {"ps"}) is Decision.DENIED_BY_BLACKLIST

    def test_whitelist_excludes_others(self):
        assert decide("find", {"ps"}, ()) is Decision.DENIED_NOT_IN_WHITELIST
        assert decide("ps", {"ps"}, ()) is Decision.ALLOWED

    def test_enforce_raises_with_reason(self):
        policy = ToolPolicy(deny={"wget"})
        with pytest.raises(PolicyError, match="blacklist"):
            policy.enforce("wget")
        policy.enforce("ps")

    def test_enforce_whitelist_message(self):
        with pytest.raises(PolicyError) as exc:
            ToolPolicy(allow={"ps"}).enforce("wget")
        assert str(exc.value) == "tool 'wget' is not in the configured whitelist"


# ═══════════════════════════════════════════════════════════════
# Argument Decoding
# ═══════════════════════════════════════════════════════════════

class TestArguments:
    def test_blank_payload_reads_as_empty_object(self):
        args = decode_args("ps", PsArgs, "")
        assert args.user == "" and args.options == []

    def test_missing_required_field(self):
        with pytest.raises(ArgumentError, match="name"):
            decode_args("find", FindArgs, "{}")

    def test_malformed_json(self):
        with pytest.raises(ArgumentError, match="invalid arguments for 'grep'"):
            decode_args("grep", GrepArgs, "{not json")

    def test_numeric_pid_is_accepted(self):
        assert decode_args("ps", PsArgs, '{"pid": 42}').pid == "42"

    def test_non_numeric_pid_is_rejected(self):
        with pytest.raises(ArgumentError, match="pid"):
            decode_args("ps", PsArgs, '{"pid": "abc"}')

    def test_boolean_pid_is_rejected(self):
        with pytest.raises(ArgumentError):
            decode_args("ps", PsArgs, '{"pid": true}')

    def test_unknown_keys_are_ignored(self):
        args = decode_args("find", FindArgs, '{"name": "*.py", "colour": "blue"}')
        assert args.path == "."

    def test_find_type_is_restricted(self):
        with pytest.raises(ArgumentError):
            decode_args("find", FindArgs, '{"name": "x", "type": "l"}')

    def test_protocol_is_normalized(self):
        assert decode_args("ss", SsArgs, '{"protocol": "TCP"}').protocol == "tcp"

    def test_unknown_protocol(self):
        with pytest.raises(ArgumentError, match="protocol"):
            decode_args("ss", SsArgs, '{"protocol": "sctp"}')

    def test_port_range(self):
        with pytest.raises(ArgumentError):
            decode_args("ss", SsArgs, '{"port": 70000}')

    def test_lsof_needs_a_filter(self):
        with pytest.raises(ArgumentError, match="at least one"):
            decode_args("lsof", LsofArgs, "{}")

    def test_grep_splits_files(self):
        args = decode_args("grep", GrepArgs, '{"pattern": "x", "file": "a.txt  b.txt"}')
        assert args.files == ["a.txt", "b.txt"]


# ═══════════════════════════════════════════════════════════════
# Process Runner
# ═══════════════════════════════════════════════════════════════

class TestRunner:
    def test_classify_success(self):
        result = ProcessResult("ps", ("aux",), "PID CMD\n", 0)
        assert classify(result) == "PID CMD\n"

    def test_classify_empty_sentence(self):
        result = ProcessResult("find", (".",), "  \n", 0)
        assert classify(result, empty="nothing") == "nothing"
        assert classify(result) == "  \n"

    def test_classify_no_match_code(self):
        result = ProcessResult("grep", ("-e", "x"), "", 1)
        assert classify(result, no_match={1: "No matching lines found."}) == "No matching lines found."

    def test_classify_failure_keeps_output(self):
        result = ProcessResult("grep", ("-e", "x", "--", "missing file"), "No such file\n", 2)
        with pytest.raises(ExecutionError) as exc:
            classify(result, no_match={1: "none"})
        assert exc.value.exit_code == 2
        assert exc.value.output == "No such file\n"
        assert "'missing file'" in str(exc.value)
        assert "exit status 2" in str(exc.value)

    def test_run_process_captures_output(self):
        result = asyncio.run(run_process(sys.executable, "-c", "print('hello')"))
        assert result.exit_code == 0
        assert result.output.strip() == "hello"

    def test_run_process_missing_binary(self):
        with pytest.raises(ExecutionError, match="was not found"):
            asyncio.run(run_process("definitely-not-a-real-binary-4821"))


# ═══════════════════════════════════════════════════════════════
# Dispatcher
# ═══════════════════════════════════════════════════════════════

class TestDispatcher:
    def test_routes_to_executor(self):
        runner = FakeRunner(("PID CMD\n", 0))
        policy = ToolPolicy()
        dispatcher = ToolDispatcher(LinuxExecutor(runner=runner, policy=policy), policy)
        out = asyncio.run(dispatcher.execute(ToolCall(id="c1", name="ps", arguments="{}")))
        assert out == "PID CMD\n"
        assert runner.calls == [("ps", "aux")]

    def test_policy_checked_before_executor(self):
        runner = FakeRunner()
        policy = ToolPolicy(deny={"wget"})
        dispatcher = ToolDispatcher(LinuxExecutor(runner=runner, policy=policy), policy)
        with pytest.raises(PolicyError):
            asyncio.run(dispatcher.execute(ToolCall(id="c1", name="wget", arguments='{"url": "http://x"}')))
        assert runner.calls == []

    def test_unknown_tool(self):
        policy = ToolPolicy()
        dispatcher = ToolDispatcher(LinuxExecutor(runner=FakeRunner(), policy=policy), policy)
        with pytest.raises(UnknownToolError, match="unknown tool: rm"):
            asyncio.run(dispatcher.execute(ToolCall(id="c1", name="rm")))

    def test_executor_internals_are_not_tools(self):
        policy = ToolPolicy()
        dispatcher = ToolDispatcher(LinuxExecutor(runner=FakeRunner(), policy=policy), policy)
        with pytest.raises(UnknownToolError):
            asyncio.run(dispatcher.execute(ToolCall(id="c1", name="_run")))


# ═══════════════════════════════════════════════════════════════
# Confirmation
# ═══════════════════════════════════════════════════════════════

class TestConfirmation:
    def test_only_explicit_no_declines(self):
        assert is_decline("n")
        assert is_decline(" No ")
        assert not is_decline("")
        assert not is_decline("y")
        assert not is_decline("nope")

    def test_queue_confirmation(self):
        tc = ToolCall(id="c1", name="ps")

        async def _go():
            gate = QueueConfirmation()
            task = asyncio.create_task(gate.confirm(tc))
            published = await gate.requests.get()
            await gate.answers.put("no")
            return published, await task

        published, approved = asyncio.run(_go())
        assert published == tc
        assert approved is False

    def test_queue_confirmation_closed(self):
        async def _go():
            gate = QueueConfirmation()
            await gate.answers.put(None)
            await gate.confirm(ToolCall(id="c1", name="ps"))

        with pytest.raises(EOFError):
            asyncio.run(_go())


# ═══════════════════════════════════════════════════════════════
# Agent Loop
# ═══════════════════════════════════════════════════════════════

class TestAgentLoop:
    def test_clean_final_answer(self):
        assert clean_final_answer("Final Answer: 42") == "42"
        assert clean_final_answer("  Thought: done  ") == "done"
        assert clean_final_answer("Thought: Final Answer: yes") == "yes"
        assert clean_final_answer(None) == ""

    def test_plain_answer(self):
        client = FakeClient(answer_reply("Final Answer: hello"))
        agent = make_agent(client)
        events = collect(agent, "hi")
        assert types(events) == ["thinking", "answer", "done"]
        assert events[1].data["content"] == "hello"
        assert agent.phase is LoopPhase.AWAITING_USER_INPUT
        # system + user + assistant
        assert len(agent.state) == 3

    def test_find_with_no_results(self):
        client = FakeClient(
            tool_reply(("c1", "find", {"path": "/var/log", "name": "*.log"}), content="Look for logs"),
            answer_reply("There are no log files."),
        )
        runner = FakeRunner(("", 0))
        agent = make_agent(client, runner, ScriptedConfirmation(True))
        events = collect(agent, "find log files")

        assert types(events) == ["thinking", "thought", "tool_start", "tool_end", "thinking", "answer", "done"]
        assert runner.calls == [("find", "/var/log", "-name", "*.log")]
        tool_end = events[3].data
        assert tool_end["observation"] == "No matching files found."
        assert tool_end["error"] is None

        # The second request carries the observation tied to its call id
        second = client.calls[1]
        assert second[-1].role == "tool"
        assert second[-1].tool_call_id == "c1"
        assert second[-1].content == "No matching files found."

    def test_second_call_declined(self):
        client = FakeClient(
            tool_reply(("c1", "ps", {}), ("c2", "wget", {"url": "http://example.org/a"})),
            answer_reply("done"),
        )
        runner = FakeRunner(("PID CMD\n1 init\n", 0))
        confirmation = ScriptedConfirmation(True, False)
        agent = make_agent(client, runner, confirmation)
        events = collect(agent, "check things")

        assert "cancelled" in types(events)
        assert confirmation.asked == ["c1", "c2"]
        assert runner.calls == [("ps", "aux")]
        tool_messages = [m for m in client.calls[1] if m.role == "tool"]
        assert [(m.tool_call_id, m.content) for m in tool_messages] == [
            ("c1", "PID CMD\n1 init\n"),
            ("c2", CANCELLED_OBSERVATION),
        ]

    def test_whitelist_blocks_wget(self):
        client = FakeClient(
            tool_reply(("c1", "wget", {"url": "http://example.org/file.zip"})),
            answer_reply("I am not allowed to download."),
        )
        runner = FakeRunner()
        agent = make_agent(client, runner, ScriptedConfirmation(True), ToolPolicy(allow={"ps"}))
        events = collect(agent, "download it")

        tool_end = next(e for e in events if e.type == "tool_end")
        assert "not in the configured whitelist" in tool_end.data["error"]
        assert tool_end.data["observation"].startswith("Error: tool 'wget'")
        assert runner.calls == []
        assert events[-2].type == "answer"

    def test_empty_output_placeholder(self):
        client = FakeClient(tool_reply(("c1", "ps", {})), answer_reply("nothing runs"))
        agent = make_agent(client, FakeRunner(("   \n", 0)), ScriptedConfirmation(True))
        events = collect(agent, "list processes")
        tool_end = next(e for e in events if e.type == "tool_end")
        assert tool_end.data["observation"] == EMPTY_OBSERVATION

    def test_failed_command_becomes_observation(self):
        client = FakeClient(
            tool_reply(("c1", "grep", {"pattern": "x", "file": "/nope"})),
            answer_reply("file missing"),
        )
        runner = FakeRunner(("grep: /nope: No such file or directory\n", 2))
        agent = make_agent(client, runner, ScriptedConfirmation(True))
        events = collect(agent, "grep")
        tool_end = next(e for e in events if e.type == "tool_end")
        assert tool_end.data["observation"].startswith("Error: command 'grep -e x -- /nope' failed")
        assert "No such file" in tool_end.data["observation"]

    def test_transport_error_ends_turn_only(self):
        client = FakeClient(ModelTransportError("connection refused"), answer_reply("back"))
        agent = make_agent(client)
        events = collect(agent, "hi")
        assert types(events) == ["thinking", "error", "done"]
        assert "connection refused" in events[1].data["message"]
        assert agent.phase is LoopPhase.AWAITING_USER_INPUT
        assert not agent.ended

        # The session goes on with the next line
        assert types(collect(agent, "again"))[-2] == "answer"

    def test_no_choices(self):
        agent = make_agent(FakeClient(ChatResponse(choices=[])))
        events = collect(agent, "hi")
        assert types(events) == ["thinking", "error", "done"]
        assert "no choices" in events[1].data["message"]

    def test_exit_keyword(self):
        client = FakeClient()
        agent = make_agent(client)
        events = collect(agent, "  QUIT ")
        assert types(events) == ["session_end"]
        assert agent.ended
        assert client.calls == []
        assert collect(agent, "hello") == []

    def test_blank_input_is_ignored(self):
        client = FakeClient()
        agent = make_agent(client)
        assert collect(agent, "   ") == []
        assert client.calls == []

    def test_eof_during_confirmation_cancels_pending(self):
        client = FakeClient(tool_reply(("c1", "ps", {}), ("c2", "ss", {})))
        runner = FakeRunner()
        agent = make_agent(client, runner, ScriptedConfirmation(EOFError))
        events = collect(agent, "check")

        assert "session_end" in types(events)
        assert agent.ended
        assert runner.calls == []
        tool_messages = [m for m in agent.state.snapshot() if m.role == "tool"]
        assert [(m.tool_call_id, m.content) for m in tool_messages] == [
            ("c1", CANCELLED_OBSERVATION),
            ("c2", CANCELLED_OBSERVATION),
        ]
        assert agent.state.pending_tool_calls() == []

    def test_run_until_end_of_input(self):
        client = FakeClient(answer_reply("hello there"))
        agent = make_agent(client)
        lines = ["hi", None]
        seen = []

        async def read_input():
            return lines.pop(0)

        asyncio.run(agent.run(read_input, seen.append))
        assert types(seen) == ["thinking", "answer", "done", "session_end"]
        assert agent.ended


# ═══════════════════════════════════════════════════════════════
# Config
# ═══════════════════════════════════════════════════════════════

class TestConfig:
    """Tests for Config loading, environment overrides and validation."""

    @pytest.fixture(autouse=True)
    def _clean_env(self, monkeypatch):
        for key in list(os.environ):
            if key.startswith("AGENT_"):
                monkeypatch.delenv(key)

    def _write(self, tmp_path, data):
        path = tmp_path / "config.json"
        path.write_text(json.dumps(data) if not isinstance(data, str) else data, encoding="utf-8")
        return path

    def test_load_from_file(self, tmp_path):
        from miniagent.config import Config
        cfg = Config.load(self._write(tmp_path, {"api_key": "sk-test", "denied_tools": ["wget"]}))
        assert cfg.api_key == "sk-test"
        assert cfg.model == "deepseek-coder"
        assert cfg.denied == frozenset({"wget"})
        assert cfg.allowed == frozenset()
        assert cfg.timeout is None

    def test_env_override(self, tmp_path, monkeypatch):
        from miniagent.config import Config
        monkeypatch.setenv("AGENT_API_KEY", "sk-env")
        monkeypatch.setenv("AGENT_ALLOWED_TOOLS", "ps, find,,grep")
        monkeypatch.setenv("AGENT_REQUEST_TIMEOUT", "30")
        cfg = Config.load(self._write(tmp_path, {"api_key": "sk-file"}))
        assert cfg.api_key == "sk-env"
        assert cfg.allowed_tools == ("ps", "find", "grep")
        assert cfg.timeout == 30.0

    def test_missing_explicit_file(self, tmp_path):
        from miniagent.config import Config
        with pytest.raises(ConfigError, match="not found"):
            Config.load(tmp_path / "nope.json")

    def test_invalid_json(self, tmp_path):
        from miniagent.config import Config
        with pytest.raises(ConfigError):
            Config.load(self._write(tmp_path, "{broken"))

    def test_openai_requires_key(self, tmp_path):
        from miniagent.config import Config
        with pytest.raises(ConfigError, match="AGENT_API_KEY"):
            Config.load(self._write(tmp_path, {}))

    def test_ollama_needs_no_key(self, tmp_path):
        from miniagent.config import Config
        cfg = Config.load(self._write(tmp_path, {"provider": "Ollama", "log_level": "debug"}))
        assert cfg.provider == "ollama"
        assert cfg.log_level == "DEBUG"

    def test_unknown_provider(self, tmp_path):
        from miniagent.config import Config
        with pytest.raises(ConfigError, match="Unknown provider"):
            Config.load(self._write(tmp_path, {"provider": "bogus"}))

    def test_bad_tool_list(self, tmp_path):
        from miniagent.config import Config
        with pytest.raises(ConfigError, match="denied_tools"):
            Config.load(self._write(tmp_path, {"api_key": "k", "denied_tools": "wget"}))

    def test_bad_timeout_env(self, tmp_path, monkeypatch):
        from miniagent.config import Config
        monkeypatch.setenv("AGENT_REQUEST_TIMEOUT", "soon")
        with pytest.raises(ConfigError):
            Config.load(self._write(tmp_path, {"api_key": "k"}))

    def test_unknown_keys_dropped(self, tmp_path):
        from miniagent.config import Config
        cfg = Config.load(self._write(tmp_path, {"api_key": "k", "colour": "blue"}))
        assert not hasattr(cfg, "colour")


# ═══════════════════════════════════════════════════════════════
# Logging
# ═══════════════════════════════════════════════════════════════

class TestLogging:
    def test_setup_logging_writes_file_and_quiets_http(self, tmp_path):
        import logging
        from miniagent.logger import setup_logging

        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        log_file = tmp_path / "log" / "agent.log"
        try:
            setup_logging(str(log_file), level="INFO")
            logging.getLogger("miniagent.test").info("hello from the test")
            for handler in root.handlers:
                handler.flush()
            assert "hello from the test" in log_file.read_text(encoding="utf-8")
            assert logging.getLogger("httpx").level == logging.WARNING
            assert logging.getLogger("markdown_it").level == logging.NOTSET
        finally:
            for handler in root.handlers[:]:
                root.removeHandler(handler)
                handler.close()
            for handler in saved_handlers:
                root.addHandler(handler)
            root.setLevel(saved_level)
