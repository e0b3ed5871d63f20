"""Tests for the slash-command surface."""

import pytest

from selekAgent.bridge import HELP_TEXT, CommandDispatcher
from selekAgent.routing import CommandIntent
from selekAgent.streaming import DoneEvent, ErrorEvent, TokenEvent
from selekAgent.utils.error_handler import CommandUsageError, InvalidAgentTypeError, UnknownCommandError


@pytest.fixture
def dispatcher(coordinator, history, runner, tracker, tmp_path):
    return CommandDispatcher(coordinator, history, runner, tracker=tracker, export_dir=tmp_path / "exports")


def text_of(events):
    return "".join(e.data for e in events if isinstance(e, TokenEvent))


async def run(dispatcher, collect, conversation_id, name, *args):
    return await collect(dispatcher.dispatch(conversation_id, CommandIntent(name, list(args))))


class TestDispatch:

    @pytest.mark.asyncio
    async def test_every_command_ends_with_done(self, dispatcher, collect, conversation_id):
        for name in ("help", "agents", "stats", "nope"):
            events = await run(dispatcher, collect, conversation_id, name)
            assert isinstance(events[-1], DoneEvent)
            assert events[-1].final == ""

    @pytest.mark.asyncio
    async def test_unknown_command(self, dispatcher, collect, conversation_id):
        events = await run(dispatcher, collect, conversation_id, "frobnicate")

        assert isinstance(events[0].error, UnknownCommandError)
        assert events[0].message == "Unknown command: /frobnicate. Type /help for available commands."

    @pytest.mark.asyncio
    async def test_help(self, dispatcher, collect, conversation_id):
        events = await run(dispatcher, collect, conversation_id, "help")
        assert text_of(events) == HELP_TEXT
        assert "implementation, security, performance" in HELP_TEXT


class TestAgentCommands:

    @pytest.mark.asyncio
    async def test_agents_empty(self, dispatcher, collect, conversation_id):
        events = await run(dispatcher, collect, conversation_id, "agents")
        assert "No agents currently active." in text_of(events)

    @pytest.mark.asyncio
    async def test_spawn_then_agents(self, dispatcher, collect, conversation_id):
        spawn = await run(dispatcher, collect, conversation_id, "spawn", "implementation", "Create", "a", "login", "API")
        assert "**Task:** Create a login API" in text_of(spawn)
        assert isinstance(spawn[-1], DoneEvent)

        listing = text_of(await run(dispatcher, collect, conversation_id, "agents"))
        assert "• **implementation-001** [completed]" in listing
        assert "Task: Create a login API" in listing

    @pytest.mark.asyncio
    async def test_spawn_bogus_type(self, dispatcher, collect, conversation_id):
        events = await run(dispatcher, collect, conversation_id, "spawn", "bogus-type", "do", "X")

        errors = [e for e in events if isinstance(e, ErrorEvent)]
        assert len(errors) == 1
        assert isinstance(errors[0].error, InvalidAgentTypeError)
        assert errors[0].error.valid_types == ["implementation", "security", "performance"]
        assert isinstance(events[-1], DoneEvent)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name,args", [("spawn", []), ("spawn", ["security"]), ("kill", [])])
    async def test_usage_errors(self, dispatcher, collect, conversation_id, name, args):
        events = await run(dispatcher, collect, conversation_id, name, *args)

        assert isinstance(events[0].error, CommandUsageError)
        assert "Usage: /" + name in events[0].message
        assert isinstance(events[-1], DoneEvent)

    @pytest.mark.asyncio
    async def test_kill_unknown_agent(self, dispatcher, collect, conversation_id, orchestration_log):
        before = await orchestration_log.read()

        events = await run(dispatcher, collect, conversation_id, "kill", "nonexistent-id")

        assert events[0].message == "Agent not found: nonexistent-id"
        assert isinstance(events[-1], DoneEvent)
        assert await orchestration_log.read() == before


class TestConversationCommands:

    @pytest.mark.asyncio
    async def test_clear_keeps_conversation_id(self, dispatcher, history, collect, conversation_id):
        await history.save_message(conversation_id, "user", "old")

        events = await run(dispatcher, collect, conversation_id, "clear")

        assert "Conversation cleared" in text_of(events)
        assert await history.conversation_exists(conversation_id)
        assert await history.get_history(conversation_id) == []

    @pytest.mark.asyncio
    async def test_stats(self, dispatcher, history, collect, conversation_id):
        await history.save_message(conversation_id, "user", "hi")
        await run(dispatcher, collect, conversation_id, "spawn", "implementation", "Create", "API")

        text = text_of(await run(dispatcher, collect, conversation_id, "stats"))

        assert "• Total: 1" in text
        assert "• Completed: 1" in text
        assert "This conversation: 2 messages" in text
        assert "generate_plan: 1 calls, 1 ok, 0 failed" in text

    @pytest.mark.asyncio
    async def test_export_writes_file(self, dispatcher, history, collect, conversation_id, tmp_path):
        await history.save_message(conversation_id, "user", "export me")

        events = await run(dispatcher, collect, conversation_id, "export", "txt")

        [exported] = list((tmp_path / "exports").glob("conversation-*.txt"))
        assert "export me" in exported.read_text(encoding="utf-8")
        assert f"exported to {exported}" in text_of(events)

    @pytest.mark.asyncio
    async def test_export_bad_format(self, dispatcher, collect, conversation_id):
        events = await run(dispatcher, collect, conversation_id, "export", "pdf")
        assert isinstance(events[0].error, CommandUsageError)


class TestFailureHistory:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name,args,expected", [
        ("bogus", [], "❌ Unknown command: /bogus. Type /help for available commands."),
        ("spawn", [], "❌ Usage: /spawn <type> <task description>"),
        ("export", ["pdf"], "❌ Usage: /export [json|markdown|txt]"),
    ])
    async def test_failed_command_is_saved(self, dispatcher, history, collect, conversation_id, name, args, expected):
        await run(dispatcher, collect, conversation_id, name, *args)

        [saved] = await history.get_history(conversation_id)
        assert saved.role == "assistant"
        assert saved.content.startswith(expected)
        assert saved.metadata["command"] == name

    @pytest.mark.asyncio
    async def test_crashing_handler_is_saved(self, dispatcher, history, collect, conversation_id):
        async def broken(conversation_id, args):
            raise RuntimeError("disk on fire")
            yield

        dispatcher.handlers["agents"] = broken

        events = await run(dispatcher, collect, conversation_id, "agents")

        assert events[0].message == "RuntimeError: disk on fire"
        assert isinstance(events[-1], DoneEvent)
        [saved] = await history.get_history(conversation_id)
        assert saved.content == "❌ RuntimeError: disk on fire"
        assert saved.metadata["error"] == "disk on fire"
