"""End-to-end message flows through the assembled application.

Every flow runs against a real workspace in tmp_path with a fake chat model,
so no network or API key is needed.
"""

import pytest
import pytest_asyncio
from langchain_core.language_models.fake_chat_models import FakeListChatModel
from langchain_core.messages import AIMessage

from selekAgent.access import AgentIdentity, AgentRole
from selekAgent.config.settings import HistorySettings, OrchestrationSettings, Settings
from selekAgent.hitl import PermissionDecision, PermissionResponse
from selekAgent.runtime import build_application
from selekAgent.streaming import DoneEvent, ErrorEvent, TokenEvent
from selekAgent.utils.error_handler import InvalidAgentTypeError, ProtectedResourceError


def make_settings(root):
    return Settings(
        orchestration=OrchestrationSettings(workspace_root=root),
        history=HistorySettings(export_dir=root / "exports"),
    )


def tokens(events):
    return "".join(e.data for e in events if isinstance(e, TokenEvent))


async def send(app, conversation_id, message):
    return [event async for event in app.bridge.process_message(conversation_id, message)]


@pytest_asyncio.fixture
async def app(tmp_path, implementation_plan):
    return await build_application(make_settings(tmp_path), model=FakeListChatModel(responses=[implementation_plan]))


@pytest_asyncio.fixture
async def conversation(app):
    return await app.bridge.start_conversation("Integration")


class TestCommandFlows:

    @pytest.mark.asyncio
    async def test_spawn_security_agent(self, tmp_path, security_plan):
        app = await build_application(make_settings(tmp_path), model=FakeListChatModel(responses=[security_plan]))
        conversation = await app.bridge.start_conversation()

        events = await send(app, conversation, "/spawn security audit login flow")

        text = tokens(events)
        assert text.startswith("🚀 Spawning security agent...")
        assert "**Plan:**\n# Login Flow Security Review" in text
        assert isinstance(events[-1], DoneEvent)

        [record] = app.runner.get_agent_registry()
        assert record.agent_id == "security-001"
        assert (tmp_path / "plans" / "security").is_dir()

        log = await app.orchestration_log.read()
        assert "\n## Task Request\naudit login flow" in log

    @pytest.mark.asyncio
    async def test_kill_nonexistent_leaves_log_unchanged(self, app, conversation):
        before = await app.orchestration_log.read()

        events = await send(app, conversation, "/kill nonexistent-id")

        assert [e.message for e in events if isinstance(e, ErrorEvent)] == ["Agent not found: nonexistent-id"]
        assert isinstance(events[-1], DoneEvent)
        assert await app.orchestration_log.read() == before

    @pytest.mark.asyncio
    async def test_spawn_bogus_type(self, app, conversation):
        events = await send(app, conversation, "/spawn bogus-type do X")

        [error] = [e for e in events if isinstance(e, ErrorEvent)]
        assert isinstance(error.error, InvalidAgentTypeError)
        assert error.error.valid_types == ["implementation", "security", "performance"]
        assert app.runner.get_agent_registry() == []

    @pytest.mark.asyncio
    async def test_messages_are_saved_in_order(self, app, conversation):
        await send(app, conversation, "/help")

        roles = [m.role for m in await app.history.get_history(conversation)]
        assert roles == ["user"]

    @pytest.mark.asyncio
    async def test_failed_commands_are_recorded(self, app, conversation):
        for message in ("/bogus", "/spawn", "/export pdf"):
            events = await send(app, conversation, message)
            assert isinstance(events[0], ErrorEvent)

        history = await app.history.get_history(conversation)
        assert [m.role for m in history] == ["user", "assistant"] * 3
        assert all(m.content.startswith("❌ ") for m in history[1::2])


class TestTaskFlow:

    @pytest.mark.asyncio
    async def test_task_message_plans_with_agents(self, app, conversation, tmp_path):
        events = await send(app, conversation, "Implement a login API with auth")

        assert isinstance(events[-1], DoneEvent)
        text = tokens(events)
        assert "**implementation-001**" in text
        assert "**security-002**" in text

        agents = app.runner.get_agent_registry()
        assert [a.domain for a in agents] == ["Application Security", "Application Security"]
        for agent in agents:
            assert agent.plan_file.startswith(str(tmp_path.resolve()))

        history = await app.history.get_history(conversation)
        assert [m.role for m in history] == ["user", "assistant"]
        assert history[-1].content == events[-1].final

    @pytest.mark.asyncio
    async def test_sub_agent_cannot_touch_orchestration_log(self, app):
        sub = AgentIdentity.create("implementation-001", AgentRole.SUB_AGENT)
        await app.guard.read(sub, app.orchestration_log.path)

        with pytest.raises(ProtectedResourceError):
            await app.guard.write(sub, app.orchestration_log.path, "hijacked")
        with pytest.raises(ProtectedResourceError):
            await app.guard.write(sub, app.orchestration_log.path.parent / "backup_orchestrator.md", "copy")


class TestOrchestratorTools:

    @pytest.mark.asyncio
    async def test_sensitive_write_waits_for_consent(self, app, tmp_path):
        prompted = []

        def approve(event):
            if event.kind == "pending":
                prompted.append(event.request.description)
                app.gate.decide(PermissionDecision(event.request.id, PermissionResponse.ALLOW_ONCE))

        app.gate.subscribe(approve)
        tools = {t.name: t for t in app.orchestrator_tools()}

        result = await tools["write_file"].ainvoke({"path": "config/credentials.yaml", "content": "user: me"})

        assert result.startswith("Wrote")
        assert prompted == ["Write config/credentials.yaml"]
        assert (tmp_path / "config" / "credentials.yaml").read_text(encoding="utf-8") == "user: me"
        assert app.tracker.stats("write_file").success_count == 1

    @pytest.mark.asyncio
    async def test_query_tool_call_goes_through_gate(self, tmp_path, tool_calling_model):
        write = AIMessage(
            content="",
            tool_calls=[{
                "name": "write_file",
                "args": {"path": "config/credentials.yaml", "content": "user: me"},
                "id": "call-1",
            }],
        )
        model = tool_calling_model(write, "Saved your credentials.")
        app = await build_application(make_settings(tmp_path), model=model)
        conversation = await app.bridge.start_conversation()
        seen = []

        def approve(event):
            seen.append(event.kind)
            if event.kind == "pending":
                app.gate.decide(PermissionDecision(event.request.id, PermissionResponse.ALLOW_ONCE))

        app.gate.subscribe(approve)

        events = await send(app, conversation, "Please store my credentials in config/credentials.yaml")

        assert seen == ["pending", "resolved"]
        assert events[-1] == DoneEvent("Saved your credentials.")
        assert (tmp_path / "config" / "credentials.yaml").read_text(encoding="utf-8") == "user: me"
        assert app.tracker.stats("write_file").success_count == 1
        history = await app.history.get_history(conversation)
        assert history[-1].content == "Saved your credentials."

    @pytest.mark.asyncio
    async def test_denied_tool_call_leaves_file_alone(self, tmp_path, tool_calling_model):
        write = AIMessage(
            content="",
            tool_calls=[{"name": "write_file", "args": {"path": ".env", "content": "KEY=x"}, "id": "call-1"}],
        )
        app = await build_application(make_settings(tmp_path), model=tool_calling_model(write, "Left .env alone."))
        conversation = await app.bridge.start_conversation()

        def deny(event):
            if event.kind == "pending":
                app.gate.decide(PermissionDecision(event.request.id, PermissionResponse.DENY))

        app.gate.subscribe(deny)

        events = await send(app, conversation, "Please store KEY=x in .env")

        assert events[-1] == DoneEvent("Left .env alone.")
        assert not (tmp_path / ".env").exists()


class TestQueryFlow:

    @pytest.mark.asyncio
    async def test_query_streams_and_saves_answer(self, tmp_path):
        answer = "Python is a programming language."
        app = await build_application(make_settings(tmp_path), model=FakeListChatModel(responses=[answer]))
        conversation = await app.bridge.start_conversation()

        events = await send(app, conversation, "What is Python?")

        assert len([e for e in events if isinstance(e, TokenEvent)]) > 1
        assert events[-1] == DoneEvent(answer)
        history = await app.history.get_history(conversation)
        assert [(m.role, m.content) for m in history] == [("user", "What is Python?"), ("assistant", answer)]

    @pytest.mark.asyncio
    async def test_unexpected_failure_becomes_error_event(self, app, conversation, monkeypatch):
        def explode(message):
            raise RuntimeError("router exploded")

        monkeypatch.setattr(app.bridge.router, "classify", explode)

        events = await send(app, conversation, "hello")

        assert isinstance(events[-1], ErrorEvent)
        assert "router exploded" in events[-1].message
        saved = await app.history.get_history(conversation)
        assert saved[-1].content.startswith("❌ ")
