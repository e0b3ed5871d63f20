"""Selek CLI implementation using the shared framework."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Set

from shared.cli.base_cli import BaseCLI
from selekAgent.hitl import GateEvent, PermissionDecision, PermissionRequest, PermissionResponse
from selekAgent.runtime import Application
from selekAgent.streaming import DoneEvent, ErrorEvent, TokenEvent

LOGGER = logging.getLogger(__name__)

PERMISSION_ANSWERS = {
    "y": PermissionResponse.ALLOW_ONCE,
    "yes": PermissionResponse.ALLOW_ONCE,
    "a": PermissionResponse.ALLOW_SESSION,
    "always": PermissionResponse.ALLOW_SESSION,
    "n": PermissionResponse.DENY,
    "no": PermissionResponse.DENY,
}


class SelekCLI(BaseCLI):
    """CLI interface for the Selek orchestrator.

    Extends BaseCLI with:
    - Streaming of bridge events to the terminal
    - Console prompts for pending permission requests
    """

    def __init__(self, app: Application, logger: logging.Logger):
        super().__init__()
        self.app = app
        self.logger = logger
        self.conversation_id: Optional[str] = None
        self._prompt_lock = asyncio.Lock()
        self._prompt_tasks: Set[asyncio.Task] = set()
        self._unsubscribe = app.gate.subscribe(self._on_gate_event)

    # ========== CLI Interface Implementation ==========

    def print_welcome(self):
        log_file = self.logger.handlers[0].baseFilename if self.logger.handlers else "N/A"
        print("Selek CLI ready.")
        print(f"Conversation: {(self.conversation_id or 'new')[:8]}...")
        print(f"Orchestration log: {self.app.orchestration_log.path}")
        print(f"Log file: {log_file}")
        print("\nType /help for commands, /quit to exit\n")

    async def run(self):
        self.conversation_id = await self.app.bridge.start_conversation()
        await super().run()

    async def handle_user_message(self, message: str):
        async for event in self.app.bridge.process_message(self.conversation_id, message):
            if isinstance(event, TokenEvent):
                print(event.data, end="", flush=True)
            elif isinstance(event, ErrorEvent):
                print(f"\n❌ {event.message}")
            elif isinstance(event, DoneEvent):
                print()

    async def on_shutdown(self):
        self._unsubscribe()
        for task in list(self._prompt_tasks):
            task.cancel()
        await super().on_shutdown()

    # ========== Permission prompts ==========

    def _on_gate_event(self, event: GateEvent) -> None:
        if event.kind != "pending":
            return
        task = asyncio.get_running_loop().create_task(self._ask_permission(event.request))
        self._prompt_tasks.add(task)
        task.add_done_callback(self._prompt_tasks.discard)

    async def _ask_permission(self, request: PermissionRequest) -> None:
        async with self._prompt_lock:
            print(f"\n🔐 Permission required [{request.risk_level.value}] {request.description}")
            if request.reason:
                print(f"   Reason: {request.reason}")
            response = None
            while response is None:
                answer = (await self.read_line("   Allow? [y]es / [a]lways / [n]o: ")).lower()
                response = PERMISSION_ANSWERS.get(answer)
            self.app.gate.decide(PermissionDecision(request.id, response, decided_by="cli"))
