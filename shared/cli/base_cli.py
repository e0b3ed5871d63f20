"""Base CLI framework for agent interfaces."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Dict, Optional

LOGGER = logging.getLogger(__name__)

LocalHandler = Callable[[Optional[str]], Awaitable[bool]]


class BaseCLI(ABC):
    """Async read-eval loop shared by agent front ends.

    Only the commands in ``local_commands()`` are handled here. Every other
    line, slash-prefixed or not, is passed to ``handle_user_message`` so the
    agent keeps its own command surface. A local handler returns False to end
    the session.
    """

    prompt = "You> "
    farewell = "Goodbye!"

    def __init__(self):
        self._local = self.local_commands()
        self._running = False
        LOGGER.info(f"{self.__class__.__name__} initialized")

    def local_commands(self) -> Dict[str, LocalHandler]:
        """Commands answered by the loop itself; override to add more."""
        return {"/quit": self._handle_quit, "/exit": self._handle_quit}

    async def run(self):
        self._running = True
        self.print_welcome()

        try:
            while self._running:
                line = await self.get_input()
                if line and not await self._dispatch(line):
                    break
        except (KeyboardInterrupt, EOFError):
            print(f"\n{self.farewell}")
            LOGGER.info("Session interrupted by user")
        finally:
            self._running = False
            await self.on_shutdown()

    async def _dispatch(self, line: str) -> bool:
        """Handle one input line; False means stop the loop."""
        try:
            if self.is_local_command(line):
                return await self.handle_command(line)
            await self.handle_user_message(line)
        except Exception as e:
            LOGGER.error(f"Unexpected error handling input: {e}", exc_info=True)
            print(f"❌ Error: {e}")
        return True

    async def on_shutdown(self):
        LOGGER.info("CLI shutting down")

    # ------------------------------------------------------------------
    # Local commands
    # ------------------------------------------------------------------

    def is_local_command(self, text: str) -> bool:
        return text.split(maxsplit=1)[0].lower() in self._local

    async def handle_command(self, line: str) -> bool:
        name, _, arg = line.partition(" ")
        return await self._local[name.lower()](arg.strip() or None)

    async def _handle_quit(self, arg: Optional[str]) -> bool:
        print("Session ended.")
        LOGGER.info("Exit requested from the prompt")
        return False

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    async def read_line(self, prompt: str) -> str:
        """Read one line without blocking the event loop."""
        loop = asyncio.get_running_loop()
        return (await loop.run_in_executor(None, input, prompt)).strip()

    async def get_input(self) -> str:
        return await self.read_line(self.prompt)

    @abstractmethod
    def print_welcome(self):
        """Print the agent-specific banner."""

    @abstractmethod
    async def handle_user_message(self, message: str):
        """Process one line that is not a local command."""
