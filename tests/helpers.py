"""Test doubles shared by the adapter, hub and API suites."""

import asyncio
from typing import Callable, List, Optional, Union

from services.platform_clients import ChatClient


Reply = Union[str, Exception]


class ScriptedClient(ChatClient):
    """
    Stand-in for a platform client.

    Answers from a list of canned replies, or from a callable taking
    (prompt, attempt). Exceptions in the script are raised.
    """

    name = "Scripted"

    def __init__(
        self,
        replies: Optional[List[Reply]] = None,
        responder: Optional[Callable[[str, int], Reply]] = None,
        delay: float = 0.0,
    ):
        self.replies = list(replies or [])
        self.responder = responder
        self.delay = delay
        self.prompts: List[str] = []

    async def complete(self, prompt: str, attempt: int = 0) -> str:
        self.prompts.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.responder is not None:
            reply = self.responder(prompt, attempt)
        else:
            reply = self.replies.pop(0) if self.replies else ""
        if isinstance(reply, Exception):
            raise reply
        return reply
