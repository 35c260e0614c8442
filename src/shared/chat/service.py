"""
Chat assistant collaborator.

Prompt construction and model invocation live outside this service. The app
holds a ChatResponder on app.state.chat_responder; until one is installed the
chat endpoint answers 503.
"""

from abc import ABC, abstractmethod
from typing import Optional

from fastapi import FastAPI, Request


class ChatResponderError(Exception):
    """The responder could not produce a reply."""


class ChatResponder(ABC):
    """Produces the assistant's reply to a visitor message."""

    @abstractmethod
    async def generate_reply(self, message: str) -> str:
        """Reply text. Raises ChatResponderError when no reply can be produced."""


def install_chat_responder(app: FastAPI, responder: Optional[ChatResponder]) -> None:
    app.state.chat_responder = responder


def get_chat_responder(request: Request) -> Optional[ChatResponder]:
    return getattr(request.app.state, "chat_responder", None)
