"""
Text Generation — single-turn chat calls behind a small interface.

The plan compiler only needs ``send(messages) -> reply``. The default
implementation wraps any LangChain ``BaseChatModel`` so the compiler is
independent of the provider.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from logging import getLogger
from typing import List, Literal

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from pydantic import BaseModel

logger = getLogger(__name__)


class ChatMessage(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str


class ChatReply(BaseModel):
    content: str


class TextGenerator(ABC):
    """Sends one conversation and returns the assistant's reply."""

    @abstractmethod
    async def send(self, messages: List[ChatMessage]) -> ChatReply:
        ...


class ChatModelTextGenerator(TextGenerator):
    """TextGenerator backed by a LangChain chat model."""

    def __init__(self, model: BaseChatModel) -> None:
        self._model = model

    async def send(self, messages: List[ChatMessage]) -> ChatReply:
        lc_messages = [_to_langchain(m) for m in messages]
        response = await self._model.ainvoke(lc_messages)
        content = _content_text(response.content)
        logger.debug(f"Text generation reply: {len(content)} chars")
        return ChatReply(content=content)


def _to_langchain(message: ChatMessage) -> BaseMessage:
    if message.role == "system":
        return SystemMessage(content=message.content)
    if message.role == "assistant":
        return AIMessage(content=message.content)
    return HumanMessage(content=message.content)


def _content_text(content) -> str:
    # Multi-part replies arrive as a list of strings / {"type": "text"} blocks
    if isinstance(content, str):
        return content
    parts: List[str] = []
    for part in content:
        if isinstance(part, str):
            parts.append(part)
        elif isinstance(part, dict) and part.get("type") == "text":
            parts.append(part.get("text", ""))
    return "".join(parts)
