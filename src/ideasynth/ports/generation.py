"""Port: generative (chat) backend."""

from __future__ import annotations

from typing import Literal, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field


class ChatMessage(BaseModel):
    """A single role-tagged message sent to the generative backend."""

    model_config = ConfigDict(frozen=True)

    role: Literal["system", "user", "assistant"] = Field(..., description="Message role")
    content: str = Field(..., description="Message text")


@runtime_checkable
class GenerationProvider(Protocol):
    """Produce free text from a role-tagged message list."""

    async def generate(self, messages: list[ChatMessage], model: str | None = None) -> str: ...
