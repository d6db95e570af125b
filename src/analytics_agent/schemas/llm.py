"""Language model request/response schemas."""

from typing import Literal

from pydantic import BaseModel


class ChatMessage(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    """OpenAI-compatible chat completion request body."""

    model: str
    messages: list[ChatMessage]
    temperature: float | None = None
    max_tokens: int | None = None


class MonitorQuery(BaseModel):
    """A generated monitoring query and its plain-language explanation."""

    query: str
    explanation: str = "Generated monitoring query"
