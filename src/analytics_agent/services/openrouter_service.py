"""Language model client backed by the OpenRouter chat completions API."""

import json
import re
from typing import Any

import httpx

from src.analytics_agent.core.logging import get_logger
from src.analytics_agent.engine.errors import LanguageModelError
from src.analytics_agent.schemas.llm import ChatMessage, ChatRequest, MonitorQuery

logger = get_logger(__name__)

SCHEMA_ANALYST_PROMPT = """You are a database schema analyst. Analyze the provided database schema and identify:
1. Key entities (e.g., users, events, sessions, products)
2. Important relationships between tables
3. Event tracking patterns
4. User behavior indicators
5. Business metrics that can be derived

Provide a clear, structured analysis that will help set up automated monitoring and alerts."""

MONITOR_QUERY_PROMPT = """You are an SQL expert. Generate SQL queries for monitoring specific conditions in a database.
Return your response as JSON with two fields: "query" (the SQL query) and "explanation" (brief description)."""

ALERT_MESSAGE_PROMPT = """You are a helpful assistant that generates alert messages based on templates and data.
Replace template variables like {{variable}} with actual values from the provided data.
Keep the message clear, concise, and actionable."""

_FENCE_PATTERN = re.compile(r"^```(?:json)?\s*(?P<body>.*?)\s*```$", re.DOTALL)


def parse_monitor_query(content: str) -> MonitorQuery:
    """Parse a model reply into a query and explanation.

    Accepts bare JSON or JSON inside a fenced code block; anything else is
    taken verbatim as the query.
    """
    text = content.strip()
    match = _FENCE_PATTERN.match(text)
    if match:
        text = match["body"]

    try:
        parsed = json.loads(text)
    except ValueError:
        return MonitorQuery(query=content.strip())

    if isinstance(parsed, dict) and isinstance(parsed.get("query"), str):
        return MonitorQuery(
            query=parsed["query"],
            explanation=parsed.get("explanation") or "Generated monitoring query",
        )
    return MonitorQuery(query=content.strip())


def _error_detail(response: httpx.Response) -> str:
    """Pull the upstream message out of an error response.

    OpenRouter sends ``{"error": {"message": ...}}``; proxies and rate limiters
    in front of it send a bare string, other JSON or HTML.
    """
    try:
        body = response.json()
    except ValueError:
        return response.reason_phrase or f"HTTP {response.status_code}"

    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict) and isinstance(error.get("message"), str):
        return error["message"]
    if isinstance(error, str) and error:
        return error
    return response.reason_phrase or f"HTTP {response.status_code}"


class OpenRouterService:
    """Chat-completion client plus the prompts used by workflow nodes."""

    def __init__(
        self,
        api_key: str | None,
        base_url: str = "https://openrouter.ai/api/v1",
        app_url: str = "http://localhost:3001",
        app_name: str = "SailoGrowth",
        default_model: str = "anthropic/claude-3-sonnet",
        client: httpx.AsyncClient | None = None,
        timeout: float = 60.0,
    ):
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._app_url = app_url
        self._app_name = app_name
        self.default_model = default_model
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def chat(self, request: ChatRequest) -> str:
        """Send a chat completion request and return the first choice's content."""
        if not self._api_key:
            raise LanguageModelError("OpenRouter API key is required")

        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": self._app_url,
            "X-Title": self._app_name,
        }

        try:
            response = await self._client.post(
                f"{self._base_url}/chat/completions",
                headers=headers,
                json=request.model_dump(exclude_none=True),
            )
        except httpx.TimeoutException as e:
            raise LanguageModelError(f"OpenRouter request timed out: {e}") from e
        except httpx.HTTPError as e:
            raise LanguageModelError(f"OpenRouter request failed: {e}") from e

        if response.is_error:
            detail = _error_detail(response)
            logger.warning(
                "OpenRouter API error",
                status_code=response.status_code,
                model=request.model,
            )
            raise LanguageModelError(f"OpenRouter API error: {detail}")

        try:
            data = response.json()
        except ValueError as e:
            raise LanguageModelError("OpenRouter returned a non-JSON response") from e
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise LanguageModelError("OpenRouter response contained no choices") from e
        if not isinstance(content, str):
            raise LanguageModelError("OpenRouter response contained no message content")

        usage = data.get("usage")
        if not isinstance(usage, dict):
            usage = {}
        logger.debug(
            "OpenRouter completion",
            model=data.get("model", request.model),
            total_tokens=usage.get("total_tokens"),
        )
        return content

    async def interpret_schema(
        self, schema_json: str, model: str | None = None, temperature: float = 0.7
    ) -> str:
        user_prompt = (
            "Analyze this database schema and identify key entities, relationships, "
            f"and monitoring opportunities:\n\n{schema_json}"
        )
        return await self.chat(
            ChatRequest(
                model=model or self.default_model,
                messages=[
                    ChatMessage(role="system", content=SCHEMA_ANALYST_PROMPT),
                    ChatMessage(role="user", content=user_prompt),
                ],
                temperature=temperature,
                max_tokens=2000,
            )
        )

    async def generate_monitor_query(
        self, context: str, condition: str, model: str | None = None
    ) -> MonitorQuery:
        user_prompt = (
            f"Generate a SQL query to monitor: {condition}\n\n"
            f"Context: {context}\n\n"
            'Return JSON with "query" and "explanation" fields.'
        )
        content = await self.chat(
            ChatRequest(
                model=model or self.default_model,
                messages=[
                    ChatMessage(role="system", content=MONITOR_QUERY_PROMPT),
                    ChatMessage(role="user", content=user_prompt),
                ],
                temperature=0.3,
                max_tokens=1000,
            )
        )
        return parse_monitor_query(content)

    async def generate_alert_message(
        self, template: str, data: dict[str, Any], model: str | None = None
    ) -> str:
        user_prompt = (
            f"Template: {template}\n\n"
            f"Data: {json.dumps(data, indent=2, default=str)}\n\n"
            "Generate the final alert message with all variables replaced."
        )
        return await self.chat(
            ChatRequest(
                model=model or self.default_model,
                messages=[
                    ChatMessage(role="system", content=ALERT_MESSAGE_PROMPT),
                    ChatMessage(role="user", content=user_prompt),
                ],
                temperature=0.5,
                max_tokens=500,
            )
        )
