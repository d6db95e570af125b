"""Interfaces of the external systems a workflow run talks to.

The engine depends only on these protocols. Production implementations live in
``src.analytics_agent.services``; tests pass in-memory fakes.
"""

from typing import Any, Protocol

from src.analytics_agent.schemas.action import ActionConfig, ActionResult
from src.analytics_agent.schemas.datasource import (
    ConnectionConfig,
    ConnectionTestResult,
    DataSchema,
    QueryRows,
)
from src.analytics_agent.schemas.llm import ChatRequest, MonitorQuery


class DataSource(Protocol):
    async def test_connection(self, config: ConnectionConfig) -> ConnectionTestResult: ...

    async def fetch_schema(self, config: ConnectionConfig) -> DataSchema: ...

    async def execute_query(self, config: ConnectionConfig, query: str) -> QueryRows: ...


class LanguageModel(Protocol):
    async def interpret_schema(self, schema_json: str, model: str, temperature: float) -> str: ...

    async def generate_monitor_query(
        self, context: str, condition: str, model: str
    ) -> MonitorQuery: ...


class ChatModel(Protocol):
    """Free-form chat completion, used outside workflow runs."""

    async def chat(self, request: ChatRequest) -> str: ...


class ActionSink(Protocol):
    async def execute(self, config: ActionConfig, payload: dict[str, Any]) -> ActionResult: ...
