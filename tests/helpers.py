"""In-memory collaborator fakes and node builders for tests.

The fakes record every call so tests can assert which side effects happened
(and, for fail-fast checks, which did not).
"""

from typing import Any

from src.analytics_agent.models.base import utc_now
from src.analytics_agent.models.enums import NodeType
from src.analytics_agent.schemas.action import ActionConfig, ActionResult
from src.analytics_agent.schemas.datasource import (
    ConnectionConfig,
    ConnectionTestResult,
    DataSchema,
    SchemaColumn,
    SchemaTable,
)
from src.analytics_agent.schemas.llm import ChatRequest, MonitorQuery
from src.analytics_agent.schemas.workflow import WorkflowEdge, WorkflowNode

SAMPLE_SCHEMA = DataSchema(
    tables=[
        SchemaTable(
            name="users",
            columns=[
                SchemaColumn(name="id", type="uuid", nullable=False, primary_key=True),
                SchemaColumn(name="created_at", type="timestamp", nullable=False),
            ],
        ),
        SchemaTable(
            name="events",
            columns=[SchemaColumn(name="event", type="text", nullable=False)],
        ),
    ]
)


class FakeDataSource:
    def __init__(
        self,
        *,
        connection_ok: bool = True,
        schema: DataSchema = SAMPLE_SCHEMA,
        rows: list[dict[str, Any]] | None = None,
        error: Exception | None = None,
    ):
        self.connection_ok = connection_ok
        self.schema = schema
        self.rows = rows if rows is not None else [{"count": 3}]
        self.error = error
        self.calls: list[tuple[str, str]] = []

    async def test_connection(self, config: ConnectionConfig) -> ConnectionTestResult:
        self.calls.append(("test_connection", config.endpoint))
        if self.error:
            raise self.error
        if not self.connection_ok:
            return ConnectionTestResult(success=False, message="connection refused")
        return ConnectionTestResult(success=True, message="connected", connection_time=5)

    async def fetch_schema(self, config: ConnectionConfig) -> DataSchema:
        self.calls.append(("fetch_schema", config.endpoint))
        return self.schema

    async def execute_query(self, config: ConnectionConfig, query: str) -> list[dict[str, Any]]:
        self.calls.append(("execute_query", query))
        return self.rows


SQL_REPLY = (
    "SQL: SELECT date(created_at) AS day, count(*) AS signups\n"
    "FROM users GROUP BY day ORDER BY day\n"
    "CHART_TYPE: line\n"
    "EXPLANATION: Daily signups over time."
)
FOLLOW_UP_REPLY = (
    "1. Which channels drive the most signups?\n"
    "2. How many new users come back within a week?\n"
    "3. What share of signups activate?"
)


class FakeLanguageModel:
    def __init__(
        self,
        *,
        error: Exception | None = None,
        is_configured: bool = True,
        chat_replies: list[str] | None = None,
    ):
        self.error = error
        self.is_configured = is_configured
        # Replies for successive chat calls; an exhausted list answers ""
        self.chat_replies = (
            list(chat_replies) if chat_replies is not None else [SQL_REPLY, FOLLOW_UP_REPLY]
        )
        self.calls: list[tuple[str, dict[str, Any]]] = []

    async def chat(self, request: ChatRequest) -> str:
        self.calls.append(("chat", {"request": request}))
        if self.error:
            raise self.error
        return self.chat_replies.pop(0) if self.chat_replies else ""

    async def interpret_schema(self, schema_json: str, model: str, temperature: float) -> str:
        self.calls.append(
            (
                "interpret_schema",
                {"schema_json": schema_json, "model": model, "temperature": temperature},
            )
        )
        if self.error:
            raise self.error
        return "Users sign up and emit events."

    async def generate_monitor_query(
        self, context: str, condition: str, model: str
    ) -> MonitorQuery:
        self.calls.append(
            ("generate_monitor_query", {"context": context, "condition": condition, "model": model})
        )
        if self.error:
            raise self.error
        return MonitorQuery(
            query="SELECT count(*) FROM users", explanation=f"Checks: {condition}"
        )


class FakeActionSink:
    def __init__(self, *, success: bool = True, error: Exception | None = None):
        self.success = success
        self.error = error
        self.calls: list[tuple[ActionConfig, dict[str, Any]]] = []

    async def execute(self, config: ActionConfig, payload: dict[str, Any]) -> ActionResult:
        self.calls.append((config, payload))
        if self.error:
            raise self.error
        if not self.success:
            return ActionResult(success=False, message="delivery failed", error="HTTP 500")
        return ActionResult(success=True, message=f"{config.type} delivered")

    async def test_action(self, config: ActionConfig) -> ActionResult:
        return await self.execute(config, {"condition": "Test condition", "timestamp": utc_now()})


# --- Node builders ---


def connector_node(
    node_id: str = "connector", endpoint: str = "https://db.example.com", **config: Any
) -> WorkflowNode:
    return WorkflowNode(
        id=node_id,
        type=NodeType.DATA_CONNECTOR.value,
        label="Data Connector",
        config={"connectionType": "supabase", "endpoint": endpoint, "apiKey": "secret", **config},
    )


def interpreter_node(node_id: str = "interpreter", **config: Any) -> WorkflowNode:
    return WorkflowNode(
        id=node_id,
        type=NodeType.SCHEMA_INTERPRETER.value,
        label="Schema Interpreter",
        config=config,
    )


def monitor_node(
    node_id: str = "monitor", condition: str = "daily signups drop below 10", **config: Any
) -> WorkflowNode:
    return WorkflowNode(
        id=node_id,
        type=NodeType.MONITOR_BUILDER.value,
        label="Monitor Builder",
        config={"condition": condition, **config},
    )


def action_node(node_id: str = "action", **config: Any) -> WorkflowNode:
    return WorkflowNode(
        id=node_id,
        type=NodeType.ACTION_EXECUTOR.value,
        label="Action Executor",
        config={
            "actionType": "slack",
            "slackWebhook": "https://hooks.slack.com/services/T/B/X",
            "message": "Alert: {{condition}}",
            **config,
        },
    )


def edge(source: str, target: str) -> WorkflowEdge:
    return WorkflowEdge(id=f"{source}-{target}", source=source, target=target)


def linear_pipeline() -> tuple[list[WorkflowNode], list[WorkflowEdge]]:
    """connector -> interpreter -> monitor -> action."""
    nodes = [connector_node(), interpreter_node(), monitor_node(), action_node()]
    edges = [
        edge("connector", "interpreter"),
        edge("interpreter", "monitor"),
        edge("monitor", "action"),
    ]
    return nodes, edges
