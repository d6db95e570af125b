"""Workflow schemas: graph definition, per-kind node configuration and execution records."""

from datetime import datetime
from typing import Annotated, Any, Literal

from pydantic import ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from src.analytics_agent.models.base import CamelModel
from src.analytics_agent.models.enums import (
    ConnectionType,
    ExecutionStatus,
    LogLevel,
    NodeType,
    QueryType,
)
from src.analytics_agent.schemas.action import ActionConfig
from src.analytics_agent.schemas.datasource import ConnectionConfig, DataSchema

# --- Graph definition ---


class WorkflowNode(CamelModel):
    """A unit of work in a workflow.

    Accepts both the flat shape ``{id, type, label, config}`` and the canvas
    shape ``{id, type, position, data: {label, config, ...}}``.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str = Field(min_length=1)
    # Plain string: unknown kinds are a run failure, not a request error
    type: str
    label: str = ""
    config: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def flatten_canvas_data(cls, value: Any) -> Any:
        if isinstance(value, dict) and isinstance(value.get("data"), dict):
            data = value["data"]
            flattened = {k: v for k, v in value.items() if k not in ("data", "position")}
            flattened.setdefault("label", data.get("label") or "")
            flattened.setdefault("config", data.get("config") or {})
            return flattened
        return value

    @property
    def display_name(self) -> str:
        return self.label or self.id


class WorkflowEdge(CamelModel):
    """Directed dependency ``source -> target`` between two node ids."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str | None = None
    source: str
    target: str


# --- Per-kind node configuration (tagged by node type) ---


class DataConnectorConfig(CamelModel):
    kind: Literal["data-connector"] = "data-connector"
    connection_type: ConnectionType
    endpoint: str = Field(min_length=1)
    api_key: str = Field(min_length=1, repr=False)
    database: str | None = None

    def to_connection_config(self) -> ConnectionConfig:
        return ConnectionConfig(
            type=self.connection_type,
            endpoint=self.endpoint,
            api_key=self.api_key,
            database=self.database,
        )


class SchemaInterpreterConfig(CamelModel):
    kind: Literal["schema-interpreter"] = "schema-interpreter"
    model: str | None = None
    temperature: float | None = Field(default=None, ge=0, le=2)


class MonitorBuilderConfig(CamelModel):
    kind: Literal["monitor-builder"] = "monitor-builder"
    condition: str = Field(min_length=1)
    model: str | None = None
    cron_expression: str | None = None
    query_type: QueryType | None = None


class ActionExecutorConfig(CamelModel):
    kind: Literal["action-executor"] = "action-executor"
    action_type: str = Field(min_length=1)
    slack_webhook: str | None = None
    email_recipients: str | None = None
    message: str | None = None
    webhook_url: str | None = None
    webhook_method: Literal["GET", "POST"] = "POST"
    webhook_headers: dict[str, str] | None = None
    webhook_body: Any = None

    def to_action_config(self) -> ActionConfig:
        return ActionConfig(
            type=self.action_type,
            slack_webhook=self.slack_webhook,
            email_recipients=self.email_recipients,
            message=self.message,
            webhook_url=self.webhook_url,
            webhook_method=self.webhook_method,
            webhook_headers=self.webhook_headers,
            webhook_body=self.webhook_body,
        )


NodeConfig = Annotated[
    DataConnectorConfig | SchemaInterpreterConfig | MonitorBuilderConfig | ActionExecutorConfig,
    Field(discriminator="kind"),
]

# Node kinds that cannot run without configuration
CONFIG_REQUIRED_NODE_TYPES = frozenset(
    {NodeType.DATA_CONNECTOR, NodeType.MONITOR_BUILDER, NodeType.ACTION_EXECUTOR}
)


# --- Execution record ---


class ExecutionLog(CamelModel):
    """One audit-trail entry. Immutable once written."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    node_id: str
    timestamp: datetime
    level: LogLevel
    message: str
    data: Any = None


class WorkflowExecution(CamelModel):
    """The record of one workflow run."""

    id: str
    workflow_id: str
    status: ExecutionStatus = ExecutionStatus.PENDING
    started_at: datetime | None = None
    completed_at: datetime | None = None
    error: str | None = None
    logs: list[ExecutionLog] = Field(default_factory=list)


# --- API request / response ---


class ExecuteWorkflowRequest(CamelModel):
    workflow_id: str = Field(min_length=1)
    nodes: list[WorkflowNode]
    edges: list[WorkflowEdge]


class ExecutionRead(CamelModel):
    id: str
    status: ExecutionStatus
    started_at: datetime | None
    completed_at: datetime | None
    error: str | None
    logs: list[ExecutionLog]

    @classmethod
    def from_execution(cls, execution: WorkflowExecution) -> "ExecutionRead":
        return cls(
            id=execution.id,
            status=execution.status,
            started_at=execution.started_at,
            completed_at=execution.completed_at,
            error=execution.error,
            logs=list(execution.logs),
        )


class ExecuteWorkflowResponse(CamelModel):
    success: bool
    execution: ExecutionRead


class ConnectionTestRequest(CamelModel):
    connection_config: ConnectionConfig


class ConnectionTestResponse(CamelModel):
    success: bool
    message: str
    connection_time: int | None = None


class InterpretSchemaRequest(CamelModel):
    connection_config: ConnectionConfig
    model: str | None = None
    temperature: float | None = Field(default=None, ge=0, le=2)


class InterpretSchemaResponse(CamelModel):
    success: bool = True
    data_schema: DataSchema = Field(alias="schema")
    interpretation: str
    model: str


class GenerateQueryRequest(CamelModel):
    entity_description: str = Field(min_length=1)
    condition: str = Field(min_length=1)
    model: str | None = None


class GenerateQueryResponse(CamelModel):
    success: bool = True
    query: str
    explanation: str
    model: str


class ActionTestRequest(CamelModel):
    action_config: ActionConfig


class ActionTestResponse(CamelModel):
    success: bool
    message: str
    timestamp: datetime
