from src.analytics_agent.schemas.action import ActionConfig, ActionResult
from src.analytics_agent.schemas.datasource import (
    ConnectionConfig,
    ConnectionTestResult,
    DataSchema,
    DetectedEntity,
    SchemaColumn,
    SchemaRelationship,
    SchemaTable,
)
from src.analytics_agent.schemas.llm import ChatMessage, ChatRequest, MonitorQuery
from src.analytics_agent.schemas.query import (
    MetricDefinition,
    QueryRequest,
    QueryResponse,
    QueryResult,
    SchemaOverview,
    SqlAnswer,
)
from src.analytics_agent.schemas.workflow import (
    ActionExecutorConfig,
    DataConnectorConfig,
    ExecuteWorkflowRequest,
    ExecuteWorkflowResponse,
    ExecutionLog,
    MonitorBuilderConfig,
    NodeConfig,
    SchemaInterpreterConfig,
    WorkflowEdge,
    WorkflowExecution,
    WorkflowNode,
)

__all__ = [
    # Actions
    "ActionConfig",
    "ActionResult",
    # Data sources
    "ConnectionConfig",
    "ConnectionTestResult",
    "DataSchema",
    "DetectedEntity",
    "SchemaColumn",
    "SchemaRelationship",
    "SchemaTable",
    # Language model
    "ChatMessage",
    "ChatRequest",
    "MonitorQuery",
    # Questions and schema overview
    "MetricDefinition",
    "QueryRequest",
    "QueryResponse",
    "QueryResult",
    "SchemaOverview",
    "SqlAnswer",
    # Workflow
    "ActionExecutorConfig",
    "DataConnectorConfig",
    "ExecuteWorkflowRequest",
    "ExecuteWorkflowResponse",
    "ExecutionLog",
    "MonitorBuilderConfig",
    "NodeConfig",
    "SchemaInterpreterConfig",
    "WorkflowEdge",
    "WorkflowExecution",
    "WorkflowNode",
]
