"""Shared enums for models."""

from enum import Enum


class NodeType(str, Enum):
    """Workflow node kind."""

    DATA_CONNECTOR = "data-connector"
    SCHEMA_INTERPRETER = "schema-interpreter"
    MONITOR_BUILDER = "monitor-builder"
    ACTION_EXECUTOR = "action-executor"
    # UI-only, never executed
    CHAT_INTERFACE = "chat-interface"


class ExecutionStatus(str, Enum):
    """Workflow execution status."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ExecutionStatus.COMPLETED, ExecutionStatus.FAILED)


class LogLevel(str, Enum):
    """Execution log entry level."""

    INFO = "info"
    WARN = "warn"
    ERROR = "error"


class ConnectionType(str, Enum):
    """Supported data source kinds."""

    SUPABASE = "supabase"
    POSTHOG = "posthog"
    BIGQUERY = "bigquery"
    POSTGRESQL = "postgresql"
    MYSQL = "mysql"


class ActionType(str, Enum):
    """Notification / action kinds."""

    SLACK = "slack"
    EMAIL = "email"
    WEBHOOK = "webhook"
    HUBSPOT = "hubspot"
    API = "api"


class QueryType(str, Enum):
    """Monitor aggregation kind."""

    COUNT = "count"
    SUM = "sum"
    AVERAGE = "average"
    THRESHOLD = "threshold"
    CHANGE = "change"


class RelationshipType(str, Enum):
    """Cardinality of a schema relationship."""

    ONE_TO_ONE = "one-to-one"
    ONE_TO_MANY = "one-to-many"
    MANY_TO_MANY = "many-to-many"


class ChartType(str, Enum):
    """Suggested visualization for a query result."""

    LINE = "line"
    BAR = "bar"
    PIE = "pie"
    TABLE = "table"
