"""Workflow execution engine.

Re-exports the public engine API:
    from src.analytics_agent.engine import WorkflowExecutor, order_nodes
"""

from src.analytics_agent.engine.collaborators import (
    ActionSink,
    ChatModel,
    DataSource,
    LanguageModel,
)
from src.analytics_agent.engine.errors import (
    ActionSinkError,
    CollaboratorError,
    CyclicWorkflowError,
    DataSourceError,
    InvalidStatusTransition,
    LanguageModelError,
    MissingConfigError,
    MissingContextError,
    MissingOutputError,
    UnknownNodeTypeError,
    WorkflowError,
    WorkflowValidationError,
)
from src.analytics_agent.engine.executor import WorkflowExecutor
from src.analytics_agent.engine.graph import execution_layers, order_nodes
from src.analytics_agent.engine.nodes import ContextKey, NodeExecutor, RunContext
from src.analytics_agent.engine.tracker import WORKFLOW_LOG_ID, ExecutionTracker

__all__ = [
    # Collaborators
    "ActionSink",
    "ChatModel",
    "DataSource",
    "LanguageModel",
    # Errors
    "ActionSinkError",
    "CollaboratorError",
    "CyclicWorkflowError",
    "DataSourceError",
    "InvalidStatusTransition",
    "LanguageModelError",
    "MissingConfigError",
    "MissingContextError",
    "MissingOutputError",
    "UnknownNodeTypeError",
    "WorkflowError",
    "WorkflowValidationError",
    # Engine
    "ContextKey",
    "ExecutionTracker",
    "NodeExecutor",
    "RunContext",
    "WORKFLOW_LOG_ID",
    "WorkflowExecutor",
    "execution_layers",
    "order_nodes",
]
