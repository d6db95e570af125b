"""FastAPI dependency injection definitions - Lobby Pattern.

Re-exports all dependencies.
"""

from src.analytics_agent.api.dependencies.services import (
    ActionSinkDep,
    DataConnectorDep,
    DefaultConnectionDep,
    LanguageModelDep,
    SqlAgentDep,
    WorkflowExecutorDep,
    close_service_clients,
    get_action_sink,
    get_data_connector,
    get_default_connection,
    get_language_model,
    get_sql_agent,
    get_workflow_executor,
)

__all__ = [
    "ActionSinkDep",
    "DataConnectorDep",
    "DefaultConnectionDep",
    "LanguageModelDep",
    "SqlAgentDep",
    "WorkflowExecutorDep",
    "close_service_clients",
    "get_action_sink",
    "get_data_connector",
    "get_default_connection",
    "get_language_model",
    "get_sql_agent",
    "get_workflow_executor",
]
