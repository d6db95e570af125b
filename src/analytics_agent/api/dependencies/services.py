"""Collaborator and executor factory dependencies.

The HTTP clients are created lazily on first use and reused for the life of
the process; ``close_service_clients`` releases them during shutdown. Tests
swap any of them through ``app.dependency_overrides``.
"""

from typing import Annotated

from fastapi import Depends

from src.analytics_agent.core.config import get_settings
from src.analytics_agent.core.logging import get_logger
from src.analytics_agent.engine import WorkflowExecutor
from src.analytics_agent.models.enums import ConnectionType
from src.analytics_agent.schemas.datasource import ConnectionConfig
from src.analytics_agent.services.action_executor_service import ActionExecutorService
from src.analytics_agent.services.data_connector_service import DataConnectorService
from src.analytics_agent.services.openrouter_service import OpenRouterService
from src.analytics_agent.services.sql_agent_service import SqlAgentService

logger = get_logger(__name__)

_data_connector: DataConnectorService | None = None
_language_model: OpenRouterService | None = None
_action_sink: ActionExecutorService | None = None


def get_data_connector() -> DataConnectorService:
    """Get the shared data source client."""
    global _data_connector

    if _data_connector is None:
        settings = get_settings()
        _data_connector = DataConnectorService(timeout=settings.datasource_timeout_seconds)
    return _data_connector


def get_language_model() -> OpenRouterService:
    """Get the shared OpenRouter client."""
    global _language_model

    if _language_model is None:
        settings = get_settings()
        if not settings.openrouter_api_key:
            logger.warning("OPENROUTER_API_KEY not set - language model calls will fail")
        _language_model = OpenRouterService(
            api_key=settings.openrouter_api_key,
            base_url=settings.openrouter_base_url,
            app_url=settings.openrouter_app_url,
            app_name=settings.openrouter_app_name,
            default_model=settings.default_model,
            timeout=settings.llm_timeout_seconds,
        )
    return _language_model


def get_action_sink() -> ActionExecutorService:
    """Get the shared action sink."""
    global _action_sink

    if _action_sink is None:
        settings = get_settings()
        _action_sink = ActionExecutorService(timeout=settings.action_timeout_seconds)
    return _action_sink


DataConnectorDep = Annotated[DataConnectorService, Depends(get_data_connector)]
LanguageModelDep = Annotated[OpenRouterService, Depends(get_language_model)]
ActionSinkDep = Annotated[ActionExecutorService, Depends(get_action_sink)]


def get_workflow_executor(
    data_source: DataConnectorDep,
    language_model: LanguageModelDep,
    action_sink: ActionSinkDep,
) -> WorkflowExecutor:
    """Get a workflow executor wired to the shared collaborators."""
    settings = get_settings()
    return WorkflowExecutor(
        data_source,
        language_model,
        action_sink,
        default_model=settings.default_model,
        default_temperature=settings.default_temperature,
    )


WorkflowExecutorDep = Annotated[WorkflowExecutor, Depends(get_workflow_executor)]


def get_default_connection() -> ConnectionConfig | None:
    """Get the Supabase project configured for the query endpoints, if any."""
    settings = get_settings()
    if not (settings.supabase_url and settings.supabase_anon_key):
        return None
    return ConnectionConfig(
        type=ConnectionType.SUPABASE,
        endpoint=settings.supabase_url,
        api_key=settings.supabase_anon_key,
    )


DefaultConnectionDep = Annotated[ConnectionConfig | None, Depends(get_default_connection)]


def get_sql_agent(
    data_source: DataConnectorDep,
    language_model: LanguageModelDep,
) -> SqlAgentService:
    """Get a SQL agent wired to the shared collaborators."""
    return SqlAgentService(data_source, language_model, default_model=get_settings().default_model)


SqlAgentDep = Annotated[SqlAgentService, Depends(get_sql_agent)]


async def close_service_clients() -> None:
    """Close the shared HTTP clients.

    Should be called during application shutdown.
    """
    global _data_connector, _language_model, _action_sink

    for service in (_data_connector, _language_model, _action_sink):
        if service is not None:
            await service.aclose()
    _data_connector = None
    _language_model = None
    _action_sink = None
    logger.info("Service clients closed")
