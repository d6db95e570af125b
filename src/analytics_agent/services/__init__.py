from src.analytics_agent.services.action_executor_service import ActionExecutorService
from src.analytics_agent.services.data_connector_service import DataConnectorService
from src.analytics_agent.services.openrouter_service import OpenRouterService
from src.analytics_agent.services.sql_agent_service import SqlAgentService

__all__ = ["ActionExecutorService", "DataConnectorService", "OpenRouterService", "SqlAgentService"]
