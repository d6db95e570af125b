"""Model exports - Lobby Pattern.

Import from here: `from src.analytics_agent.models import NodeType, CamelModel`
"""

from src.analytics_agent.models.base import CamelModel, utc_now
from src.analytics_agent.models.enums import (
    ActionType,
    ChartType,
    ConnectionType,
    ExecutionStatus,
    LogLevel,
    NodeType,
    QueryType,
    RelationshipType,
)

__all__ = [
    # Base
    "CamelModel",
    "utc_now",
    # Enums
    "ActionType",
    "ChartType",
    "ConnectionType",
    "ExecutionStatus",
    "LogLevel",
    "NodeType",
    "QueryType",
    "RelationshipType",
]
