"""Test factories for generating test data.

Re-exports all factories for convenient imports:
    from tests.factories import WorkflowNodeFactory, ConnectionConfigFactory, ...
"""

from tests.factories.workflow import (
    ActionConfigFactory,
    ConnectionConfigFactory,
    ExecuteWorkflowRequestFactory,
    WorkflowNodeFactory,
)

__all__ = [
    "ActionConfigFactory",
    "ConnectionConfigFactory",
    "ExecuteWorkflowRequestFactory",
    "WorkflowNodeFactory",
]
