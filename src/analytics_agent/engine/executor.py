"""Workflow execution entry point."""

from collections.abc import Callable, Sequence
from datetime import datetime

from src.analytics_agent.core.logging import (
    bind_execution_context,
    clear_execution_context,
    get_logger,
)
from src.analytics_agent.engine.collaborators import ActionSink, DataSource, LanguageModel
from src.analytics_agent.engine.graph import execution_layers, order_nodes
from src.analytics_agent.engine.nodes import NodeExecutor, RunContext
from src.analytics_agent.engine.tracker import WORKFLOW_LOG_ID, ExecutionTracker
from src.analytics_agent.models.base import utc_now
from src.analytics_agent.schemas.workflow import WorkflowEdge, WorkflowExecution, WorkflowNode

logger = get_logger(__name__)


class WorkflowExecutor:
    """Runs workflow graphs against injected collaborators.

    The executor holds no per-run state: every call to :meth:`execute_workflow`
    gets its own tracker and run context, so concurrent runs are independent.
    """

    def __init__(
        self,
        data_source: DataSource,
        language_model: LanguageModel,
        action_sink: ActionSink,
        *,
        default_model: str = "anthropic/claude-3-sonnet",
        default_temperature: float = 0.7,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.data_source = data_source
        self.language_model = language_model
        self.action_sink = action_sink
        self.default_model = default_model
        self.default_temperature = default_temperature
        self._clock = clock

    async def execute_workflow(
        self,
        workflow_id: str,
        nodes: Sequence[WorkflowNode],
        edges: Sequence[WorkflowEdge],
        execution_id: str | None = None,
    ) -> WorkflowExecution:
        """Order and run a workflow, returning its execution record.

        Never raises for run failures: invalid graphs, invalid node
        configuration, collaborator errors and unexpected exceptions all
        produce an execution with ``status == failed``.
        """
        tracker = ExecutionTracker(workflow_id, execution_id=execution_id, clock=self._clock)
        tracker.start()
        bind_execution_context(tracker.execution.id, workflow_id)

        try:
            tracker.info(WORKFLOW_LOG_ID, "Workflow execution started")

            ordered = order_nodes(nodes, edges)
            layers = execution_layers(nodes, edges)
            tracker.info(
                WORKFLOW_LOG_ID,
                "Execution order: " + " → ".join(node.display_name for node in ordered),
                data={
                    "order": [node.id for node in ordered],
                    "layers": [[node.id for node in layer] for layer in layers],
                },
            )

            node_executor = NodeExecutor(
                self.data_source,
                self.language_model,
                self.action_sink,
                tracker,
                default_model=self.default_model,
                default_temperature=self.default_temperature,
                clock=self._clock,
            )
            context: RunContext = {}
            for node in ordered:
                await node_executor.execute_node(node, context)

            tracker.complete()
            tracker.info(WORKFLOW_LOG_ID, "Workflow execution completed successfully")
        except Exception as exc:
            message = str(exc) or exc.__class__.__name__
            if tracker.status.is_terminal:
                # Failure after the run was finalized; the status stays as recorded
                logger.exception("Error after workflow finalized", exc_info=exc)
            else:
                tracker.fail(message)
                tracker.error(WORKFLOW_LOG_ID, f"Workflow execution failed: {message}")
                logger.debug("Workflow failure detail", exc_info=exc)
        finally:
            clear_execution_context()

        return tracker.execution
