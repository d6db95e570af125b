"""Per-node execution: configuration validation, dispatch and context hand-off.

Nodes exchange data through a shared run context (a blackboard). Each node
kind declares the context keys it needs and the keys it writes. The needs are
checked before a handler runs, so a node placed before its producer fails with
a descriptive message instead of a ``KeyError``. The writes are checked after
it returns, so a collaborator that hands back nothing fails its own node.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError
from pydantic_core import ErrorDetails

from src.analytics_agent.engine.collaborators import ActionSink, DataSource, LanguageModel
from src.analytics_agent.engine.errors import (
    CollaboratorError,
    MissingConfigError,
    MissingContextError,
    MissingOutputError,
    UnknownNodeTypeError,
    WorkflowError,
    WorkflowValidationError,
)
from src.analytics_agent.engine.tracker import ExecutionTracker
from src.analytics_agent.models.base import utc_now
from src.analytics_agent.models.enums import NodeType
from src.analytics_agent.schemas.workflow import (
    ActionExecutorConfig,
    DataConnectorConfig,
    MonitorBuilderConfig,
    NodeConfig,
    SchemaInterpreterConfig,
    WorkflowNode,
)

T = TypeVar("T")

RunContext = dict[str, Any]


class ContextKey(str, Enum):
    """Well-known run context keys."""

    CONNECTION_CONFIG = "connectionConfig"
    SCHEMA = "schema"
    SCHEMA_INTERPRETATION = "schemaInterpretation"
    MONITOR_QUERY = "monitorQuery"
    MONITOR_EXPLANATION = "monitorExplanation"
    MONITOR_RESULTS = "monitorResults"
    ACTION_RESULT = "actionResult"


@dataclass(frozen=True)
class ContextRequirement:
    key: ContextKey
    message: str


@dataclass(frozen=True)
class NodeContract:
    requires: tuple[ContextRequirement, ...] = ()
    produces: tuple[ContextKey, ...] = ()
    # Written only on some paths, so not checked after the handler
    may_produce: tuple[ContextKey, ...] = ()


NODE_CONTRACTS: dict[NodeType, NodeContract] = {
    NodeType.DATA_CONNECTOR: NodeContract(
        produces=(ContextKey.CONNECTION_CONFIG, ContextKey.SCHEMA),
    ),
    NodeType.SCHEMA_INTERPRETER: NodeContract(
        requires=(
            ContextRequirement(
                ContextKey.SCHEMA, "No schema available. Connect a data source first."
            ),
        ),
        produces=(ContextKey.SCHEMA_INTERPRETATION,),
    ),
    NodeType.MONITOR_BUILDER: NodeContract(
        requires=(
            ContextRequirement(
                ContextKey.SCHEMA_INTERPRETATION, "No schema interpretation available"
            ),
        ),
        produces=(ContextKey.MONITOR_QUERY, ContextKey.MONITOR_EXPLANATION),
        # Results only when a connection is present
        may_produce=(ContextKey.MONITOR_RESULTS,),
    ),
    NodeType.ACTION_EXECUTOR: NodeContract(
        produces=(ContextKey.ACTION_RESULT,),
    ),
}

_node_config_adapter: TypeAdapter[NodeConfig] = TypeAdapter(NodeConfig)

# Validation error types that mean "field absent or empty"
_MISSING_ERROR_TYPES = frozenset({"missing", "string_too_short"})

_CONFIG_MODELS: dict[NodeType, type[BaseModel]] = {
    NodeType.DATA_CONNECTOR: DataConnectorConfig,
    NodeType.SCHEMA_INTERPRETER: SchemaInterpreterConfig,
    NodeType.MONITOR_BUILDER: MonitorBuilderConfig,
    NodeType.ACTION_EXECUTOR: ActionExecutorConfig,
}


def resolve_node_type(node: WorkflowNode) -> NodeType:
    """Map ``node.type`` to an executable kind or raise :class:`UnknownNodeTypeError`."""
    try:
        node_type = NodeType(node.type)
    except ValueError:
        raise UnknownNodeTypeError(node.type) from None
    if node_type not in NODE_CONTRACTS:
        raise UnknownNodeTypeError(node.type)
    return node_type


def _is_absent(node_type: NodeType, error: ErrorDetails) -> bool:
    """True when ``error`` reports a required field as empty, missing or null."""
    if error["type"] in _MISSING_ERROR_TYPES:
        return True
    # loc is (kind, field) for top-level config fields
    if len(error["loc"]) != 2 or "input" not in error or error["input"] is not None:
        return False
    field_name = error["loc"][-1]
    return any(
        field.is_required() and field_name in (name, field.alias)
        for name, field in _CONFIG_MODELS[node_type].model_fields.items()
    )


def parse_node_config(node_type: NodeType, node: WorkflowNode) -> NodeConfig:
    """Validate ``node.config`` against the configuration model of its kind."""
    try:
        return _node_config_adapter.validate_python({**node.config, "kind": node_type.value})
    except ValidationError as exc:
        errors = exc.errors()
        for error in errors:
            if error["loc"] and _is_absent(node_type, error):
                raise MissingConfigError(str(error["loc"][-1]), node.id) from exc
        first = errors[0]
        field = ".".join(str(part) for part in first["loc"][1:]) or "config"
        raise WorkflowValidationError(
            f"Invalid {node_type.value} configuration on node {node.display_name}: "
            f"{field}: {first['msg']}"
        ) from exc


class NodeExecutor:
    """Runs single nodes of one workflow execution.

    One instance per run: it writes to that run's tracker and stamps action
    payloads with that run's workflow id.
    """

    def __init__(
        self,
        data_source: DataSource,
        language_model: LanguageModel,
        action_sink: ActionSink,
        tracker: ExecutionTracker,
        *,
        default_model: str,
        default_temperature: float,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._data_source = data_source
        self._language_model = language_model
        self._action_sink = action_sink
        self._tracker = tracker
        self._default_model = default_model
        self._default_temperature = default_temperature
        self._clock = clock
        self._handlers: dict[
            NodeType, Callable[[WorkflowNode, Any, RunContext], Awaitable[None]]
        ] = {
            NodeType.DATA_CONNECTOR: self._execute_data_connector,
            NodeType.SCHEMA_INTERPRETER: self._execute_schema_interpreter,
            NodeType.MONITOR_BUILDER: self._execute_monitor_builder,
            NodeType.ACTION_EXECUTOR: self._execute_action_executor,
        }

    async def execute_node(self, node: WorkflowNode, context: RunContext) -> None:
        """Execute one node, reading from and writing to ``context``.

        Raises:
            WorkflowError: on any failure. Nothing is retried.
        """
        self._tracker.info(node.id, f"Executing node: {node.display_name}")
        try:
            node_type = resolve_node_type(node)
            config = parse_node_config(node_type, node)
            contract = NODE_CONTRACTS[node_type]
            for requirement in contract.requires:
                if context.get(requirement.key) is None:
                    raise MissingContextError(requirement.key.value, requirement.message)
            await self._handlers[node_type](node, config, context)
            missing = [key.value for key in contract.produces if context.get(key) is None]
            if missing:
                raise MissingOutputError(node.id, missing)
        except Exception as exc:
            self._tracker.error(node.id, f"Node execution failed: {exc}")
            raise

        self._tracker.info(node.id, "Node completed successfully")

    async def _call(self, collaborator: str, node: WorkflowNode, awaitable: Awaitable[T]) -> T:
        try:
            return await awaitable
        except WorkflowError:
            raise
        except Exception as exc:
            raise CollaboratorError(
                collaborator,
                f"{collaborator} call failed in node {node.display_name}: {exc}",
                node_id=node.id,
            ) from exc

    async def _execute_data_connector(
        self, node: WorkflowNode, config: DataConnectorConfig, context: RunContext
    ) -> None:
        connection = config.to_connection_config()

        result = await self._call(
            "data source", node, self._data_source.test_connection(connection)
        )
        if not result.success:
            raise CollaboratorError(
                "data source", f"Connection failed: {result.message}", node_id=node.id
            )

        schema = await self._call("data source", node, self._data_source.fetch_schema(connection))

        context[ContextKey.CONNECTION_CONFIG] = connection
        context[ContextKey.SCHEMA] = schema

        self._tracker.info(
            node.id,
            f"Connected to {connection.type.value}, found {len(schema.tables)} tables",
        )

    async def _execute_schema_interpreter(
        self, node: WorkflowNode, config: SchemaInterpreterConfig, context: RunContext
    ) -> None:
        model = config.model or self._default_model
        temperature = (
            config.temperature if config.temperature is not None else self._default_temperature
        )
        schema_json = context[ContextKey.SCHEMA].model_dump_json(by_alias=True, indent=2)

        interpretation = await self._call(
            "language model",
            node,
            self._language_model.interpret_schema(schema_json, model, temperature),
        )
        context[ContextKey.SCHEMA_INTERPRETATION] = interpretation

        self._tracker.info(node.id, f"Schema interpreted using {model}")

    async def _execute_monitor_builder(
        self, node: WorkflowNode, config: MonitorBuilderConfig, context: RunContext
    ) -> None:
        model = config.model or self._default_model

        monitor = await self._call(
            "language model",
            node,
            self._language_model.generate_monitor_query(
                context[ContextKey.SCHEMA_INTERPRETATION], config.condition, model
            ),
        )
        context[ContextKey.MONITOR_QUERY] = monitor.query
        context[ContextKey.MONITOR_EXPLANATION] = monitor.explanation

        connection = context.get(ContextKey.CONNECTION_CONFIG)
        if connection is None:
            self._tracker.warn(
                node.id,
                "No data connection in context, monitor built but not executed",
                data={"query": monitor.query},
            )
            return

        rows = await self._call(
            "data source", node, self._data_source.execute_query(connection, monitor.query)
        )
        context[ContextKey.MONITOR_RESULTS] = rows

        self._tracker.info(node.id, f"Monitor executed: {monitor.explanation}")
        self._tracker.info(node.id, f"Monitor returned {len(rows)} rows", data={"rows": rows[:5]})

    async def _execute_action_executor(
        self, node: WorkflowNode, config: ActionExecutorConfig, context: RunContext
    ) -> None:
        payload = {
            "condition": context.get(ContextKey.MONITOR_QUERY) or "Unknown condition",
            "results": context.get(ContextKey.MONITOR_RESULTS) or [],
            "timestamp": self._clock().isoformat(),
            "workflow": self._tracker.execution.workflow_id,
        }

        result = await self._call(
            "action sink", node, self._action_sink.execute(config.to_action_config(), payload)
        )
        if not result.success:
            raise CollaboratorError(
                "action sink",
                f"Action failed: {result.error or result.message}",
                node_id=node.id,
            )
        context[ContextKey.ACTION_RESULT] = result

        self._tracker.info(node.id, f"Action executed: {result.message}")
