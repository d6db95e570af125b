"""Tests for single-node execution and the run context contract."""

import pytest

from src.analytics_agent.engine.errors import (
    CollaboratorError,
    MissingConfigError,
    MissingContextError,
    MissingOutputError,
    UnknownNodeTypeError,
    WorkflowValidationError,
)
from src.analytics_agent.engine.nodes import (
    NODE_CONTRACTS,
    ContextKey,
    NodeExecutor,
    parse_node_config,
    resolve_node_type,
)
from src.analytics_agent.engine.tracker import ExecutionTracker
from src.analytics_agent.models.enums import LogLevel, NodeType
from src.analytics_agent.schemas.datasource import ConnectionConfig
from src.analytics_agent.schemas.workflow import (
    ActionExecutorConfig,
    DataConnectorConfig,
    SchemaInterpreterConfig,
    WorkflowNode,
)
from tests.helpers import (
    SAMPLE_SCHEMA,
    FakeActionSink,
    FakeDataSource,
    FakeLanguageModel,
    action_node,
    connector_node,
    interpreter_node,
    monitor_node,
)

pytestmark = pytest.mark.unit


@pytest.fixture
def tracker() -> ExecutionTracker:
    tracker = ExecutionTracker("wf-nodes")
    tracker.start()
    return tracker


@pytest.fixture
def executor(
    data_source: FakeDataSource,
    language_model: FakeLanguageModel,
    action_sink: FakeActionSink,
    tracker: ExecutionTracker,
) -> NodeExecutor:
    return NodeExecutor(
        data_source,
        language_model,
        action_sink,
        tracker,
        default_model="test/model",
        default_temperature=0.7,
    )


def _connection() -> ConnectionConfig:
    return ConnectionConfig(type="supabase", endpoint="https://db.example.com", api_key="k")


class TestConfigParsing:
    def test_connector_config_from_camel_case(self):
        config = parse_node_config(NodeType.DATA_CONNECTOR, connector_node(database="main"))

        assert isinstance(config, DataConnectorConfig)
        assert config.endpoint == "https://db.example.com"
        assert config.to_connection_config().database == "main"

    def test_interpreter_needs_no_config(self):
        config = parse_node_config(NodeType.SCHEMA_INTERPRETER, interpreter_node())

        assert isinstance(config, SchemaInterpreterConfig)
        assert config.model is None

    def test_empty_connector_config_names_a_required_field(self):
        node = WorkflowNode(id="c", type="data-connector", config={})

        with pytest.raises(MissingConfigError, match="is required") as exc_info:
            parse_node_config(NodeType.DATA_CONNECTOR, node)

        assert exc_info.value.field in {"connectionType", "endpoint", "apiKey"}
        assert exc_info.value.node_id == "c"

    def test_blank_endpoint_is_missing(self):
        node = connector_node(endpoint="")

        with pytest.raises(MissingConfigError, match="endpoint is required"):
            parse_node_config(NodeType.DATA_CONNECTOR, node)

    def test_missing_condition(self):
        node = WorkflowNode(id="m", type="monitor-builder", config={"model": "x"})

        with pytest.raises(MissingConfigError, match="condition is required"):
            parse_node_config(NodeType.MONITOR_BUILDER, node)

    def test_missing_action_type(self):
        node = WorkflowNode(id="a", type="action-executor", config={"message": "hi"})

        with pytest.raises(MissingConfigError, match="actionType is required"):
            parse_node_config(NodeType.ACTION_EXECUTOR, node)

    @pytest.mark.parametrize(
        ("node", "node_type", "field"),
        [
            (connector_node(apiKey=None), NodeType.DATA_CONNECTOR, "apiKey"),
            (connector_node(endpoint=None), NodeType.DATA_CONNECTOR, "endpoint"),
            (connector_node(connectionType=None), NodeType.DATA_CONNECTOR, "connectionType"),
            (monitor_node(condition=None), NodeType.MONITOR_BUILDER, "condition"),
            (action_node(actionType=None), NodeType.ACTION_EXECUTOR, "actionType"),
        ],
    )
    def test_null_required_field_is_missing(
        self, node: WorkflowNode, node_type: NodeType, field: str
    ):
        with pytest.raises(MissingConfigError, match=f"{field} is required") as exc_info:
            parse_node_config(node_type, node)

        assert exc_info.value.field == field

    def test_null_defaulted_field_is_a_validation_error(self):
        node = action_node(webhookMethod=None)

        with pytest.raises(WorkflowValidationError, match="webhookMethod") as exc_info:
            parse_node_config(NodeType.ACTION_EXECUTOR, node)

        assert not isinstance(exc_info.value, MissingConfigError)

    async def test_null_condition_fails_the_run_with_required_message(
        self, executor: NodeExecutor, tracker: ExecutionTracker
    ):
        with pytest.raises(MissingConfigError):
            await executor.execute_node(monitor_node(condition=None), {})

        assert tracker.execution.logs[-1].message == (
            "Node execution failed: condition is required"
        )

    def test_invalid_value_is_a_validation_error(self):
        node = connector_node(connectionType="oracle")

        with pytest.raises(WorkflowValidationError, match="connectionType") as exc_info:
            parse_node_config(NodeType.DATA_CONNECTOR, node)

        assert not isinstance(exc_info.value, MissingConfigError)

    def test_action_config_defaults_to_post(self):
        config = parse_node_config(NodeType.ACTION_EXECUTOR, action_node())

        assert isinstance(config, ActionExecutorConfig)
        assert config.to_action_config().webhook_method == "POST"

    def test_secrets_are_hidden_from_repr(self):
        config = parse_node_config(NodeType.DATA_CONNECTOR, connector_node())

        assert "secret" not in repr(config)
        assert "secret" not in repr(config.to_connection_config())


class TestResolveNodeType:
    @pytest.mark.parametrize("node_type", ["chat-interface", "spreadsheet", ""])
    def test_non_executable_types_are_rejected(self, node_type: str):
        node = WorkflowNode(id="x", type=node_type)

        with pytest.raises(UnknownNodeTypeError, match=f"Unknown node type: {node_type}"):
            resolve_node_type(node)

    def test_every_executable_kind_has_a_contract(self):
        executable = {t for t in NodeType if t is not NodeType.CHAT_INTERFACE}

        assert set(NODE_CONTRACTS) == executable

    def test_optional_outputs_are_not_also_guaranteed(self):
        for contract in NODE_CONTRACTS.values():
            assert not set(contract.produces) & set(contract.may_produce)


class TestCanvasNodeShape:
    def test_canvas_node_is_flattened(self):
        node = WorkflowNode.model_validate(
            {
                "id": "n1",
                "type": "monitor-builder",
                "position": {"x": 10, "y": 20},
                "data": {"label": "Signups", "config": {"condition": "drop"}, "status": "idle"},
            }
        )

        assert node.label == "Signups"
        assert node.config == {"condition": "drop"}
        assert node.display_name == "Signups"

    def test_display_name_falls_back_to_id(self):
        assert WorkflowNode(id="n1", type="monitor-builder").display_name == "n1"


class TestExecuteNode:
    async def test_connector_stores_connection_and_schema(
        self, executor: NodeExecutor, tracker: ExecutionTracker, data_source: FakeDataSource
    ):
        context: dict = {}

        await executor.execute_node(connector_node(), context)

        assert context[ContextKey.SCHEMA] == SAMPLE_SCHEMA
        assert context[ContextKey.CONNECTION_CONFIG].endpoint == "https://db.example.com"
        assert [name for name, _ in data_source.calls] == ["test_connection", "fetch_schema"]
        messages = [entry.message for entry in tracker.execution.logs]
        assert messages[0] == "Executing node: Data Connector"
        assert "Connected to supabase, found 2 tables" in messages
        assert messages[-1] == "Node completed successfully"

    async def test_failed_connection_test_fails_the_node(self, tracker: ExecutionTracker):
        executor = NodeExecutor(
            FakeDataSource(connection_ok=False),
            FakeLanguageModel(),
            FakeActionSink(),
            tracker,
            default_model="m",
            default_temperature=0.7,
        )

        with pytest.raises(CollaboratorError, match="Connection failed: connection refused"):
            await executor.execute_node(connector_node(), {})

        last = tracker.execution.logs[-1]
        assert last.level == LogLevel.ERROR
        assert last.node_id == "connector"
        assert last.message.startswith("Node execution failed")

    async def test_interpreter_without_schema(self, executor: NodeExecutor):
        with pytest.raises(
            MissingContextError, match="No schema available. Connect a data source first."
        ):
            await executor.execute_node(interpreter_node(), {})

    async def test_interpreter_without_output_fails(self, tracker: ExecutionTracker):
        class SilentModel(FakeLanguageModel):
            async def interpret_schema(self, schema_json, model, temperature):
                return None

        executor = NodeExecutor(
            FakeDataSource(),
            SilentModel(),
            FakeActionSink(),
            tracker,
            default_model="test/model",
            default_temperature=0.7,
        )

        with pytest.raises(
            MissingOutputError, match="Node interpreter produced no value for: schemaInterpretation"
        ):
            await executor.execute_node(interpreter_node(), {ContextKey.SCHEMA: SAMPLE_SCHEMA})

        assert tracker.execution.logs[-1].level == LogLevel.ERROR

    async def test_interpreter_uses_defaults(
        self, executor: NodeExecutor, language_model: FakeLanguageModel
    ):
        context = {ContextKey.SCHEMA: SAMPLE_SCHEMA}

        await executor.execute_node(interpreter_node(), context)

        assert context[ContextKey.SCHEMA_INTERPRETATION] == "Users sign up and emit events."
        _, call = language_model.calls[0]
        assert call["model"] == "test/model"
        assert call["temperature"] == 0.7
        assert '"tables"' in call["schema_json"]
        assert '"primaryKey": true' in call["schema_json"]

    async def test_interpreter_config_overrides_defaults(
        self, executor: NodeExecutor, language_model: FakeLanguageModel
    ):
        node = interpreter_node(model="openai/gpt-4o", temperature=0.2)

        await executor.execute_node(node, {ContextKey.SCHEMA: SAMPLE_SCHEMA})

        _, call = language_model.calls[0]
        assert call["model"] == "openai/gpt-4o"
        assert call["temperature"] == 0.2

    async def test_monitor_without_interpretation(self, executor: NodeExecutor):
        with pytest.raises(MissingContextError, match="No schema interpretation available"):
            await executor.execute_node(monitor_node(), {ContextKey.SCHEMA: SAMPLE_SCHEMA})

    async def test_monitor_runs_query_when_connected(
        self, executor: NodeExecutor, data_source: FakeDataSource
    ):
        context = {
            ContextKey.SCHEMA_INTERPRETATION: "interpretation",
            ContextKey.CONNECTION_CONFIG: _connection(),
        }

        await executor.execute_node(monitor_node(), context)

        assert context[ContextKey.MONITOR_QUERY] == "SELECT count(*) FROM users"
        assert context[ContextKey.MONITOR_EXPLANATION] == "Checks: daily signups drop below 10"
        assert context[ContextKey.MONITOR_RESULTS] == [{"count": 3}]
        assert data_source.calls == [("execute_query", "SELECT count(*) FROM users")]

    async def test_monitor_without_connection_warns_and_continues(
        self, executor: NodeExecutor, tracker: ExecutionTracker, data_source: FakeDataSource
    ):
        context = {ContextKey.SCHEMA_INTERPRETATION: "interpretation"}

        await executor.execute_node(monitor_node(), context)

        assert context[ContextKey.MONITOR_QUERY] == "SELECT count(*) FROM users"
        assert ContextKey.MONITOR_RESULTS not in context
        assert data_source.calls == []
        assert any(entry.level == LogLevel.WARN for entry in tracker.execution.logs)
        assert tracker.execution.logs[-1].message == "Node completed successfully"

    async def test_action_payload(self, executor: NodeExecutor, action_sink: FakeActionSink):
        context = {
            ContextKey.MONITOR_QUERY: "SELECT 1",
            ContextKey.MONITOR_RESULTS: [{"count": 1}],
        }

        await executor.execute_node(action_node(), context)

        config, payload = action_sink.calls[0]
        assert config.type == "slack"
        assert payload["condition"] == "SELECT 1"
        assert payload["results"] == [{"count": 1}]
        assert payload["workflow"] == "wf-nodes"
        assert "T" in payload["timestamp"]
        assert context[ContextKey.ACTION_RESULT].success is True

    async def test_action_defaults_without_monitor(
        self, executor: NodeExecutor, action_sink: FakeActionSink
    ):
        await executor.execute_node(action_node(), {})

        _, payload = action_sink.calls[0]
        assert payload["condition"] == "Unknown condition"
        assert payload["results"] == []

    async def test_unsuccessful_action_fails_the_node(self, tracker: ExecutionTracker):
        executor = NodeExecutor(
            FakeDataSource(),
            FakeLanguageModel(),
            FakeActionSink(success=False),
            tracker,
            default_model="m",
            default_temperature=0.7,
        )

        with pytest.raises(CollaboratorError, match="Action failed: HTTP 500"):
            await executor.execute_node(action_node(), {})

    async def test_collaborator_exceptions_are_wrapped(self, tracker: ExecutionTracker):
        executor = NodeExecutor(
            FakeDataSource(error=RuntimeError("socket closed")),
            FakeLanguageModel(),
            FakeActionSink(),
            tracker,
            default_model="m",
            default_temperature=0.7,
        )

        with pytest.raises(CollaboratorError, match="socket closed") as exc_info:
            await executor.execute_node(connector_node(), {})

        assert exc_info.value.collaborator == "data source"
        assert exc_info.value.node_id == "connector"
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    async def test_config_checked_before_any_side_effect(
        self, executor: NodeExecutor, data_source: FakeDataSource
    ):
        node = WorkflowNode(id="c", type="data-connector", config={"endpoint": "x"})

        with pytest.raises(MissingConfigError):
            await executor.execute_node(node, {})

        assert data_source.calls == []

    async def test_same_context_and_config_give_same_mutations(self, executor: NodeExecutor):
        first = {ContextKey.SCHEMA: SAMPLE_SCHEMA}
        second = {ContextKey.SCHEMA: SAMPLE_SCHEMA}

        await executor.execute_node(interpreter_node(), first)
        await executor.execute_node(interpreter_node(), second)

        assert first == second

    async def test_context_keys_are_plain_strings(self, executor: NodeExecutor):
        context: dict = {}

        await executor.execute_node(connector_node(), context)

        assert "schema" in context
        assert "connectionConfig" in context
