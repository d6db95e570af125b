"""Workflow execution and per-step helper endpoints."""

from fastapi import APIRouter, HTTPException, Request, status

from src.analytics_agent.api.dependencies import (
    ActionSinkDep,
    DataConnectorDep,
    LanguageModelDep,
    WorkflowExecutorDep,
)
from src.analytics_agent.core.config import get_settings
from src.analytics_agent.core.exceptions import failure
from src.analytics_agent.core.logging import get_logger
from src.analytics_agent.core.rate_limit import limiter
from src.analytics_agent.core.shutdown import ShuttingDownError, run_tracker
from src.analytics_agent.engine import DataSourceError, LanguageModelError
from src.analytics_agent.engine.tracker import new_execution_id
from src.analytics_agent.models.enums import ActionType, ExecutionStatus
from src.analytics_agent.schemas.workflow import (
    CONFIG_REQUIRED_NODE_TYPES,
    ActionTestRequest,
    ActionTestResponse,
    ConnectionTestRequest,
    ConnectionTestResponse,
    ExecuteWorkflowRequest,
    ExecuteWorkflowResponse,
    ExecutionRead,
    GenerateQueryRequest,
    GenerateQueryResponse,
    InterpretSchemaRequest,
    InterpretSchemaResponse,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/workflow", tags=["workflow"])


@router.post(
    "/execute",
    response_model=ExecuteWorkflowResponse,
    responses={
        400: {"description": "Malformed workflow or nodes without configuration"},
        503: {"description": "Server is shutting down"},
    },
)
@limiter.limit(get_settings().workflow_rate_limit)
async def execute_workflow(
    request: Request,
    body: ExecuteWorkflowRequest,
    executor: WorkflowExecutorDep,
) -> ExecuteWorkflowResponse:
    """Run a workflow graph and return its execution record.

    Failed runs are still a 200 response: check ``success`` and
    ``execution.status``.
    """
    unconfigured = [
        {"id": node.id, "label": node.label}
        for node in body.nodes
        if node.type in CONFIG_REQUIRED_NODE_TYPES and not node.config
    ]
    if unconfigured:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "Some nodes are not configured", "unconfiguredNodes": unconfigured},
        )

    execution_id = new_execution_id()
    try:
        async with run_tracker.track_run(execution_id):
            execution = await executor.execute_workflow(
                body.workflow_id, body.nodes, body.edges, execution_id=execution_id
            )
    except ShuttingDownError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e)) from e

    logger.info(
        "Workflow run finished",
        execution_id=execution.id,
        workflow_id=body.workflow_id,
        status=execution.status.value,
    )
    return ExecuteWorkflowResponse(
        success=execution.status == ExecutionStatus.COMPLETED,
        execution=ExecutionRead.from_execution(execution),
    )


@router.post("/test-connection", response_model=ConnectionTestResponse)
async def test_connection(
    body: ConnectionTestRequest,
    data_source: DataConnectorDep,
) -> ConnectionTestResponse:
    """Check that a data source is reachable with the given credentials."""
    result = await data_source.test_connection(body.connection_config)
    if not result.success:
        raise failure(status.HTTP_400_BAD_REQUEST, result.message)

    return ConnectionTestResponse(
        success=True,
        message=result.message,
        connection_time=result.connection_time,
    )


@router.post(
    "/interpret-schema",
    response_model=InterpretSchemaResponse,
    responses={502: {"description": "Data source or language model request failed"}},
)
async def interpret_schema(
    body: InterpretSchemaRequest,
    data_source: DataConnectorDep,
    language_model: LanguageModelDep,
) -> InterpretSchemaResponse:
    """Fetch a data source schema and have the language model describe it."""
    settings = get_settings()
    model = body.model or settings.default_model
    temperature = (
        body.temperature if body.temperature is not None else settings.default_temperature
    )

    try:
        schema = await data_source.fetch_schema(body.connection_config)
        interpretation = await language_model.interpret_schema(
            schema.model_dump_json(by_alias=True, indent=2), model, temperature
        )
    except (DataSourceError, LanguageModelError) as e:
        logger.warning("Schema interpretation failed", error=str(e))
        raise failure(status.HTTP_502_BAD_GATEWAY, str(e)) from e

    return InterpretSchemaResponse(data_schema=schema, interpretation=interpretation, model=model)


@router.post(
    "/generate-query",
    response_model=GenerateQueryResponse,
    responses={502: {"description": "Language model request failed"}},
)
async def generate_query(
    body: GenerateQueryRequest,
    language_model: LanguageModelDep,
) -> GenerateQueryResponse:
    """Generate a monitoring query for a condition."""
    model = body.model or get_settings().default_model
    try:
        result = await language_model.generate_monitor_query(
            body.entity_description, body.condition, model
        )
    except LanguageModelError as e:
        logger.warning("Query generation failed", error=str(e))
        raise failure(status.HTTP_502_BAD_GATEWAY, str(e)) from e

    return GenerateQueryResponse(query=result.query, explanation=result.explanation, model=model)


@router.post("/test-action", response_model=ActionTestResponse)
async def test_action(
    body: ActionTestRequest,
    action_sink: ActionSinkDep,
) -> ActionTestResponse:
    """Deliver a sample notification through the configured action."""
    config = body.action_config
    if config.type == ActionType.SLACK and not config.slack_webhook:
        raise failure(status.HTTP_400_BAD_REQUEST, "Slack webhook URL is required")
    if config.type == ActionType.EMAIL and not config.email_recipients:
        raise failure(status.HTTP_400_BAD_REQUEST, "Email recipients are required")
    if config.type == ActionType.WEBHOOK and not config.webhook_url:
        raise failure(status.HTTP_400_BAD_REQUEST, "Webhook URL is required")

    result = await action_sink.test_action(config)
    if not result.success:
        raise failure(status.HTTP_400_BAD_REQUEST, result.error or result.message)

    return ActionTestResponse(success=True, message=result.message, timestamp=result.timestamp)
