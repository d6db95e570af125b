"""Natural-language questions and schema overview for a data source."""

from fastapi import APIRouter, Request, status

from src.analytics_agent.api.dependencies import DefaultConnectionDep, SqlAgentDep
from src.analytics_agent.core.config import get_settings
from src.analytics_agent.core.exceptions import failure
from src.analytics_agent.core.logging import get_logger
from src.analytics_agent.core.rate_limit import limiter
from src.analytics_agent.engine import DataSourceError, LanguageModelError
from src.analytics_agent.schemas.query import QueryRequest, QueryResponse, SchemaOverview

logger = get_logger(__name__)

router = APIRouter(tags=["query"])

NO_DATA_SOURCE = "No data source configured"


@router.post(
    "/query",
    response_model=QueryResponse,
    responses={
        400: {"description": "Missing question or no data source"},
        502: {"description": "Data source or language model request failed"},
    },
)
@limiter.limit(get_settings().query_rate_limit)
async def query(
    request: Request,
    body: QueryRequest,
    agent: SqlAgentDep,
    default_connection: DefaultConnectionDep,
) -> QueryResponse:
    """Answer a question with generated SQL, its rows and a chart suggestion.

    Uses ``connectionConfig`` when given, otherwise the configured Supabase
    project. Follow-up suggestions are best effort: if the model fails on
    them, the answer is still returned with an empty list.
    """
    connection = body.connection_config or default_connection
    if connection is None:
        raise failure(status.HTTP_400_BAD_REQUEST, NO_DATA_SOURCE)

    try:
        result = await agent.answer(
            body.question, connection, context=body.context, model=body.model
        )
    except (DataSourceError, LanguageModelError) as e:
        logger.warning("Question could not be answered", error=str(e))
        raise failure(status.HTTP_502_BAD_GATEWAY, str(e)) from e

    try:
        follow_ups = await agent.suggest_follow_ups(body.question, result, model=body.model)
    except LanguageModelError as e:
        logger.warning("Follow-up suggestions failed", error=str(e))
        follow_ups = []

    return QueryResponse(result=result, follow_up_suggestions=follow_ups)


@router.get(
    "/schema",
    response_model=SchemaOverview,
    responses={
        400: {"description": "No data source configured"},
        502: {"description": "Data source request failed"},
    },
)
async def get_schema(
    agent: SqlAgentDep,
    default_connection: DefaultConnectionDep,
) -> SchemaOverview:
    """Tables of the configured data source, common metrics and prompt context."""
    if default_connection is None:
        raise failure(status.HTTP_400_BAD_REQUEST, NO_DATA_SOURCE)

    try:
        return await agent.describe_schema(default_connection)
    except DataSourceError as e:
        logger.warning("Schema overview failed", error=str(e))
        raise failure(status.HTTP_502_BAD_GATEWAY, str(e)) from e
