"""Natural-language questions answered with generated SQL."""

import json
import re
from typing import Any

from src.analytics_agent.core.logging import get_logger
from src.analytics_agent.engine.collaborators import ChatModel, DataSource
from src.analytics_agent.engine.errors import LanguageModelError
from src.analytics_agent.models.enums import ChartType
from src.analytics_agent.schemas.datasource import ConnectionConfig, DataSchema, QueryRows
from src.analytics_agent.schemas.llm import ChatMessage, ChatRequest
from src.analytics_agent.schemas.query import (
    MetricDefinition,
    QueryResult,
    SchemaOverview,
    SqlAnswer,
)

logger = get_logger(__name__)

SQL_AGENT_PROMPT = """You are a SQL expert helping product managers analyze their data.

Generate a SQL query that answers the user's question. Follow these guidelines:
1. Use proper PostgreSQL syntax
2. Include appropriate WHERE clauses for time ranges when relevant
3. Use meaningful column aliases
4. Optimize for readability and performance
5. If the question asks for trends, include time grouping (daily, weekly, monthly)

Also suggest the best chart type for visualizing this data:
- 'line' for trends over time
- 'bar' for comparisons between categories
- 'pie' for proportions/percentages
- 'table' for detailed data listings

Response format:
SQL: [your sql query]
CHART_TYPE: [suggested chart type]
EXPLANATION: [brief explanation of what the query does and insights it provides]"""

FOLLOW_UP_PROMPT = """Based on a product manager's question and the results of the SQL query \
that answered it, suggest 3 relevant follow-up questions they might ask.
Reply with one question per line and nothing else."""

COMMON_METRICS: list[MetricDefinition] = [
    MetricDefinition(
        name="activation_rate",
        description="Percentage of users who completed key activation events",
        sql_template=(
            "SELECT COUNT(DISTINCT activated_users) * 100.0 / COUNT(DISTINCT total_users) "
            "as activation_rate FROM users"
        ),
        category="engagement",
    ),
    MetricDefinition(
        name="daily_active_users",
        description="Number of unique users active in the last 24 hours",
        sql_template=(
            "SELECT COUNT(DISTINCT user_id) as dau FROM events "
            "WHERE created_at >= NOW() - INTERVAL '1 day'"
        ),
        category="engagement",
    ),
    MetricDefinition(
        name="retention_rate",
        description="Percentage of users who return after initial signup",
        sql_template=(
            "SELECT cohort_week, COUNT(*) as retained_users FROM user_cohorts "
            "WHERE weeks_since_signup = 1 GROUP BY cohort_week"
        ),
        category="retention",
    ),
]

_SQL_PATTERN = re.compile(r"SQL:\s*(?P<sql>.*?)(?=CHART_TYPE:|EXPLANATION:|$)", re.DOTALL)
_CHART_TYPE_PATTERN = re.compile(r"CHART_TYPE:\s*\[?\s*(?P<chart>line|bar|pie|table)\b", re.I)
_EXPLANATION_PATTERN = re.compile(r"EXPLANATION:\s*(?P<explanation>.*)$", re.DOTALL)
_SQL_FENCE_PATTERN = re.compile(r"^```(?:sql)?\s*(?P<body>.*?)\s*```$", re.DOTALL | re.I)
_LIST_MARKER_PATTERN = re.compile(r"^(?:\d+[.)]|[-*])\s*")

_TIME_KEY_HINTS = ("date", "time", "day")


def parse_sql_answer(content: str) -> SqlAnswer:
    """Split a ``SQL: / CHART_TYPE: / EXPLANATION:`` reply into its parts.

    The SQL may span several lines or sit in a fenced code block. A missing
    or unknown chart type means a table.
    """
    sql_match = _SQL_PATTERN.search(content)
    sql = sql_match["sql"].strip() if sql_match else ""
    fence = _SQL_FENCE_PATTERN.match(sql)
    if fence:
        sql = fence["body"]

    chart_match = _CHART_TYPE_PATTERN.search(content)
    chart_type = ChartType(chart_match["chart"].lower()) if chart_match else ChartType.TABLE

    explanation_match = _EXPLANATION_PATTERN.search(content)
    explanation = explanation_match["explanation"].strip() if explanation_match else ""

    return SqlAnswer(sql=sql.strip(), explanation=explanation, chart_type=chart_type)


def build_chart_config(chart_type: ChartType, rows: QueryRows) -> dict[str, Any] | None:
    """Pick axis and value keys for ``chart_type`` from the result columns."""
    if not rows:
        return None

    keys = list(rows[0])
    first = keys[0] if keys else None
    second = keys[1] if len(keys) > 1 else None

    if chart_type == ChartType.LINE:
        x_axis = next((k for k in keys if any(hint in k for hint in _TIME_KEY_HINTS)), first)
        return {
            "xAxis": x_axis,
            "yAxis": next((k for k in keys if k != first), None),
            "dataKey": second,
        }
    if chart_type == ChartType.BAR:
        return {"xAxis": first, "yAxis": second, "dataKey": second}
    if chart_type == ChartType.PIE:
        return {"dataKey": second, "nameKey": first}
    return {"columns": keys}


def format_schema_context(schema: DataSchema) -> str:
    """Describe tables and metrics as plain text for a prompt."""
    if schema.tables:
        tables = "\n\n".join(
            "Table: {name}\n{columns}".format(
                name=table.name,
                columns="\n".join(
                    f"  {column.name} ({column.type}{', nullable' if column.nullable else ''})"
                    for column in table.columns
                ),
            )
            for table in schema.tables
        )
    else:
        tables = "No tables were discovered in this data source."

    metric_lines = "\n".join(
        f"- {metric.name}: {metric.description}" for metric in COMMON_METRICS
    )
    return f"Available tables and their schemas:\n{tables}\n\nCommon metrics:\n{metric_lines}"


def parse_follow_ups(content: str, limit: int = 3) -> list[str]:
    """Keep the first ``limit`` questions, without list markers or intro lines."""
    questions = []
    for line in content.splitlines():
        question = _LIST_MARKER_PATTERN.sub("", line.strip()).strip()
        if not question or question.endswith(":"):
            continue
        questions.append(question)
    return questions[:limit]


class SqlAgentService:
    """Turns a question into SQL, runs it and suggests how to chart it."""

    def __init__(self, data_source: DataSource, language_model: ChatModel, default_model: str):
        self._data_source = data_source
        self._language_model = language_model
        self._default_model = default_model

    async def describe_schema(self, connection: ConnectionConfig) -> SchemaOverview:
        schema = await self._data_source.fetch_schema(connection)
        return SchemaOverview(
            schemas=schema.tables,
            metrics=COMMON_METRICS,
            schema_context=format_schema_context(schema),
        )

    async def answer(
        self,
        question: str,
        connection: ConnectionConfig,
        context: str = "",
        model: str | None = None,
    ) -> QueryResult:
        """Generate SQL for ``question`` against ``connection`` and execute it.

        Raises:
            DataSourceError: the schema fetch or the query failed.
            LanguageModelError: the model failed or its reply held no SQL.
        """
        schema = await self._data_source.fetch_schema(connection)
        user_prompt = (
            f"Database Schema:\n{format_schema_context(schema)}\n\n"
            f"User Question: {question}\n\n"
            f"Previous Context: {context or 'None'}"
        )
        content = await self._language_model.chat(
            ChatRequest(
                model=model or self._default_model,
                messages=[
                    ChatMessage(role="system", content=SQL_AGENT_PROMPT),
                    ChatMessage(role="user", content=user_prompt),
                ],
                temperature=0,
                max_tokens=1500,
            )
        )

        answer = parse_sql_answer(content)
        if not answer.sql:
            raise LanguageModelError("Language model reply contained no SQL query")

        rows = await self._data_source.execute_query(connection, answer.sql)
        logger.info(
            "Question answered",
            connection_type=connection.type.value,
            chart_type=answer.chart_type.value,
            row_count=len(rows),
        )
        return QueryResult(
            sql=answer.sql,
            data=rows,
            explanation=answer.explanation,
            chart_type=answer.chart_type,
            chart_config=build_chart_config(answer.chart_type, rows),
        )

    async def suggest_follow_ups(
        self, question: str, result: QueryResult, model: str | None = None
    ) -> list[str]:
        summary = (
            f"Query returned {len(result.data)} rows. "
            f"Sample data: {json.dumps(result.data[:2], default=str)}"
        )
        content = await self._language_model.chat(
            ChatRequest(
                model=model or self._default_model,
                messages=[
                    ChatMessage(role="system", content=FOLLOW_UP_PROMPT),
                    ChatMessage(
                        role="user",
                        content=f"Question: {question}\nSQL: {result.sql}\nResults: {summary}",
                    ),
                ],
                temperature=0,
                max_tokens=300,
            )
        )
        return parse_follow_ups(content)
