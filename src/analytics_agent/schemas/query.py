"""Natural-language query and schema overview schemas."""

from typing import Any

from pydantic import Field

from src.analytics_agent.models.base import CamelModel
from src.analytics_agent.models.enums import ChartType
from src.analytics_agent.schemas.datasource import ConnectionConfig, QueryRows, SchemaTable


class MetricDefinition(CamelModel):
    """A reusable product metric with a starting-point SQL template."""

    name: str
    description: str
    sql_template: str
    category: str


class SqlAnswer(CamelModel):
    """The parsed language model reply, before the SQL is executed."""

    sql: str
    explanation: str = ""
    chart_type: ChartType = ChartType.TABLE


class QueryResult(CamelModel):
    sql: str
    data: QueryRows
    explanation: str
    chart_type: ChartType
    # Axis and key hints for the chart; None when the query returned no rows
    chart_config: dict[str, Any] | None = None


class QueryRequest(CamelModel):
    question: str = Field(min_length=1)
    # Earlier turns of the conversation, passed through to the prompt
    context: str = ""
    connection_config: ConnectionConfig | None = None
    model: str | None = None


class QueryResponse(CamelModel):
    success: bool = True
    result: QueryResult
    follow_up_suggestions: list[str] = Field(default_factory=list)


class SchemaOverview(CamelModel):
    """Tables, common metrics and the prompt-ready schema description."""

    schemas: list[SchemaTable] = Field(default_factory=list)
    metrics: list[MetricDefinition] = Field(default_factory=list)
    schema_context: str
