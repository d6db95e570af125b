"""Data source schemas: connection settings and discovered schema."""

from typing import Any

from pydantic import Field

from src.analytics_agent.models.base import CamelModel
from src.analytics_agent.models.enums import ConnectionType, RelationshipType


class ConnectionConfig(CamelModel):
    """Settings needed to reach a data source."""

    type: ConnectionType
    endpoint: str = Field(min_length=1)
    api_key: str = Field(min_length=1, repr=False)
    database: str | None = None


class ConnectionTestResult(CamelModel):
    success: bool
    message: str
    connection_time: int | None = None  # milliseconds


class ForeignKeyRef(CamelModel):
    table: str
    column: str


class SchemaColumn(CamelModel):
    name: str
    type: str
    nullable: bool = True
    primary_key: bool | None = None
    foreign_key: ForeignKeyRef | None = None


class SchemaTable(CamelModel):
    name: str
    columns: list[SchemaColumn] = Field(default_factory=list)
    row_count: int | None = None


class RelationshipEnd(CamelModel):
    table: str
    column: str


class SchemaRelationship(CamelModel):
    # "from" is a keyword, so the Python name carries a suffix
    from_: RelationshipEnd = Field(alias="from")
    to: RelationshipEnd
    type: RelationshipType


class DetectedEntity(CamelModel):
    name: str
    table: str
    description: str
    key_fields: list[str] = Field(default_factory=list)
    event_fields: list[str] | None = None


class DataSchema(CamelModel):
    """Tables, relationships and business entities found in a data source."""

    tables: list[SchemaTable] = Field(default_factory=list)
    relationships: list[SchemaRelationship] = Field(default_factory=list)
    entities: list[DetectedEntity] = Field(default_factory=list)


QueryRows = list[dict[str, Any]]
