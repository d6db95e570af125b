"""Data source client for Supabase (PostgREST) and PostHog (HogQL)."""

import re
import time
from typing import Any

import httpx

from src.analytics_agent.core.logging import get_logger
from src.analytics_agent.engine.errors import DataSourceError
from src.analytics_agent.models.enums import ConnectionType, RelationshipType
from src.analytics_agent.schemas.datasource import (
    ConnectionConfig,
    ConnectionTestResult,
    DataSchema,
    DetectedEntity,
    ForeignKeyRef,
    QueryRows,
    RelationshipEnd,
    SchemaColumn,
    SchemaRelationship,
    SchemaTable,
)

logger = get_logger(__name__)

# PostgREST marks keys inside OpenAPI column descriptions
_PK_MARKER = "<pk/>"
_FK_PATTERN = re.compile(r"<fk table='(?P<table>[^']+)' column='(?P<column>[^']+)'/>")

_SQL_TYPES = (ConnectionType.POSTGRESQL, ConnectionType.MYSQL)

# How many PostHog event names are listed in the entity description
_MAX_LISTED_EVENTS = 20


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


def _supabase_headers(config: ConnectionConfig) -> dict[str, str]:
    return {
        "apikey": config.api_key,
        "Authorization": f"Bearer {config.api_key}",
    }


def _posthog_headers(config: ConnectionConfig) -> dict[str, str]:
    return {"Authorization": f"Bearer {config.api_key}"}


def parse_postgrest_definitions(document: dict[str, Any]) -> DataSchema:
    """Build a :class:`DataSchema` from a PostgREST OpenAPI document."""
    tables: list[SchemaTable] = []
    relationships: list[SchemaRelationship] = []

    for table_name, definition in (document.get("definitions") or {}).items():
        required = set(definition.get("required") or [])
        columns: list[SchemaColumn] = []

        for column_name, prop in (definition.get("properties") or {}).items():
            description = prop.get("description") or ""
            foreign_key = None
            match = _FK_PATTERN.search(description)
            if match:
                foreign_key = ForeignKeyRef(table=match["table"], column=match["column"])
                relationships.append(
                    SchemaRelationship(
                        from_=RelationshipEnd(table=table_name, column=column_name),
                        to=RelationshipEnd(table=match["table"], column=match["column"]),
                        type=RelationshipType.ONE_TO_MANY,
                    )
                )
            columns.append(
                SchemaColumn(
                    name=column_name,
                    type=prop.get("format") or prop.get("type") or "unknown",
                    nullable=column_name not in required,
                    primary_key=True if _PK_MARKER in description else None,
                    foreign_key=foreign_key,
                )
            )

        tables.append(SchemaTable(name=table_name, columns=columns))

    return DataSchema(tables=tables, relationships=relationships, entities=[])


def posthog_schema(event_names: list[str]) -> DataSchema:
    """PostHog exposes a fixed events/persons model."""
    event_description = "User events and interactions"
    if event_names:
        listed = ", ".join(event_names[:_MAX_LISTED_EVENTS])
        event_description += f" (tracked events: {listed})"

    return DataSchema(
        tables=[
            SchemaTable(
                name="events",
                columns=[
                    SchemaColumn(name="event", type="string", nullable=False),
                    SchemaColumn(name="timestamp", type="timestamp", nullable=False),
                    SchemaColumn(name="distinct_id", type="string", nullable=False),
                    SchemaColumn(name="properties", type="jsonb", nullable=True),
                ],
            ),
            SchemaTable(
                name="persons",
                columns=[
                    SchemaColumn(
                        name="distinct_id", type="string", nullable=False, primary_key=True
                    ),
                    SchemaColumn(name="properties", type="jsonb", nullable=True),
                    SchemaColumn(name="created_at", type="timestamp", nullable=False),
                ],
            ),
        ],
        relationships=[],
        entities=[
            DetectedEntity(
                name="User",
                table="persons",
                description="User entity tracked in PostHog",
                key_fields=["distinct_id"],
            ),
            DetectedEntity(
                name="Event",
                table="events",
                description=event_description,
                key_fields=["event", "distinct_id"],
                event_fields=["event", "timestamp"],
            ),
        ],
    )


class DataConnectorService:
    """Tests connections, discovers schemas and runs queries against data sources."""

    def __init__(self, client: httpx.AsyncClient | None = None, timeout: float = 30.0):
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def aclose(self) -> None:
        await self._client.aclose()

    # --- Connection test ---

    async def test_connection(self, config: ConnectionConfig) -> ConnectionTestResult:
        """Check that the source is reachable with the given credentials.

        Never raises: transport failures are reported as ``success=False``.
        """
        start = time.monotonic()

        if config.type in _SQL_TYPES:
            return ConnectionTestResult(
                success=True,
                message=f"SQL connection test not fully implemented yet for {config.type.value}",
                connection_time=0,
            )

        if config.type == ConnectionType.SUPABASE:
            url = f"{config.endpoint}/rest/v1/"
            headers = _supabase_headers(config)
            source = "Supabase"
        elif config.type == ConnectionType.POSTHOG:
            url = f"{config.endpoint}/api/projects"
            headers = _posthog_headers(config)
            source = "PostHog"
        else:
            return ConnectionTestResult(
                success=False,
                message=f"Unsupported connection type: {config.type.value}",
            )

        try:
            response = await self._client.get(url, headers=headers)
        except httpx.HTTPError as e:
            logger.warning("Data source connection error", source=source, error=str(e))
            return ConnectionTestResult(
                success=False,
                message=f"Connection failed: {source} connection error: {e}",
                connection_time=_elapsed_ms(start),
            )

        if response.is_success:
            return ConnectionTestResult(
                success=True,
                message=f"Successfully connected to {source}",
                connection_time=_elapsed_ms(start),
            )
        return ConnectionTestResult(
            success=False,
            message=f"{source} connection failed: {response.reason_phrase or response.status_code}",
            connection_time=_elapsed_ms(start),
        )

    # --- Schema discovery ---

    async def fetch_schema(self, config: ConnectionConfig) -> DataSchema:
        if config.type == ConnectionType.SUPABASE:
            return await self._fetch_supabase_schema(config)
        if config.type == ConnectionType.POSTHOG:
            return await self._fetch_posthog_schema(config)
        if config.type in _SQL_TYPES:
            # Direct SQL introspection needs a database driver; report an empty schema
            return DataSchema()
        raise DataSourceError(f"Unsupported connection type: {config.type.value}")

    async def _fetch_supabase_schema(self, config: ConnectionConfig) -> DataSchema:
        headers = {**_supabase_headers(config), "Accept": "application/openapi+json"}
        try:
            response = await self._client.get(f"{config.endpoint}/rest/v1/", headers=headers)
            response.raise_for_status()
            document = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise DataSourceError(f"Failed to fetch Supabase schema: {e}") from e
        return parse_postgrest_definitions(document)

    async def _fetch_posthog_schema(self, config: ConnectionConfig) -> DataSchema:
        try:
            response = await self._client.get(
                f"{config.endpoint}/api/projects/@current/event_definitions",
                headers=_posthog_headers(config),
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise DataSourceError(f"Failed to fetch PostHog schema: {e}") from e

        event_names = [item["name"] for item in data.get("results", []) if item.get("name")]
        return posthog_schema(event_names)

    # --- Query execution ---

    async def execute_query(self, config: ConnectionConfig, query: str) -> QueryRows:
        if config.type == ConnectionType.SUPABASE:
            return await self._execute_supabase_query(config, query)
        if config.type == ConnectionType.POSTHOG:
            return await self._execute_posthog_query(config, query)
        raise DataSourceError(f"Query execution not supported for {config.type.value}")

    async def _execute_supabase_query(
        self, config: ConnectionConfig, query: str
    ) -> QueryRows:
        # Requires an `execute_sql` RPC function installed in the project
        try:
            response = await self._client.post(
                f"{config.endpoint}/rest/v1/rpc/execute_sql",
                headers=_supabase_headers(config),
                json={"query": query},
            )
            response.raise_for_status()
            rows = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise DataSourceError(f"Supabase query execution failed: {e}") from e
        return rows if isinstance(rows, list) else [rows]

    async def _execute_posthog_query(
        self, config: ConnectionConfig, query: str
    ) -> QueryRows:
        try:
            response = await self._client.post(
                f"{config.endpoint}/api/projects/@current/query",
                headers=_posthog_headers(config),
                json={"query": {"kind": "HogQLQuery", "query": query}},
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise DataSourceError(f"PostHog query execution failed: {e}") from e

        results = data.get("results") or []
        columns = data.get("columns")
        # HogQL returns positional rows alongside a column list
        if columns and results and isinstance(results[0], list):
            return [dict(zip(columns, row, strict=False)) for row in results]
        return results
