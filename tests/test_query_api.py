"""HTTP tests for the question and schema overview endpoints."""

from collections.abc import Generator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.analytics_agent.api.dependencies import (
    get_data_connector,
    get_default_connection,
    get_language_model,
)
from src.analytics_agent.engine import DataSourceError, LanguageModelError
from src.analytics_agent.main import create_app
from src.analytics_agent.schemas.datasource import ConnectionConfig
from tests.helpers import FakeDataSource, FakeLanguageModel

pytestmark = pytest.mark.integration

DEFAULT_CONNECTION = ConnectionConfig(
    type="supabase", endpoint="https://project.supabase.co", api_key="anon"
)
SIGNUP_ROWS = [{"day": "2024-05-01", "signups": 12}]


@pytest.fixture
def data_source() -> FakeDataSource:
    return FakeDataSource(rows=SIGNUP_ROWS)


@pytest.fixture
def app(data_source: FakeDataSource, language_model: FakeLanguageModel) -> Generator[FastAPI]:
    app = create_app()
    app.dependency_overrides[get_data_connector] = lambda: data_source
    app.dependency_overrides[get_language_model] = lambda: language_model
    app.dependency_overrides[get_default_connection] = lambda: DEFAULT_CONNECTION
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


class TestQuery:
    def test_answers_with_rows_chart_and_follow_ups(self, client: TestClient):
        response = client.post("/api/v1/query", json={"question": "Signups per day?"})

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        result = data["result"]
        assert result["sql"].startswith("SELECT date(created_at) AS day")
        assert result["data"] == SIGNUP_ROWS
        assert result["chartType"] == "line"
        assert result["chartConfig"] == {"xAxis": "day", "yAxis": "signups", "dataKey": "signups"}
        assert result["explanation"] == "Daily signups over time."
        assert data["followUpSuggestions"] == [
            "Which channels drive the most signups?",
            "How many new users come back within a week?",
            "What share of signups activate?",
        ]

    def test_uses_the_configured_project_by_default(
        self, client: TestClient, data_source: FakeDataSource
    ):
        client.post("/api/v1/query", json={"question": "Signups per day?"})

        assert data_source.calls[0] == ("fetch_schema", "https://project.supabase.co")

    def test_connection_in_body_wins(self, client: TestClient, data_source: FakeDataSource):
        connection = {"type": "posthog", "endpoint": "https://eu.posthog.com", "apiKey": "phx"}

        client.post(
            "/api/v1/query", json={"question": "Signups per day?", "connectionConfig": connection}
        )

        assert data_source.calls[0] == ("fetch_schema", "https://eu.posthog.com")

    def test_question_is_required(self, client: TestClient):
        response = client.post("/api/v1/query", json={"question": ""})

        assert response.status_code == 400
        assert "request_id" in response.json()

    def test_no_data_source(self, app: FastAPI, client: TestClient):
        app.dependency_overrides[get_default_connection] = lambda: None

        response = client.post("/api/v1/query", json={"question": "Signups per day?"})

        assert response.status_code == 400
        assert response.json()["detail"] == {
            "success": False,
            "error": "No data source configured",
        }

    def test_model_failure_is_502(self, app: FastAPI, client: TestClient):
        app.dependency_overrides[get_language_model] = lambda: FakeLanguageModel(
            error=LanguageModelError("OpenRouter API error: Rate limit exceeded")
        )

        response = client.post("/api/v1/query", json={"question": "Signups per day?"})

        assert response.status_code == 502
        assert response.json()["detail"]["error"] == "OpenRouter API error: Rate limit exceeded"

    def test_query_failure_is_502(self, app: FastAPI, client: TestClient):
        class BrokenSource(FakeDataSource):
            async def execute_query(self, config, query):
                raise DataSourceError("Supabase query execution failed: 400")

        app.dependency_overrides[get_data_connector] = lambda: BrokenSource()

        response = client.post("/api/v1/query", json={"question": "Signups per day?"})

        assert response.status_code == 502

    def test_follow_up_failure_keeps_the_answer(self, app: FastAPI, client: TestClient):
        class OneShotModel(FakeLanguageModel):
            async def chat(self, request):
                if self.calls:
                    raise LanguageModelError("OpenRouter request timed out")
                return await super().chat(request)

        app.dependency_overrides[get_language_model] = lambda: OneShotModel()

        response = client.post("/api/v1/query", json={"question": "Signups per day?"})

        assert response.status_code == 200
        assert response.json()["result"]["data"] == SIGNUP_ROWS
        assert response.json()["followUpSuggestions"] == []


class TestSchemaOverview:
    def test_overview(self, client: TestClient):
        response = client.get("/api/v1/schema")

        assert response.status_code == 200
        data = response.json()
        assert [table["name"] for table in data["schemas"]] == ["users", "events"]
        assert data["metrics"][0]["sqlTemplate"].startswith("SELECT COUNT(DISTINCT")
        assert "Table: users" in data["schemaContext"]

    def test_no_data_source(self, app: FastAPI, client: TestClient):
        app.dependency_overrides[get_default_connection] = lambda: None

        response = client.get("/api/v1/schema")

        assert response.status_code == 400

    def test_fetch_failure_is_502(self, app: FastAPI, client: TestClient):
        class BrokenSource(FakeDataSource):
            async def fetch_schema(self, config):
                raise DataSourceError("Failed to fetch Supabase schema: 401")

        app.dependency_overrides[get_data_connector] = lambda: BrokenSource()

        response = client.get("/api/v1/schema")

        assert response.status_code == 502
        assert response.json()["detail"]["error"] == "Failed to fetch Supabase schema: 401"
