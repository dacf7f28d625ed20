"""Tests for the achievements API client with HTTP mocked out."""

from datetime import datetime, timezone
from unittest.mock import Mock, patch

import pytest
import requests

from api.client import APIError, ApiClient, RateLimitError, UnauthenticatedError
from connectors.models import NormalizedItem
from extract.models import ExtractedAchievement, ExtractionContext


def make_response(status_code=200, payload=None, reason="OK"):
    response = Mock()
    response.status_code = status_code
    response.ok = status_code < 400
    response.reason = reason
    if isinstance(payload, Exception):
        response.json.side_effect = payload
    else:
        response.json.return_value = payload
    return response


@pytest.fixture
def client():
    return ApiClient("https://brag.example.com/", "secret-token")


class TestRequest:
    """Tests for status and transport error mapping."""

    def test_sends_bearer_token(self, client):
        with patch.object(requests.Session, "request", return_value=make_response(payload={"ok": True})) as request:
            assert client.get("/api/user") == {"ok": True}

        method, url = request.call_args.args
        assert (method, url) == ("GET", "https://brag.example.com/api/user")
        assert client.session.headers["Authorization"] == "Bearer secret-token"

    def test_no_token(self):
        client = ApiClient("https://brag.example.com", None)
        assert client.is_authenticated() is False
        with patch.object(requests.Session, "request") as request:
            with pytest.raises(UnauthenticatedError):
                client.get("/api/user")
        request.assert_not_called()

    def test_unauthorized(self, client):
        with patch.object(requests.Session, "request", return_value=make_response(401, reason="Unauthorized")):
            with pytest.raises(UnauthenticatedError) as exc_info:
                client.get("/api/user")
        assert exc_info.value.status_code == 401

    def test_rate_limited(self, client):
        with patch.object(requests.Session, "request", return_value=make_response(429)):
            with pytest.raises(RateLimitError):
                client.post("/api/achievements", {})

    def test_error_body_message(self, client):
        response = make_response(500, {"error": "Database unavailable"}, reason="Internal Server Error")
        with patch.object(requests.Session, "request", return_value=response):
            with pytest.raises(APIError, match="Database unavailable") as exc_info:
                client.get("/api/projects")
        assert exc_info.value.status_code == 500
        assert exc_info.value.response == {"error": "Database unavailable"}

    def test_error_without_json(self, client):
        response = make_response(502, ValueError("no json"), reason="Bad Gateway")
        with patch.object(requests.Session, "request", return_value=response):
            with pytest.raises(APIError, match="Bad Gateway"):
                client.get("/api/projects")

    def test_no_content(self, client):
        with patch.object(requests.Session, "request", return_value=make_response(204)):
            assert client.post("/api/achievements", {}) is None

    def test_connection_error(self, client):
        with patch.object(requests.Session, "request", side_effect=requests.exceptions.ConnectionError("refused")):
            with pytest.raises(APIError, match="Failed to make API request") as exc_info:
                client.get("/api/user")
        assert exc_info.value.status_code is None

    def test_timeout(self, client):
        with patch.object(requests.Session, "request", side_effect=requests.exceptions.Timeout()):
            with pytest.raises(APIError, match="timed out"):
                client.get("/api/user")


class TestCapabilities:
    """Tests for the context, summarize and save operations."""

    def test_fetch_extraction_context(self, client):
        responses = {
            "/api/companies": [{"id": "co-1", "name": "Acme"}],
            "/api/projects": [{"id": "p-1", "name": "API"}],
            "/api/user": {"name": "Ada"},
        }

        def request(method, url, **kwargs):
            return make_response(payload=responses[url.removeprefix(client.base_url)])

        with patch.object(requests.Session, "request", side_effect=request):
            context = client.fetch_extraction_context("p-1")

        assert context.project_id == "p-1"
        assert context.companies[0]["name"] == "Acme"
        assert context.user == {"name": "Ada"}

    def test_extract_achievements(self, client):
        item = NormalizedItem(
            id="abc",
            title="Add cache",
            description="Add cache",
            author="Ada",
            timestamp=datetime(2025, 1, 1, tzinfo=timezone.utc),
        )
        payload = {"achievements": [{"title": "Sped up reads", "sourceItemId": "abc", "impact": 3}]}

        with patch.object(requests.Session, "request", return_value=make_response(payload=payload)) as request:
            achievements = client.extract_achievements([item], ExtractionContext(project_id="p-1"))

        body = request.call_args.kwargs["json"]
        assert request.call_args.args[1].endswith("/api/extract-from-commits")
        assert body["projectId"] == "p-1"
        assert "<id>abc</id>" in body["prompt"]
        assert body["items"][0]["id"] == "abc"
        assert achievements == [ExtractedAchievement(title="Sped up reads", source_item_id="abc", impact=3)]

    def test_extract_accepts_bare_list(self, client):
        with patch.object(requests.Session, "request", return_value=make_response(payload=[{"title": "x"}])):
            achievements = client.extract_achievements([], ExtractionContext(project_id="p"))
        assert [a.title for a in achievements] == ["x"]

    def test_create_achievements(self, client):
        achievements = [
            ExtractedAchievement(title="One", project_id="p-1", source_item_id="a"),
            ExtractedAchievement(title="Two", project_id="p-1", source_item_id="b"),
        ]
        responses = [make_response(payload={"id": 1, "title": "One"}), make_response(payload={"id": 2, "title": "Two"})]

        with patch.object(requests.Session, "request", side_effect=responses) as request:
            saved = client.create_achievements(achievements)

        assert request.call_count == 2
        body = request.call_args_list[0].kwargs["json"]
        assert body["source"] == "llm"
        assert body["impactSource"] == "llm"
        assert "impactUpdatedAt" in body
        assert body["sourceItemId"] == "a"
        assert [(s.id, s.source_item_id) for s in saved] == [("1", "a"), ("2", "b")]
