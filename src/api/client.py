"""Client for the achievements web API."""

from datetime import datetime, timezone
from typing import Any

import requests

from common.logger import get_logger
from connectors.models import NormalizedItem
from extract.models import ExtractedAchievement, ExtractionContext, SavedAchievement
from extract.prompt import render_prompt

logger = get_logger(__name__)


class APIError(Exception):
    """API request failed.

    Attributes:
        status_code: HTTP status, or None when no response was received
        response: Decoded error body, when there was one
    """

    def __init__(self, message: str, status_code: int | None = None, response: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.response = response


class UnauthenticatedError(APIError):
    """Missing, expired or rejected API token."""

    def __init__(self, message: str = "Not authenticated. Please log in first."):
        super().__init__(message, status_code=401)


class RateLimitError(APIError):
    """Rate limit exceeded."""

    pass


class ApiClient:
    """Bearer-token client for the achievements API.

    Provides the two capabilities the batch orchestrator needs:
    extract_achievements (summarize) and create_achievements (save).

    Example:
        >>> client = ApiClient(env.api_url(), env.api_token())
        >>> context = client.fetch_extraction_context(project_id)
        >>> for result in process_in_batches(
        ...     items, client.extract_achievements, client.create_achievements, context
        ... ):
        ...     ...
    """

    def __init__(self, base_url: str, token: str | None, timeout: float = 30):
        """Initialize API client.

        Args:
            base_url: Web app origin, e.g. https://www.bragdoc.ai
            token: API token; requests fail with UnauthenticatedError without one
            timeout: Per-request timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})
        if token:
            self.session.headers.update({"Authorization": f"Bearer {token}"})

    def is_authenticated(self) -> bool:
        return bool(self.token)

    def get(self, path: str) -> Any:
        return self._request("GET", path)

    def post(self, path: str, payload: Any = None) -> Any:
        return self._request("POST", path, payload)

    def _request(self, method: str, path: str, payload: Any = None) -> Any:
        """Send a request and decode the JSON response.

        Returns:
            Decoded body, or None for 204 No Content

        Raises:
            UnauthenticatedError: No token, or the server answered 401
            RateLimitError: The server answered 429
            APIError: Any other failure
        """
        if not self.token:
            raise UnauthenticatedError()

        url = f"{self.base_url}{path}"
        logger.debug(f"{method} {url}")
        try:
            response = self.session.request(method, url, json=payload, timeout=self.timeout)
        except requests.exceptions.Timeout as e:
            raise APIError(f"API request timed out: {method} {path}") from e
        except requests.exceptions.RequestException as e:
            raise APIError(f"Failed to make API request: {e}") from e

        if response.status_code == 401:
            raise UnauthenticatedError()
        if response.status_code == 429:
            raise RateLimitError("API rate limit exceeded", status_code=429)
        if not response.ok:
            message = f"API request failed: {response.reason}"
            data = None
            try:
                data = response.json()
                if isinstance(data, dict) and data.get("error"):
                    message = str(data["error"])
            except ValueError:
                pass  # Not JSON, keep the reason phrase
            raise APIError(message, status_code=response.status_code, response=data)

        if response.status_code == 204:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise APIError(f"Invalid JSON in response to {method} {path}", response.status_code) from e

    def fetch_extraction_context(self, project_id: str) -> ExtractionContext:
        """Load the companies, projects and profile of the authenticated user."""
        companies = self.get("/api/companies") or []
        projects = self.get("/api/projects") or []
        user = self.get("/api/user") or {}
        logger.debug(f"Loaded context: {len(companies)} companies, {len(projects)} projects")
        return ExtractionContext(
            project_id=project_id, companies=companies, projects=projects, user=user
        )

    def extract_achievements(
        self, items: list[NormalizedItem], context: ExtractionContext
    ) -> list[ExtractedAchievement]:
        """Ask the server to turn a batch of items into achievements."""
        payload = {
            "projectId": context.project_id,
            "prompt": render_prompt(items, context),
            "items": [item.to_dict() for item in items],
        }
        data = self.post("/api/extract-from-commits", payload) or {}
        records = data.get("achievements", []) if isinstance(data, dict) else data
        return [ExtractedAchievement.from_dict(record) for record in records]

    def create_achievements(self, achievements: list[ExtractedAchievement]) -> list[SavedAchievement]:
        """Store achievements one by one.

        The server de-duplicates on (projectId, sourceItemId), so re-sending an
        achievement after a retried batch does not create a second record.
        """
        saved = []
        for achievement in achievements:
            payload = {
                **achievement.to_dict(),
                "impactUpdatedAt": datetime.now(timezone.utc).isoformat(),
                "source": "llm",
                "impactSource": "llm",
            }
            data = self.post("/api/achievements", payload) or {}
            saved.append(
                SavedAchievement(
                    id=str(data.get("id", "")),
                    title=data.get("title", achievement.title),
                    source_item_id=achievement.source_item_id,
                    project_id=achievement.project_id,
                )
            )
        return saved
