"""Neon API client for provisioning per-user vector databases."""

import asyncio
from typing import Any

import httpx
from pydantic import ValidationError
from structlog import get_logger

from app.core.exceptions import ProviderError
from app.schemas.vector_databases import ProvisionedResource

logger = get_logger(__name__)


class NeonProvisioner:
    """Creates a dedicated Neon project per user."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        api_key: str,
        base_url: str = "https://console.neon.tech/api/v2",
        timeout: float = 30.0,
        max_retries: int = 2,
        retry_backoff: float = 1.0,
    ):
        """
        Initialize provisioner.

        Args:
            http_client: Shared HTTP client, owned by the application lifespan
            api_key: Neon API key
            base_url: Neon API base URL
            timeout: Per-request timeout in seconds
            max_retries: Retries for failures where no project was created
            retry_backoff: Linear backoff step between retries, in seconds
        """
        self.http = http_client
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_backoff = retry_backoff

    async def create(self) -> ProvisionedResource:
        """
        Create a new project with default settings.

        Returns:
            Project ID and the first connection URI

        Raises:
            ProviderError: On a non-success response or a malformed body
        """
        response = await self._post_with_retry("/projects", {"project": {}})

        if response.is_error:
            raise ProviderError(
                f"Failed to create Neon project: HTTP {response.status_code}, "
                f"{_error_message(response)}"
            )

        try:
            body = response.json()
        except ValueError as e:
            raise ProviderError(f"Neon returned a non-JSON body: {e!s}")

        return _parse_project(body)

    async def _post_with_retry(self, path: str, payload: dict[str, Any]) -> httpx.Response:
        """POST, retrying only when the provider certainly did not act on the request."""
        attempt = 0
        while True:
            try:
                response = await self.http.post(
                    f"{self.base_url}{path}",
                    json=payload,
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Accept": "application/json",
                    },
                    timeout=self.timeout,
                )
            except (httpx.ConnectError, httpx.ConnectTimeout) as e:
                if attempt >= self.max_retries:
                    raise ProviderError(f"Could not reach Neon API: {e!s}")
                logger.warning("neon_connect_failed", attempt=attempt + 1, error=str(e))
            except httpx.HTTPError as e:
                # The request may have been processed; retrying could create a second project
                raise ProviderError(f"Neon API request failed: {e!s}")
            else:
                if response.status_code != 429 or attempt >= self.max_retries:
                    return response
                logger.warning("neon_rate_limited", attempt=attempt + 1)

            attempt += 1
            await asyncio.sleep(self.retry_backoff * attempt)


def _parse_project(body: Any) -> ProvisionedResource:
    """Extract the project ID and first connection URI from a create-project body."""
    if not isinstance(body, dict):
        raise ProviderError("Malformed Neon response: expected a JSON object")

    project = body.get("project") or {}
    resource_id = project.get("id") if isinstance(project, dict) else None
    if not resource_id or not isinstance(resource_id, str):
        raise ProviderError("Malformed Neon response: missing project id")

    connection_uris = body.get("connection_uris") or []
    if not isinstance(connection_uris, list):
        raise ProviderError("Malformed Neon response: connection_uris is not a list")
    first = connection_uris[0] if connection_uris else None
    connection_uri = first.get("connection_uri") if isinstance(first, dict) else None
    if not connection_uri or not isinstance(connection_uri, str):
        raise ProviderError(f"Malformed Neon response: project {resource_id} has no connection URI")

    try:
        return ProvisionedResource(resource_id=resource_id, connection_uri=connection_uri)
    except ValidationError as e:
        raise ProviderError(f"Malformed Neon response: {e.error_count()} invalid field(s)")


def _error_message(response: httpx.Response) -> str:
    """Best-effort error message from a Neon error body."""
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return response.text[:200]
