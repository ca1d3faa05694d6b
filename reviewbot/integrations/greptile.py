import httpx
import logging

from reviewbot.config import Settings
from reviewbot.errors import MalformedResponseError, ReviewServiceError

logger = logging.getLogger(__name__)


class GreptileClient:
    """Thin wrapper around the Greptile ``/query`` endpoint."""

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None):
        self._url = f"{settings.greptile_api_url.rstrip('/')}/query"
        self._timeout = settings.http_timeout_seconds
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        kwargs = {"transport": self._transport}
        if self._timeout is not None:
            kwargs["timeout"] = self._timeout
        return httpx.AsyncClient(**kwargs)

    async def query(
        self,
        messages: list[dict],
        repositories: list[dict],
        api_key: str,
        platform_headers: dict[str, str],
        genius: bool,
        json_mode: bool = True,
    ) -> dict:
        """
        Send one query and return the decoded response body.

        The body is expected to look like ``{"message": str, "sources": [...]}``.
        Raises ReviewServiceError for transport failures and non-2xx answers,
        MalformedResponseError when the body is not of that shape.
        """
        payload = {
            "messages": messages,
            "repositories": repositories,
            "genius": genius,
        }
        if json_mode:
            payload["jsonMode"] = True

        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {api_key}",
            **platform_headers,
        }

        try:
            async with self._client() as client:
                response = await client.post(self._url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise ReviewServiceError(f"Greptile request failed: {e}") from e

        if response.is_error:
            raise ReviewServiceError(
                f"Greptile returned {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise MalformedResponseError(f"Greptile response is not JSON: {e}") from e

        if not isinstance(data, dict) or not isinstance(data.get("message"), str):
            raise MalformedResponseError("Greptile response has no string 'message' field")

        logger.debug(f"Greptile answered with {len(data.get('sources') or [])} sources")
        return data
