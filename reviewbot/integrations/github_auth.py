import time
import httpx
import jwt
import logging

from reviewbot.config import Settings
from reviewbot.errors import PlatformAPIError

logger = logging.getLogger(__name__)


class GitHubAppAuth:
    """Exchanges the GitHub App's private key for installation tokens."""

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None):
        self._app_id = settings.github_app_id
        # Keys from env files often carry escaped newlines
        self._private_key = settings.github_private_key.replace("\\n", "\n")
        self._base_url = settings.github_api_base_url.rstrip("/")
        self._timeout = settings.http_timeout_seconds
        self._transport = transport

    def app_jwt(self) -> str:
        """Short-lived JWT identifying the app itself."""
        now = int(time.time())
        payload = {"iat": now - 60, "exp": now + (9 * 60), "iss": self._app_id}
        return jwt.encode(payload, self._private_key, algorithm="RS256")

    async def installation_token(self, installation_id: int) -> str:
        url = f"{self._base_url}/app/installations/{installation_id}/access_tokens"
        headers = {
            "Authorization": f"Bearer {self.app_jwt()}",
            "Accept": "application/vnd.github+json",
        }

        kwargs = {"transport": self._transport}
        if self._timeout is not None:
            kwargs["timeout"] = self._timeout
        async with httpx.AsyncClient(**kwargs) as client:
            response = await client.post(url, headers=headers)

        if response.is_error:
            raise PlatformAPIError(
                f"Installation token request failed with {response.status_code}",
                status_code=response.status_code,
            )

        data = response.json()
        logger.info(f"Got installation token for {installation_id}, expires at {data.get('expires_at')}")
        return data["token"]
