import base64
import httpx
import logging
from urllib.parse import quote

from reviewbot.config import Settings
from reviewbot.errors import PlatformAPIError
from reviewbot.models.session import ChangedFile

logger = logging.getLogger(__name__)

PER_PAGE = 100


def decode_content(encoded: str) -> tuple[str, ...]:
    """Split base64 file content from the contents API into lines."""
    raw = base64.b64decode("".join(encoded.split("\n")))
    return tuple(raw.decode("utf-8", errors="replace").split("\n"))


def _check(response: httpx.Response, what: str) -> None:
    if response.status_code == 403:
        logger.error(f"Permission denied ({what}): {response.text[:200]}")
    elif response.status_code == 404:
        logger.error(f"Not found or no access ({what}): {response.text[:200]}")
    elif response.status_code == 422:
        logger.error(f"Invalid data ({what}): {response.text[:200]}")

    if response.is_error:
        raise PlatformAPIError(f"GitHub {what} failed with {response.status_code}", status_code=response.status_code)


class GitHubClient:
    """GitHub REST calls made on behalf of one installation token."""

    def __init__(self, settings: Settings, token: str, transport: httpx.AsyncBaseTransport | None = None):
        self._base_url = settings.github_api_base_url.rstrip("/")
        self._timeout = settings.http_timeout_seconds
        self._token = token
        self._transport = transport

    def _get_headers(self) -> dict:
        """Get headers for GitHub API requests."""
        return {
            "Authorization": f"Bearer {self._token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }

    def _client(self) -> httpx.AsyncClient:
        kwargs = {
            "base_url": self._base_url,
            "headers": self._get_headers(),
            "follow_redirects": True,
            "transport": self._transport,
        }
        if self._timeout is not None:
            kwargs["timeout"] = self._timeout
        return httpx.AsyncClient(**kwargs)

    async def list_pull_files(self, owner: str, repo: str, pr_number: int) -> list[ChangedFile]:
        """
        Fetch files changed in a pull request.

        Contents are not included; see get_file_lines.
        """
        files = []
        page = 1
        async with self._client() as client:
            while True:
                response = await client.get(
                    f"/repos/{owner}/{repo}/pulls/{pr_number}/files",
                    params={"per_page": PER_PAGE, "page": page},
                )
                _check(response, f"list files of PR #{pr_number}")
                batch = response.json()

                for file_data in batch:
                    files.append(
                        ChangedFile(
                            path=file_data["filename"],
                            previous_path=file_data.get("previous_filename"),
                            status=file_data.get("status", "modified"),
                            patch=file_data.get("patch") or "",
                        )
                    )

                if len(batch) < PER_PAGE:
                    break
                page += 1

        logger.info(f"Fetched {len(files)} changed files from PR #{pr_number}")
        return files

    async def get_pull_request(self, owner: str, repo: str, pr_number: int) -> dict:
        """Fetch PR metadata."""
        async with self._client() as client:
            response = await client.get(f"/repos/{owner}/{repo}/pulls/{pr_number}")
            _check(response, f"get PR #{pr_number}")
            return response.json()

    async def get_file_lines(self, owner: str, repo: str, path: str, ref: str) -> tuple[str, ...]:
        """File content at ``ref`` split into lines; empty when it cannot be fetched."""
        try:
            async with self._client() as client:
                response = await client.get(
                    f"/repos/{owner}/{repo}/contents/{quote(path, safe='/')}", params={"ref": ref}
                )
                _check(response, f"get contents of {path}")
                return decode_content(response.json()["content"])
        except (httpx.HTTPError, PlatformAPIError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Could not fetch {path}@{ref}: {e}")
            return ()

    async def create_review(
        self,
        owner: str,
        repo: str,
        pr_number: int,
        body: str,
        comments: list[dict],
        event: str = "COMMENT",
        commit_id: str | None = None,
    ) -> int:
        """
        Post a review with inline comments.

        event: COMMENT, APPROVE, or REQUEST_CHANGES
        Returns the review ID.
        """
        payload = {"body": body, "event": event, "comments": comments}
        if commit_id:
            payload["commit_id"] = commit_id

        async with self._client() as client:
            response = await client.post(f"/repos/{owner}/{repo}/pulls/{pr_number}/reviews", json=payload)
            _check(response, f"create review on PR #{pr_number}")
            data = response.json()

        review_id = data.get("id")
        logger.info(f"Posted review {review_id} with {len(comments)} comments to PR #{pr_number}")
        return review_id

    async def create_issue_comment(self, owner: str, repo: str, number: int, body: str) -> int:
        """Post a top-level comment on a PR or issue. Returns the comment ID."""
        async with self._client() as client:
            response = await client.post(f"/repos/{owner}/{repo}/issues/{number}/comments", json={"body": body})
            _check(response, f"comment on #{number}")
            data = response.json()

        comment_id = data.get("id")
        logger.info(f"Posted comment {comment_id} to #{number}")
        return comment_id
