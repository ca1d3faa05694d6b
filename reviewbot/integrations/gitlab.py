import base64
import httpx
import logging
from urllib.parse import quote, urlparse

from reviewbot.config import Settings
from reviewbot.errors import PlatformAPIError
from reviewbot.models.anchors import GitLabPosition
from reviewbot.models.session import ChangedFile

logger = logging.getLogger(__name__)

PER_PAGE = 100


def diff_to_changed_file(diff: dict) -> ChangedFile:
    """Map a GitLab merge request diff record onto a ChangedFile."""
    if diff.get("new_file"):
        status = "added"
    elif diff.get("deleted_file"):
        status = "removed"
    elif diff.get("renamed_file"):
        status = "renamed"
    else:
        status = "modified"

    old_path = diff.get("old_path")
    return ChangedFile(
        path=diff["new_path"],
        previous_path=old_path if old_path and old_path != diff["new_path"] else None,
        status=status,
        patch=diff.get("diff") or "",
    )


def path_with_namespace(web_url: str) -> str:
    """``group/project`` from a project web URL."""
    path = urlparse(web_url).path.strip("/")
    if not path:
        raise ValueError(f"Invalid project URL: {web_url!r}")
    return path


def _check(response: httpx.Response, what: str) -> None:
    if response.is_error:
        logger.error(f"GitLab {what} failed with {response.status_code}: {response.text[:200]}")
        raise PlatformAPIError(f"GitLab {what} failed with {response.status_code}", status_code=response.status_code)


class GitLabClient:
    """GitLab REST calls made with the token supplied by the webhook."""

    def __init__(self, settings: Settings, token: str, transport: httpx.AsyncBaseTransport | None = None):
        self._base_url = settings.gitlab_api_base_url.rstrip("/")
        self._timeout = settings.http_timeout_seconds
        self._token = token
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        kwargs = {
            "base_url": self._base_url,
            "headers": {"PRIVATE-TOKEN": self._token},
            "follow_redirects": True,
            "transport": self._transport,
        }
        if self._timeout is not None:
            kwargs["timeout"] = self._timeout
        return httpx.AsyncClient(**kwargs)

    async def list_mr_diffs(self, project_id: int, mr_iid: int) -> list[ChangedFile]:
        files = []
        page = 1
        async with self._client() as client:
            while True:
                response = await client.get(
                    f"/projects/{project_id}/merge_requests/{mr_iid}/diffs",
                    params={"per_page": PER_PAGE, "page": page},
                )
                _check(response, f"list diffs of MR !{mr_iid}")
                batch = response.json()
                files.extend(diff_to_changed_file(d) for d in batch)
                if len(batch) < PER_PAGE:
                    break
                page += 1

        logger.info(f"Fetched {len(files)} diffs from MR !{mr_iid}")
        return files

    async def get_file_lines(self, project_id: int, path: str, ref: str) -> tuple[str, ...]:
        """File content at ``ref`` split into lines; empty when it cannot be fetched."""
        try:
            async with self._client() as client:
                response = await client.get(
                    f"/projects/{project_id}/repository/files/{quote(path, safe='')}",
                    params={"ref": ref},
                )
                _check(response, f"get file {path}")
                raw = base64.b64decode(response.json()["content"])
                return tuple(raw.decode("utf-8", errors="replace").split("\n"))
        except (httpx.HTTPError, PlatformAPIError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Could not fetch {path}@{ref}: {e}")
            return ()

    async def get_branch_sha(self, project_id: int, branch: str) -> str:
        """Latest commit SHA of ``branch``."""
        async with self._client() as client:
            response = await client.get(f"/projects/{project_id}/repository/branches/{quote(branch, safe='')}")
            _check(response, f"get branch {branch}")
            data = response.json()

        sha = (data.get("commit") or {}).get("id")
        if not sha:
            raise PlatformAPIError(f"Branch {branch} has no commit SHA in response")
        return sha

    async def create_note(self, project_id: int, mr_iid: int, body: str) -> None:
        async with self._client() as client:
            response = await client.post(
                f"/projects/{project_id}/merge_requests/{mr_iid}/notes",
                json={"body": body},
            )
            _check(response, f"create note on MR !{mr_iid}")
        logger.info(f"Posted note to MR !{mr_iid}")

    async def create_discussion(self, project_id: int, mr_iid: int, body: str, position: GitLabPosition) -> None:
        """Start a discussion thread anchored at a diff position."""
        async with self._client() as client:
            response = await client.post(
                f"/projects/{project_id}/merge_requests/{mr_iid}/discussions",
                data=position.to_form(body),
            )
            _check(response, f"create discussion on {position.new_path}")
