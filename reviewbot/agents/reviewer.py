import json
import logging
from typing import Literal

from pydantic import BaseModel, ValidationError

from reviewbot.agents.prompts import file_review_system_prompt, file_review_user_prompt, overall_prompt
from reviewbot.agents.retry import BoundedRetry
from reviewbot.errors import MalformedResponseError
from reviewbot.integrations.greptile import GreptileClient
from reviewbot.models.review import RawReviewResult
from reviewbot.models.session import ChangedFile, FileSummary

logger = logging.getLogger(__name__)


class RequestContext(BaseModel):
    """Pull/merge request metadata shared by every AI call of a session."""
    platform: Literal["github", "gitlab"]
    repository: str  # shown to the model
    source_branch: str
    target_branch: str
    title: str = ""
    body: str = ""
    changed_paths: list[str] = []
    instructions: str = ""
    # Repository the service indexes for codebase context
    index_repository: str
    index_branch: str
    api_key: str
    platform_token: str

    @property
    def platform_headers(self) -> dict[str, str]:
        if self.platform == "gitlab":
            return {"X-GitLab-Token": self.platform_token}
        return {"X-GitHub-Token": self.platform_token}

    @property
    def repositories(self) -> list[dict]:
        return [{"remote": self.platform, "repository": self.index_repository, "branch": self.index_branch}]


def parse_review_message(message: str) -> RawReviewResult:
    """Decode the JSON document the service wraps inside its ``message`` string."""
    text = message.strip()
    # Remove markdown code blocks if present
    if text.startswith("```json"):
        text = text[7:]
    elif text.startswith("```"):
        text = text[3:]
    if text.endswith("```"):
        text = text[:-3]
    text = text.strip()

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedResponseError(f"review message is not JSON: {e}") from e

    try:
        return RawReviewResult.model_validate(data)
    except ValidationError as e:
        raise MalformedResponseError(f"review message has unexpected shape: {e.error_count()} errors") from e


class ReviewClient:
    """Calls the review service for each changed file and for the overall summary."""

    def __init__(self, greptile: GreptileClient, retry: BoundedRetry | None = None):
        self._greptile = greptile
        self._retry = retry or BoundedRetry()

    async def review_file(self, ctx: RequestContext, file: ChangedFile) -> RawReviewResult:
        """
        Review one file. Raises RetriesExhaustedError when every attempt failed;
        callers treat the file as unreviewable.
        """
        messages = [
            {
                "role": "system",
                "content": file_review_system_prompt(ctx.platform, file.path, ctx.instructions),
            },
            {
                "role": "user",
                "content": file_review_user_prompt(
                    repository=ctx.repository,
                    source_branch=ctx.source_branch,
                    target_branch=ctx.target_branch,
                    title=ctx.title,
                    body=ctx.body,
                    file=file,
                    changed_paths=ctx.changed_paths,
                ),
            },
        ]

        async def attempt(genius: bool) -> RawReviewResult:
            data = await self._greptile.query(
                messages=messages,
                repositories=ctx.repositories,
                api_key=ctx.api_key,
                platform_headers=ctx.platform_headers,
                genius=genius,
                json_mode=True,
            )
            return parse_review_message(data["message"])

        result = await self._retry.run(attempt, label=f"review {file.path}")
        logger.info(f"Reviewed {file.path}: {len(result.comments)} comments")
        return result

    async def review_overall(self, ctx: RequestContext, summaries: list[FileSummary]) -> str:
        """Generate the overall comment text from per-file summaries."""
        messages = [
            {
                "role": "user",
                "content": overall_prompt(
                    repository=ctx.repository,
                    source_branch=ctx.source_branch,
                    target_branch=ctx.target_branch,
                    title=ctx.title,
                    body=ctx.body,
                    summaries=summaries,
                ),
            }
        ]

        async def attempt(genius: bool) -> str:
            data = await self._greptile.query(
                messages=messages,
                repositories=ctx.repositories,
                api_key=ctx.api_key,
                platform_headers=ctx.platform_headers,
                genius=genius,
                json_mode=False,
            )
            return data["message"]

        return await self._retry.run(attempt, label="overall comment")
