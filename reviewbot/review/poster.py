"""Post normalized comments back to the code host."""
import httpx
import logging

from reviewbot.errors import AnchorError, PlatformAPIError
from reviewbot.integrations.github import GitHubClient
from reviewbot.integrations.gitlab import GitLabClient
from reviewbot.models.review import NormalizedComment
from reviewbot.models.session import ReviewSession
from reviewbot.review.placement import to_github_anchor, to_gitlab_position

logger = logging.getLogger(__name__)

POST_ERRORS = (PlatformAPIError, httpx.HTTPError)


def group_by_file(comments: list[NormalizedComment], file_order: list[str]) -> dict[str, list[NormalizedComment]]:
    """Group comments by path in changed-file order, keeping comment order within a file."""
    grouped: dict[str, list[NormalizedComment]] = {path: [] for path in file_order}
    for comment in comments:
        grouped.setdefault(comment.file_path, []).append(comment)
    return {path: items for path, items in grouped.items() if items}


def build_aggregate_comment(summary: str, comments: list[NormalizedComment], file_order: list[str]) -> str:
    """
    One comment body carrying the summary and every inline comment.

    Used when inline comments cannot be posted.
    """
    grouped = group_by_file(comments, file_order)
    if not grouped:
        return summary

    sections = []
    for path, items in grouped.items():
        lines = [f"**{path}**"]
        lines.extend(f"- {c.line_label()}: {c.body}" for c in items)
        sections.append("\n".join(lines))

    return f"{summary}\n\n## Comments\n\n" + "\n\n".join(sections)


def with_custom_comment(custom_comment: str, text: str) -> str:
    if not custom_comment:
        return text
    return f"{custom_comment}\n{text}"


class GitHubReviewPoster:
    """Posts a session as one batched GitHub review, degrading to a single comment."""

    def __init__(self, client: GitHubClient):
        self._client = client

    async def post(self, session: ReviewSession) -> str:
        """
        Returns ``"review"`` when the batched review was accepted and
        ``"comment"`` when the aggregate fallback was posted. A failing
        fallback propagates.
        """
        owner, repo = session.repository.split("/", 1)
        body = with_custom_comment(session.custom_comment, session.overall_comment)

        inline = []
        for comment in session.comments:
            try:
                inline.append(to_github_anchor(comment).to_review_comment(comment.body))
            except AnchorError as e:
                logger.error(f"Skipping inline comment: {e}")

        try:
            await self._client.create_review(
                owner,
                repo,
                session.number,
                body=body,
                comments=inline,
                event="COMMENT",
                commit_id=session.shas.head_sha if session.shas else None,
            )
            return "review"
        except POST_ERRORS as e:
            logger.info(f"Batched review rejected for {session.repository}#{session.number} ({e}), posting a single comment")

        aggregate = build_aggregate_comment(body, session.comments, session.file_order)
        await self._client.create_issue_comment(owner, repo, session.number, aggregate)
        return "comment"


class GitLabReviewPoster:
    """Posts a session as one MR note plus one diff discussion per comment."""

    def __init__(self, client: GitLabClient):
        self._client = client

    async def post(self, session: ReviewSession) -> int:
        """Returns the number of discussions created. Failures are per comment."""
        project_id = int(session.repository)

        summary = with_custom_comment(session.custom_comment, session.overall_comment)
        if summary:
            try:
                await self._client.create_note(project_id, session.number, summary)
            except POST_ERRORS as e:
                logger.error(f"Failed to post summary note on MR !{session.number}: {e}")

        posted = 0
        for comment in session.comments:
            file = session.file_for(comment.file_path)
            try:
                if file is None or session.shas is None:
                    raise AnchorError(f"no diff record or SHAs for {comment.file_path!r}")
                position = to_gitlab_position(comment, file, session.shas)
            except AnchorError as e:
                logger.error(f"Skipping comment: {e}")
                continue

            try:
                await self._client.create_discussion(project_id, session.number, comment.body, position)
                posted += 1
            except POST_ERRORS as e:
                logger.error(f"Error posting comment on {comment.file_path}: {e}")

        logger.info(f"Posted {posted}/{len(session.comments)} discussions to MR !{session.number}")
        return posted
