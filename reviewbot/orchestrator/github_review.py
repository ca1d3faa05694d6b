import logging

from reviewbot.agents.reviewer import RequestContext, ReviewClient
from reviewbot.config import Settings
from reviewbot.integrations.github import GitHubClient
from reviewbot.models.events import PullRequest, Repo
from reviewbot.models.integration import IntegrationSettings
from reviewbot.models.session import ReviewSession, ShaPair
from reviewbot.orchestrator.pipeline import overall_comment, review_files
from reviewbot.review.poster import GitHubReviewPoster

logger = logging.getLogger(__name__)


class GitHubReviewPipeline:
    """Review one GitHub pull request end to end."""

    def __init__(self, settings: Settings, reviewer: ReviewClient):
        self._settings = settings
        self._reviewer = reviewer

    async def run(
        self,
        client: GitHubClient,
        repository: Repo,
        pull_request: PullRequest,
        integration: IntegrationSettings,
        token: str,
    ) -> ReviewSession:
        owner, repo = repository.full_name.split("/", 1)
        pr = pull_request
        logger.info(f"Handling pull request {repository.full_name}#{pr.number}")

        # STEP 1: changed files and their new content
        files = await client.list_pull_files(owner, repo, pr.number)
        head_ref = pr.head.sha or pr.head.ref
        files = [
            f if f.status == "removed"
            else f.model_copy(update={"content_lines": await client.get_file_lines(owner, repo, f.path, head_ref)})
            for f in files
        ]

        base_repo = pr.base.repo or repository
        ctx = RequestContext(
            platform="github",
            repository=pr.head.repo.full_name if pr.head.repo else repository.full_name,
            source_branch=pr.head.ref,
            target_branch=pr.base.ref,
            title=pr.title,
            body=pr.body or "",
            changed_paths=[f.path for f in files],
            instructions=integration.instructions,
            index_repository=base_repo.full_name,
            index_branch=base_repo.default_branch,
            api_key=integration.api_key,
            platform_token=token,
        )

        # STEP 2: per-file reviews, then the overall comment
        comments, summaries, failed = await review_files(
            self._reviewer, ctx, files, concurrency=self._settings.review_concurrency
        )
        overall = await overall_comment(self._reviewer, ctx, summaries)

        session = ReviewSession(
            platform="github",
            repository=repository.full_name,
            number=pr.number,
            title=pr.title,
            body=pr.body or "",
            source_branch=pr.head.ref,
            target_branch=pr.base.ref,
            shas=ShaPair(base_sha=pr.base.sha, head_sha=pr.head.sha) if pr.head.sha else None,
            files=files,
            comments=comments,
            summaries=summaries,
            overall_comment=overall,
            custom_comment=integration.custom_comment,
            failed_files=failed,
        )

        # STEP 3: post
        mode = await GitHubReviewPoster(client).post(session)
        logger.info(f"Review for {repository.full_name}#{pr.number} posted as {mode}")
        return session
