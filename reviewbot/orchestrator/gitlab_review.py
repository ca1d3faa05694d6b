import logging

from reviewbot.agents.reviewer import RequestContext, ReviewClient
from reviewbot.config import Settings
from reviewbot.integrations.gitlab import GitLabClient, path_with_namespace
from reviewbot.models.events import GitLabMergeRequestEvent
from reviewbot.models.session import ReviewSession, ShaPair
from reviewbot.orchestrator.pipeline import overall_comment, review_files
from reviewbot.review.poster import GitLabReviewPoster

logger = logging.getLogger(__name__)


class GitLabReviewPipeline:
    """
    Review one GitLab merge request end to end.

    1. Fetch the MR diffs and the new content of each changed file
    2. Ask the review service for per-file comments and an overall comment
    3. Post the overall comment as a note and each comment as a diff discussion
    """

    def __init__(self, settings: Settings, reviewer: ReviewClient):
        self._settings = settings
        self._reviewer = reviewer

    def base_branch(self, event: GitLabMergeRequestEvent) -> str:
        return self._settings.gitlab_base_branch or event.object_attributes.target_branch

    async def run(self, client: GitLabClient, event: GitLabMergeRequestEvent, token: str) -> ReviewSession:
        project = event.project
        attrs = event.object_attributes
        project_path = project.path_with_namespace or path_with_namespace(project.web_url)
        base_branch = self.base_branch(event)
        logger.info(f"Handling merge request {project_path}!{attrs.iid} ({attrs.source_branch} -> {base_branch})")

        shas = ShaPair(
            base_sha=await client.get_branch_sha(project.id, base_branch),
            head_sha=attrs.last_commit.id,
        )

        files = await client.list_mr_diffs(project.id, attrs.iid)
        files = [
            f if f.status == "removed"
            else f.model_copy(update={"content_lines": await client.get_file_lines(project.id, f.path, attrs.source_branch)})
            for f in files
        ]

        ctx = RequestContext(
            platform="gitlab",
            repository=project_path,
            source_branch=attrs.source_branch,
            target_branch=base_branch,
            title=attrs.title,
            body=attrs.description or "",
            changed_paths=[f.path for f in files],
            index_repository=project_path,
            index_branch=base_branch,
            api_key=self._settings.greptile_api_key,
            platform_token=token,
        )

        comments, summaries, failed = await review_files(
            self._reviewer,
            ctx,
            files,
            concurrency=self._settings.review_concurrency,
            use_modify_type=True,
        )
        overall = await overall_comment(self._reviewer, ctx, summaries)

        session = ReviewSession(
            platform="gitlab",
            repository=str(project.id),
            number=attrs.iid,
            title=attrs.title,
            body=attrs.description or "",
            source_branch=attrs.source_branch,
            target_branch=base_branch,
            shas=shas,
            files=files,
            comments=comments,
            summaries=summaries,
            overall_comment=overall,
            failed_files=failed,
        )

        await GitLabReviewPoster(client).post(session)
        return session
