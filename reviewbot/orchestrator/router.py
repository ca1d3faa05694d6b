import httpx
import logging
from typing import Optional

from reviewbot.config import Settings
from reviewbot.errors import ReviewBotError
from reviewbot.integrations.github import GitHubClient
from reviewbot.integrations.github_auth import GitHubAppAuth
from reviewbot.integrations.gitlab import GitLabClient
from reviewbot.integrations.mongodb import SettingsStore
from reviewbot.models.events import (
    GitHubCommentEvent,
    GitHubPullRequestEvent,
    GitLabMergeRequestEvent,
    PullRequest,
    parse_event,
)
from reviewbot.models.integration import IntegrationSettings
from reviewbot.orchestrator.github_review import GitHubReviewPipeline
from reviewbot.orchestrator.gitlab_review import GitLabReviewPipeline

logger = logging.getLogger(__name__)

PR_REVIEW_INTEGRATION = "prReview"
PR_TRIGGER_ACTIONS = ("opened", "reopened")
COMMENT_TRIGGER_ACTIONS = ("created", "edited")


def should_trigger(event, mention_token: str) -> bool:
    """Whether a GitHub event asks for a review."""
    if isinstance(event, GitHubCommentEvent):
        return (
            event.action in COMMENT_TRIGGER_ACTIONS
            and mention_token in (event.comment.body or "")
            and event.comment.user.type != "Bot"
        )
    return event.action in PR_TRIGGER_ACTIONS


def labels_match(event_labels: list[str], allowed: list[str], sentinel: str) -> bool:
    """
    An empty allow-list accepts everything; otherwise the event needs one
    allowed label, the sentinel label always counting as allowed.
    """
    if not allowed:
        return True
    return bool(set(event_labels) & (set(allowed) | {sentinel}))


class EventRouter:
    """Classifies webhook payloads and hands triggering ones to a review pipeline."""

    def __init__(
        self,
        settings: Settings,
        store: SettingsStore,
        github_pipeline: GitHubReviewPipeline,
        gitlab_pipeline: GitLabReviewPipeline,
        github_auth: GitHubAppAuth,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._settings = settings
        self._store = store
        self._github_pipeline = github_pipeline
        self._gitlab_pipeline = gitlab_pipeline
        self._github_auth = github_auth
        self._transport = transport

    async def dispatch(self, payload: dict, gitlab_token: Optional[str] = None) -> None:
        """Entry point for background tasks. Never raises."""
        event = parse_event(payload)
        try:
            if isinstance(event, (GitHubPullRequestEvent, GitHubCommentEvent)):
                await self.handle_github(event)
            elif isinstance(event, GitLabMergeRequestEvent):
                await self.handle_gitlab(event, gitlab_token)
            else:
                logger.info(f"Unsupported event ({event.platform}): {event.reason}")
        except Exception as e:
            logger.exception(f"Error processing {event.platform} event: {e}")

    async def resolve_integration(
        self, repository: str, branch: str, event_labels: Optional[list[str]] = None
    ) -> Optional[IntegrationSettings]:
        """
        Integration settings for a repository, or None when the event should be skipped.

        ``event_labels`` of None skips label filtering. Raises ReviewBotError
        when the stored settings are inconsistent.
        """
        integration = await self._store.get_integration(repository, branch, PR_REVIEW_INTEGRATION)
        if integration is None:
            logger.info(f"No {PR_REVIEW_INTEGRATION} integration for {repository}, {branch}")
            return None

        if event_labels is not None and not labels_match(event_labels, integration.labels, self._settings.sentinel_label):
            logger.info(
                f"No matching labels for {PR_REVIEW_INTEGRATION} of {repository}, {branch}: "
                f"got {event_labels}, expected {integration.labels + [self._settings.sentinel_label]}"
            )
            return None

        if not integration.user_id:
            raise ReviewBotError(f"No user id on {PR_REVIEW_INTEGRATION} integration of {repository}")

        user = await self._store.get_user_integration(integration.user_id)
        if user is None or not user.api_key:
            raise ReviewBotError(f"No api key for user {integration.user_id} ({repository})")

        if repository not in user.repositories:
            try:
                await self._store.delete_integration(repository, branch, PR_REVIEW_INTEGRATION)
            except Exception as e:
                logger.warning(f"Could not remove stale integration for {repository}: {e}")
            raise ReviewBotError(f"Repository {repository} is not in the repositories of user {integration.user_id}")

        return IntegrationSettings(
            labels=integration.labels,
            instructions=integration.instructions,
            custom_comment=integration.comment,
            api_key=user.api_key,
        )

    async def handle_github(self, event) -> None:
        repository = event.repository.full_name.lower()
        branch = event.repository.default_branch
        number = event.pull_request.number if event.pull_request else event.number

        if not should_trigger(event, self._settings.mention_token):
            logger.info(f"Unsupported action: {event.action} for {PR_REVIEW_INTEGRATION} of {repository}#{number}")
            return

        # Comments bypass label filtering
        labels = None if isinstance(event, GitHubCommentEvent) else event.labels
        try:
            integration = await self.resolve_integration(repository, branch, labels)
        except ReviewBotError as e:
            logger.error(str(e))
            return
        if integration is None:
            return

        if event.installation is None:
            logger.info(f"No installation on event for {repository}, skipping")
            return

        token = await self._github_auth.installation_token(event.installation.id)
        client = GitHubClient(self._settings, token, transport=self._transport)

        pull_request = event.pull_request
        if pull_request is None:
            owner, repo = event.repository.full_name.split("/", 1)
            pull_request = PullRequest.model_validate(await client.get_pull_request(owner, repo, number))

        logger.info(f"Attempting to review {repository}#{number}")
        await self._github_pipeline.run(client, event.repository, pull_request, integration, token)

    def gitlab_should_trigger(self, event: GitLabMergeRequestEvent) -> bool:
        if not self._settings.gitlab_action_guard:
            return True
        return event.object_attributes.action in self._settings.gitlab_trigger_actions

    async def handle_gitlab(self, event: GitLabMergeRequestEvent, token: Optional[str]) -> None:
        iid = event.object_attributes.iid
        if not self.gitlab_should_trigger(event):
            logger.info(f"MR !{iid} action {event.object_attributes.action!r} does not require processing")
            return
        if not token:
            logger.info(f"No GitLab token on request for MR !{iid}, skipping")
            return

        client = GitLabClient(self._settings, token, transport=self._transport)
        await self._gitlab_pipeline.run(client, event, token)
        logger.info(f"Comments posted to MR !{iid}")
