"""Webhook payload variants.

Parsing is the classifier: ``parse_event`` turns a raw JSON body into exactly
one of the event models below, falling back to ``UnknownEvent`` for anything
it does not recognize.
"""
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore")


class Label(_Payload):
    name: str


class User(_Payload):
    login: str = ""
    type: str = "User"


class Repo(_Payload):
    full_name: str
    default_branch: str = "main"


class Ref(_Payload):
    ref: str
    sha: str = ""
    repo: Optional[Repo] = None


class PullRequest(_Payload):
    number: int
    title: str = ""
    body: Optional[str] = None
    url: str = ""
    labels: list[Label] = []
    head: Ref
    base: Ref


class IssuePullRequestLink(_Payload):
    url: str = ""


class Issue(_Payload):
    number: int
    url: str = ""
    labels: list[Label] = []
    pull_request: Optional[IssuePullRequestLink] = None


class Comment(_Payload):
    body: Optional[str] = ""
    user: User = User()


class Installation(_Payload):
    id: int


class GitHubPullRequestEvent(_Payload):
    platform: Literal["github"] = "github"
    action: str = ""
    pull_request: PullRequest
    repository: Repo
    installation: Optional[Installation] = None

    @property
    def labels(self) -> list[str]:
        return [label.name for label in self.pull_request.labels]


class GitHubCommentEvent(_Payload):
    """A comment on a pull request, either a review comment or an issue comment."""
    platform: Literal["github"] = "github"
    action: str = ""
    comment: Comment
    repository: Repo
    installation: Optional[Installation] = None
    pull_request: Optional[PullRequest] = None
    issue: Optional[Issue] = None

    @property
    def number(self) -> int:
        if self.pull_request is not None:
            return self.pull_request.number
        return self.issue.number


class GitLabProject(_Payload):
    id: int
    web_url: str = ""
    path_with_namespace: str = ""


class LastCommit(_Payload):
    id: str


class MergeRequestAttributes(_Payload):
    iid: int
    action: Optional[str] = None
    title: str = ""
    description: Optional[str] = None
    source_branch: str
    target_branch: str
    last_commit: LastCommit


class GitLabMergeRequestEvent(_Payload):
    platform: Literal["gitlab"] = "gitlab"
    object_kind: Literal["merge_request"]
    project: GitLabProject
    object_attributes: MergeRequestAttributes


class UnknownEvent(_Payload):
    platform: Literal["github", "unknown"] = "unknown"
    reason: str = ""


WebhookEvent = Union[GitHubPullRequestEvent, GitHubCommentEvent, GitLabMergeRequestEvent, UnknownEvent]


def parse_event(payload) -> WebhookEvent:
    """Classify a webhook body by its shape."""
    if not isinstance(payload, dict):
        return UnknownEvent(reason="payload is not a JSON object")

    try:
        if "pull_request" in payload or "issue" in payload:
            if "comment" in payload:
                event = GitHubCommentEvent.model_validate(payload)
                if event.pull_request is None and (event.issue is None or event.issue.pull_request is None):
                    return UnknownEvent(platform="github", reason="comment is not on a pull request")
                return event
            if "pull_request" in payload:
                return GitHubPullRequestEvent.model_validate(payload)
            return UnknownEvent(platform="github", reason="issue events are not supported")

        if payload.get("object_kind") == "merge_request":
            return GitLabMergeRequestEvent.model_validate(payload)
    except ValidationError as e:
        return UnknownEvent(reason=f"malformed payload ({e.error_count()} validation errors)")

    return UnknownEvent(reason="unrecognized payload shape")
