from reviewbot.orchestrator.github_review import GitHubReviewPipeline
from reviewbot.orchestrator.gitlab_review import GitLabReviewPipeline
from reviewbot.orchestrator.router import EventRouter

__all__ = ["EventRouter", "GitHubReviewPipeline", "GitLabReviewPipeline"]
