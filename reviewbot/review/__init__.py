from reviewbot.review.normalizer import DISALLOWED_PREFIXES, normalize
from reviewbot.review.placement import to_github_anchor, to_gitlab_position
from reviewbot.review.poster import GitHubReviewPoster, GitLabReviewPoster, build_aggregate_comment

__all__ = [
    "DISALLOWED_PREFIXES",
    "normalize",
    "to_github_anchor",
    "to_gitlab_position",
    "GitHubReviewPoster",
    "GitLabReviewPoster",
    "build_aggregate_comment",
]
