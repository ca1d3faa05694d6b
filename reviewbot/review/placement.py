"""Map normalized comments onto each platform's diff addressing."""
from pydantic import ValidationError

from reviewbot.errors import AnchorError
from reviewbot.models.anchors import GitHubAnchor, GitLabPosition
from reviewbot.models.review import ChangeKind, NormalizedComment
from reviewbot.models.session import ChangedFile, ShaPair


def github_side(kind: ChangeKind) -> str:
    return "LEFT" if kind == ChangeKind.DELETE else "RIGHT"


def to_github_anchor(comment: NormalizedComment) -> GitHubAnchor:
    """Side/line anchor for a GitHub review comment."""
    side = github_side(comment.change_kind)
    try:
        if comment.is_span:
            return GitHubAnchor(
                path=comment.file_path,
                side=side,
                line=comment.line_end,
                start_line=comment.line_start,
                start_side=side,
            )
        return GitHubAnchor(path=comment.file_path, side=side, line=comment.line_start)
    except ValidationError as e:
        raise AnchorError(f"cannot anchor comment on {comment.file_path!r}: {e}") from e


def to_gitlab_position(comment: NormalizedComment, file: ChangedFile, shas: ShaPair) -> GitLabPosition:
    """
    Position object for a GitLab diff discussion.

    ``start_sha`` is the base branch tip. Added and modified code is anchored
    with ``new_line``, deleted code with ``old_line``.
    """
    if comment.change_kind == ChangeKind.DELETE:
        lines = {"old_line": comment.line_start}
    else:
        lines = {"new_line": comment.line_start}

    try:
        return GitLabPosition(
            base_sha=shas.base_sha,
            head_sha=shas.head_sha,
            start_sha=shas.base_sha,
            old_path=file.old_path,
            new_path=file.path,
            **lines,
        )
    except ValidationError as e:
        raise AnchorError(f"cannot anchor comment on {file.path!r}: {e}") from e
