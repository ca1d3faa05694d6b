"""Turn raw AI review comments into platform-agnostic inline comments."""
import logging
import re
from typing import NamedTuple, Optional

from reviewbot.models.review import ChangeKind, NormalizedComment, RawComment, RawReviewResult
from reviewbot.models.session import ChangedFile

logger = logging.getLogger(__name__)

# Comments opening with these words are vague requests to double-check
# something and are dropped.
DISALLOWED_PREFIXES = (
    "Ensure",
    "Verify",
    "Validate",
    "Consider",
    "Review",
    "Confirm",
)

# Ranges wider than this collapse to their first line.
SPAN_COLLAPSE_THRESHOLD = 15

_HUNK_HEADER = re.compile(r"^@@ -\d+(?:,\d+)? \+(\d+)(?:,(\d+))? @@")


class Hunk(NamedTuple):
    start: int
    end: int

    def contains(self, first: int, last: int) -> bool:
        return self.start <= first and last <= self.end


def new_file_hunks(patch: str) -> list[Hunk]:
    """New-file line ranges covered by each hunk of a unified diff."""
    hunks = []
    for line in patch.splitlines():
        match = _HUNK_HEADER.match(line)
        if not match:
            continue
        start = int(match.group(1))
        length = int(match.group(2)) if match.group(2) is not None else 1
        if length > 0:
            hunks.append(Hunk(start, start + length - 1))
    return hunks


def is_disallowed(body: str) -> bool:
    return body.startswith(DISALLOWED_PREFIXES)


def derive_lines(start: Optional[int], end: Optional[int]) -> Optional[tuple[int, Optional[int]]]:
    """
    Pick the lines a comment is attached to.

    Returns ``(line, None)`` for a single-line comment, ``(start, end)`` for
    a span, or None when there is no line to attach to.
    """
    if start is not None and end is not None and start > end:
        start, end = end, start

    if start is None or start == end:
        if end is None:
            return None
        return end, None
    if end is None:
        return start, None
    if end - start <= SPAN_COLLAPSE_THRESHOLD:
        return start, end
    return start, None


def _change_kind(file: ChangedFile, raw: RawComment, use_modify_type: bool) -> ChangeKind:
    if file.status == "removed":
        return ChangeKind.DELETE
    if use_modify_type and raw.modify_type is not None:
        return ChangeKind(raw.modify_type)
    if file.status == "added":
        return ChangeKind.ADD
    return ChangeKind.MODIFY


def normalize(file: ChangedFile, raw: RawReviewResult, use_modify_type: bool = False) -> list[NormalizedComment]:
    """
    Convert the AI comments for one file into NormalizedComments.

    ``use_modify_type`` lets the service's add/delete tag pick the diff side;
    otherwise the side follows the file's change status. Order is preserved
    and the inputs are not modified.
    """
    hunks = new_file_hunks(file.patch)
    normalized = []

    for comment in raw.comments:
        if not comment.comment or is_disallowed(comment.comment):
            logger.debug(f"Dropping non-actionable comment on {file.path}: {comment.comment[:40]!r}")
            continue

        kind = _change_kind(file, comment, use_modify_type)

        if file.status == "removed":
            line_start, line_end = 1, None
        else:
            lines = derive_lines(comment.start, comment.end)
            if lines is None:
                logger.debug(f"Dropping comment on {file.path} without line numbers")
                continue
            line_start, line_end = lines

            if line_start < 1:
                logger.debug(f"Dropping comment on {file.path} at invalid line {line_start}")
                continue

            # A span must stay inside one hunk of the new file
            if (
                line_end is not None
                and kind != ChangeKind.DELETE
                and hunks
                and not any(h.contains(line_start, line_end) for h in hunks)
            ):
                line_end = None

        normalized.append(
            NormalizedComment(
                file_path=file.path,
                change_kind=kind,
                line_start=line_start,
                line_end=line_end,
                body=comment.comment,
            )
        )

    return normalized
