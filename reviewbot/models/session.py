from pydantic import BaseModel, ConfigDict, Field
from typing import Literal, Optional

from reviewbot.models.review import NormalizedComment


FileStatus = Literal["added", "removed", "modified", "renamed", "copied", "changed", "unchanged"]


class ChangedFile(BaseModel):
    """A file touched by the pull/merge request."""
    model_config = ConfigDict(frozen=True)

    path: str
    previous_path: Optional[str] = None
    status: FileStatus = "modified"
    patch: str = ""  # Unified diff for this file
    content_lines: tuple[str, ...] = ()  # New-version content, empty if it could not be fetched

    @property
    def old_path(self) -> str:
        return self.previous_path or self.path


class ShaPair(BaseModel):
    """Commit SHAs a diff is anchored to."""
    model_config = ConfigDict(frozen=True)

    base_sha: str
    head_sha: str


class FileSummary(BaseModel):
    """Per-file summary returned by the AI service, fed into the overall comment."""
    path: str
    status: str
    summary: str


class ReviewSession(BaseModel):
    """One end-to-end run of the review pipeline for a single triggering event."""
    platform: Literal["github", "gitlab"]
    repository: str  # owner/name for GitHub, project id for GitLab
    number: int  # PR number or MR iid
    title: str = ""
    body: str = ""
    source_branch: str = ""
    target_branch: str = ""
    shas: Optional[ShaPair] = None
    files: list[ChangedFile] = []
    comments: list[NormalizedComment] = []
    summaries: list[FileSummary] = []
    overall_comment: str = ""
    custom_comment: str = ""
    failed_files: list[str] = Field(default_factory=list)

    @property
    def file_order(self) -> list[str]:
        return [f.path for f in self.files]

    def file_for(self, path: str) -> Optional[ChangedFile]:
        for f in self.files:
            if f.path == path:
                return f
        return None
