from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class GitHubAnchor(BaseModel):
    """Addressing for a GitHub review comment (side/line model)."""
    model_config = ConfigDict(frozen=True)

    path: str = Field(min_length=1)
    side: Literal["LEFT", "RIGHT"]
    line: int = Field(ge=1)
    start_line: Optional[int] = None
    start_side: Optional[Literal["LEFT", "RIGHT"]] = None

    def to_review_comment(self, body: str) -> dict:
        """Payload entry for the ``comments`` array of a create-review call."""
        return {**self.model_dump(exclude_none=True), "body": body}


class GitLabPosition(BaseModel):
    """Addressing for a GitLab diff discussion."""
    model_config = ConfigDict(frozen=True)

    position_type: Literal["text"] = "text"
    base_sha: str = Field(min_length=1)
    head_sha: str = Field(min_length=1)
    start_sha: str = Field(min_length=1)
    old_path: str = Field(min_length=1)
    new_path: str = Field(min_length=1)
    old_line: Optional[int] = Field(default=None, ge=1)
    new_line: Optional[int] = Field(default=None, ge=1)

    @model_validator(mode="after")
    def _exactly_one_line(self) -> "GitLabPosition":
        if (self.old_line is None) == (self.new_line is None):
            raise ValueError("exactly one of old_line/new_line must be set")
        return self

    def to_form(self, body: str) -> dict[str, str]:
        """Form fields for the create-discussion call."""
        form = {"body": body}
        for key, value in self.model_dump(exclude_none=True).items():
            form[f"position[{key}]"] = str(value)
        return form
