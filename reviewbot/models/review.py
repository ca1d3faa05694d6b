from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


# Widest span a single inline comment may cover
MAX_COMMENT_SPAN = 20


class ChangeKind(str, Enum):
    ADD = "add"
    DELETE = "delete"
    MODIFY = "modify"


class RawComment(BaseModel):
    """A comment as returned by the AI service. Line numbers refer to the new file."""
    model_config = ConfigDict(extra="ignore")

    start: Optional[int] = None
    end: Optional[int] = None
    comment: str
    modify_type: Optional[Literal["add", "delete"]] = None


class RawReviewResult(BaseModel):
    """Decoded AI service output for one file."""
    model_config = ConfigDict(extra="ignore")

    summary: str = ""
    comments: list[RawComment] = []


class NormalizedComment(BaseModel):
    """A platform-agnostic inline comment."""
    model_config = ConfigDict(frozen=True)

    file_path: str
    change_kind: ChangeKind
    line_start: int = Field(ge=1)
    line_end: Optional[int] = None
    body: str

    @model_validator(mode="after")
    def _check_span(self) -> "NormalizedComment":
        if self.line_end is not None:
            if self.line_end < self.line_start:
                raise ValueError(f"line_end {self.line_end} is before line_start {self.line_start}")
            if self.line_end - self.line_start + 1 > MAX_COMMENT_SPAN:
                raise ValueError(f"comment spans more than {MAX_COMMENT_SPAN} lines")
        return self

    @property
    def is_span(self) -> bool:
        return self.line_end is not None and self.line_end != self.line_start

    def line_label(self) -> str:
        """Human-readable line reference, e.g. ``Line 4`` or ``Lines 4 - 9``."""
        if self.is_span:
            return f"Lines {self.line_start} - {self.line_end}"
        return f"Line {self.line_start}"
