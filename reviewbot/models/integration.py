from pydantic import BaseModel, ConfigDict, Field


class PrReviewIntegration(BaseModel):
    """The ``prReview`` entry of a repository's integrations document."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    user_id: str = Field(default="", alias="userId")
    labels: list[str] = []
    instructions: str = ""
    comment: str = ""


class UserIntegration(BaseModel):
    """A user's integration settings document."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    user_id: str = ""
    api_key: str = Field(default="", alias="greptileApiKey")
    repositories: list[str] = []

    @classmethod
    def from_document(cls, doc: dict) -> "UserIntegration":
        repos = [r["repository"] if isinstance(r, dict) else r for r in doc.get("repositories", [])]
        return cls.model_validate({**doc, "repositories": [r.lower() for r in repos if r]})


class IntegrationSettings(BaseModel):
    """What the review pipeline consumes from the settings store."""
    labels: list[str] = []
    instructions: str = ""
    custom_comment: str = ""
    api_key: str
