from typing import Annotated

from pydantic_settings import BaseSettings, NoDecode
from pydantic import Field, field_validator
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Greptile review service
    greptile_api_url: str = Field(..., alias="GREPTILE_API_URL")
    greptile_api_key: str = Field(..., alias="GREPTILE_API_KEY")

    # MongoDB settings store
    mongodb_uri: str = Field(..., alias="MONGODB_URI")
    mongodb_database: str = Field(default="reviewbot", alias="MONGODB_DATABASE")
    integrations_collection: str = Field(..., alias="INTEGRATIONS_COLLECTION")
    repositories_collection: str = Field(default="onboard-repositories", alias="REPOSITORIES_COLLECTION")
    deployment_region: str = Field(default="us-east-1", alias="DEPLOYMENT_REGION")

    # GitHub
    github_app_id: str = Field(..., alias="GITHUB_APP_ID")
    github_private_key: str = Field(..., alias="GITHUB_PRIVATE_KEY")
    github_api_base_url: str = Field(default="https://api.github.com", alias="GITHUB_API_BASE_URL")
    mention_token: str = Field(default="@greptileai", alias="MENTION_TOKEN")
    sentinel_label: str = Field(default="greptile", alias="SENTINEL_LABEL")

    # GitLab
    gitlab_api_base_url: str = Field(default="https://gitlab.com/api/v4", alias="GITLAB_API_BASE_URL")
    gitlab_action_guard: bool = Field(default=False, alias="GITLAB_ACTION_GUARD")
    # Comma-separated in the environment, e.g. "open,reopen"
    gitlab_trigger_actions: Annotated[list[str], NoDecode] = Field(
        default=["open", "reopen"], alias="GITLAB_TRIGGER_ACTIONS"
    )
    # Empty means "use the merge request's target branch"
    gitlab_base_branch: str = Field(default="", alias="GITLAB_BASE_BRANCH")

    # Review pipeline
    review_concurrency: int = Field(default=1, ge=1, alias="REVIEW_CONCURRENCY")
    http_timeout_seconds: float | None = Field(default=None, alias="HTTP_TIMEOUT_SECONDS")

    # App
    app_env: str = Field(default="development", alias="APP_ENV")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @field_validator("gitlab_trigger_actions", mode="before")
    @classmethod
    def _split_actions(cls, value):
        if isinstance(value, str):
            return [action.strip() for action in value.split(",") if action.strip()]
        return value

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()
