from __future__ import annotations

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(case_sensitive=False, populate_by_name=True)

    gitlab_token: SecretStr | None = None
    github_token: SecretStr | None = None
    http_timeout: float = Field(
        default=60.0, gt=0, validation_alias="TREEPLATE_HTTP_TIMEOUT"
    )
    user_agent: str = Field(default="treeplate", validation_alias="TREEPLATE_USER_AGENT")

    def with_tokens(
        self, gitlab_token: str | None = None, github_token: str | None = None
    ) -> Settings:
        """Return a copy where explicitly given tokens replace environment ones."""
        updates: dict[str, SecretStr] = {}
        if gitlab_token:
            updates["gitlab_token"] = SecretStr(gitlab_token)
        if github_token:
            updates["github_token"] = SecretStr(github_token)
        return self.model_copy(update=updates)
