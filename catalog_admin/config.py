"""Application settings loaded from the environment (prefix ``CATALOG_ADMIN_``)."""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    api_base_url: str = Field(
        default="https://api.escuelajs.co/api/v1",
        description="Base URL of the catalog REST API",
    )
    refresh_interval: float = Field(default=30.0, description="Auto-refresh period in seconds")
    page_size: int = 10
    page_size_choices: List[int] = Field(default=[5, 10, 20, 50])
    request_timeout: Optional[float] = Field(
        default=None,
        description="HTTP timeout in seconds; unset keeps the HTTP library default",
    )
    export_dir: str = "."
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="CATALOG_ADMIN_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("api_base_url", mode="after")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("refresh_interval", mode="after")
    @classmethod
    def positive_interval(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("refresh_interval must be > 0")
        return v

    @field_validator("page_size_choices", mode="after")
    @classmethod
    def positive_choices(cls, v: List[int]) -> List[int]:
        if not v or any(size < 1 for size in v):
            raise ValueError("page_size_choices must be positive integers")
        return sorted(set(v))

    @model_validator(mode="after")
    def page_size_in_choices(self) -> "Settings":
        if self.page_size not in self.page_size_choices:
            raise ValueError(
                f"page_size {self.page_size} is not one of {self.page_size_choices}"
            )
        return self


@lru_cache
def get_settings() -> Settings:
    return Settings()
