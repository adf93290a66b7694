# app/settings.py
from __future__ import annotations

import json
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings

from app.errors import ConfigurationError


class BlogConfig(BaseModel):
    """One target Ghost blog (multi-blog variant)."""

    id: str
    name: str = ""
    url: str
    admin_key: str = ""
    content_key: str = ""


def _parse_blogs(raw: Optional[str]) -> List[BlogConfig]:
    """
    Parse the GHOST_BLOGS JSON array.
    Example: '[{"id":"main","url":"https://blog.example.com","admin_key":"id:hex","content_key":"abc"}]'
    Empty/None -> []
    """
    if not raw or not raw.strip():
        return []
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"GHOST_BLOGS is not valid JSON: {e}")
    if not isinstance(data, list):
        raise ConfigurationError("GHOST_BLOGS must be a JSON array")
    try:
        return [BlogConfig.model_validate(b) for b in data]
    except ValidationError as e:
        raise ConfigurationError(f"GHOST_BLOGS entry is invalid: {e.errors()[0].get('msg')}")


class Settings(BaseSettings):
    # ----- runtime -----
    ENV: str = Field(default="dev")
    LOG_LEVEL: str = Field(default="INFO", alias="LOG_LEVEL")

    # ----- operator auth -----
    APP_PASSWORD: Optional[str] = Field(default=None, alias="APP_PASSWORD")
    SESSION_SECRET: str = Field(default="dev-only", alias="SESSION_SECRET")
    SESSION_MAX_AGE_HOURS: int = Field(default=24, alias="SESSION_MAX_AGE_HOURS")

    # ----- Ghost (single blog) -----
    GHOST_API_URL: Optional[str] = Field(default=None, alias="GHOST_API_URL")
    GHOST_ADMIN_API_KEY: Optional[str] = Field(default=None, alias="GHOST_ADMIN_API_KEY")
    GHOST_CONTENT_API_KEY: Optional[str] = Field(default=None, alias="GHOST_CONTENT_API_KEY")
    GHOST_ACCEPT_VERSION: str = Field(default="v5.0", alias="GHOST_ACCEPT_VERSION")

    # ----- Ghost (multi blog, JSON STRING) -----
    GHOST_BLOGS_JSON: Optional[str] = Field(default=None, alias="GHOST_BLOGS")

    # ----- Gemini -----
    GEMINI_API_KEY: Optional[str] = Field(default=None, alias="GEMINI_API_KEY")
    GEMINI_MODEL: str = Field(default="gemini-2.5-pro", alias="GEMINI_MODEL")
    GEMINI_API_URL: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        alias="GEMINI_API_URL",
    )

    # ----- persisted resources -----
    DATA_DIR: str = Field(default="./data", alias="DATA_DIR")

    # ----- timeouts (seconds) -----
    HTTP_TIMEOUT_S: float = Field(default=30.0, alias="HTTP_TIMEOUT_S")
    GEMINI_TIMEOUT_S: float = Field(default=120.0, alias="GEMINI_TIMEOUT_S")

    # pydantic-settings v2 config
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
        "extra": "ignore",
        "populate_by_name": True,
    }

    # ----- Helpers -----
    @property
    def BLOGS(self) -> List[BlogConfig]:
        """Configured blogs; GHOST_BLOGS wins over the single-blog variables."""
        blogs = _parse_blogs(self.GHOST_BLOGS_JSON)
        if blogs:
            return blogs
        if not self.GHOST_API_URL:
            return []
        return [
            BlogConfig(
                id="default",
                name="Default",
                url=self.GHOST_API_URL,
                admin_key=self.GHOST_ADMIN_API_KEY or "",
                content_key=self.GHOST_CONTENT_API_KEY or "",
            )
        ]

    @property
    def LIBRARY_PATH(self) -> Path:
        return Path(self.DATA_DIR) / "tag-library.json"

    @property
    def TAGS_PROMPT_PATH(self) -> Path:
        return Path(self.DATA_DIR) / "ai-prompt.txt"

    @property
    def DESCRIPTIONS_PROMPT_PATH(self) -> Path:
        return Path(self.DATA_DIR) / "descriptions-prompt.txt"


settings = Settings()
