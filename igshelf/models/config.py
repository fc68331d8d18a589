"""
Pydantic model for application configuration.
Provides robust validation for all settings.
"""

from pathlib import Path

from pydantic import BaseModel, field_validator, model_validator

API_SOURCE = "api"
DEFAULT_BASE_URL = "https://graph.instagram.com"
DEFAULT_MAX_WORKERS = 10

TIMELINE_JSON = "timeline.json"
TIMELINE_HTML = "timeline.html"
CONTENT_DIR = "content"


class ShelfConfig(BaseModel):
    """A validated configuration model for the application."""

    # Timeline source: "api" or a path to an Instagram zip archive
    source: str = ""
    destination: str
    max_workers: int = DEFAULT_MAX_WORKERS

    # Instagram API
    token: str = ""
    user: str = "me"
    base_url: str = DEFAULT_BASE_URL

    # Optional directory for JSON event logs
    log_dir: str = ""

    class Config:
        """Pydantic model configuration."""

        validate_assignment = True
        str_strip_whitespace = True

    @field_validator("source")
    @classmethod
    def validate_source(cls, v: str) -> str:
        """Accepts either the API or a zip archive."""
        if v and v != API_SOURCE and not v.lower().endswith(".zip"):
            raise ValueError(
                f"Source must be 'api' or a path to a .zip archive, got: {v}"
            )
        return v

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if not v:
            raise ValueError("Destination directory cannot be empty.")
        return v

    @field_validator("max_workers")
    @classmethod
    def validate_workers(cls, v: int) -> int:
        """Ensures a reasonable number of workers."""
        if v < 1 or v > 64:
            raise ValueError("Max workers must be between 1 and 64.")
        return v

    @model_validator(mode="after")
    def validate_source_settings(self) -> "ShelfConfig":
        """Validates that the chosen source can actually be opened."""
        if self.source == API_SOURCE and not self.token:
            raise ValueError("The 'api' source requires an access token.")
        if self.is_archive and not Path(self.source).expanduser().is_file():
            raise ValueError(f"Archive not found: {self.source}")
        return self

    @property
    def is_archive(self) -> bool:
        return bool(self.source) and self.source != API_SOURCE

    @property
    def destination_path(self) -> Path:
        return Path(self.destination).expanduser()

    @property
    def timeline_json_path(self) -> Path:
        return self.destination_path / TIMELINE_JSON

    @property
    def timeline_html_path(self) -> Path:
        return self.destination_path / TIMELINE_HTML

    @property
    def content_dir(self) -> Path:
        return self.destination_path / CONTENT_DIR

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Returns a set of all keys that may appear in the INI file."""
        return set(cls.model_fields)
