"""Configuration settings for the Grant Context Engine."""

# Load .env into os.environ so GRANT_ENGINE_* overrides work from a project file
from dotenv import load_dotenv
load_dotenv()

from pydantic_settings import BaseSettings
from pydantic import Field
from typing import Dict, List, Optional
from pathlib import Path


class Settings(BaseSettings):
    """Global settings for the engine.

    Settings can be overridden via environment variables with GRANT_ENGINE_ prefix.
    Example: GRANT_ENGINE_SESSION_TTL_HOURS=48
    """

    # Storage
    storage_backend: str = Field(
        default="file",
        description="Persistence backend: 'file' or 'memory'"
    )
    storage_dir: str = Field(
        default="./.grant_engine",
        description="Directory for the file backend"
    )

    # Sessions
    session_ttl_hours: float = Field(
        default=24.0,
        gt=0,
        description="Fixed session lifetime from creation, in hours"
    )

    # Schema / format tags
    context_schema_version: int = Field(
        default=2,
        ge=1,
        description="Schema tag written with the persisted context"
    )
    draft_format_version: int = Field(
        default=1,
        ge=1,
        description="formatVersion written into exported drafts"
    )

    # Drafts
    max_drafts: int = Field(
        default=10,
        ge=1,
        description="Maximum number of named drafts kept"
    )
    autosave_enabled: bool = Field(
        default=True,
        description="Whether the autosave slot is written"
    )
    autosave_every_n_changes: int = Field(
        default=3,
        ge=1,
        description="Accepted context changes between two autosaves"
    )

    # Validation thresholds
    organization_min_length: int = Field(
        default=3,
        ge=1,
        description="Minimum characters for an organization name"
    )
    organization_max_length: int = Field(
        default=200,
        description="Maximum characters for an organization name"
    )
    project_title_min_words: int = Field(
        default=2,
        ge=1,
        description="Minimum whitespace-separated words in a project title"
    )
    project_title_max_length: int = Field(
        default=300,
        description="Maximum characters for a project title"
    )
    call_max_length: int = Field(
        default=100,
        description="Maximum characters for a call identifier"
    )

    # Logging
    log_level: str = Field(
        default="WARNING",
        description="Log level used by the CLI when --verbose is not given"
    )

    model_config = {
        "env_prefix": "GRANT_ENGINE_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    def get_storage_path(self) -> Path:
        """Get storage directory as Path object."""
        return Path(self.storage_dir)

    def context_key(self, version: Optional[int] = None) -> str:
        """Storage key of the persisted context for a schema version."""
        return f"context:v{version or self.context_schema_version}"


# Fields that must be present and valid to leave the first workflow step
GATING_FIELDS: List[str] = ["organization_name", "project_title", "call"]

# Fields checked by the validator before they enter the context
VALIDATED_FIELDS: List[str] = GATING_FIELDS + ["call_identifier"]

# Program prefix (first call-identifier segment) to proposal template id
PROGRAM_TEMPLATES: Dict[str, str] = {
    "HORIZON": "he-ria-2025",
    "CERV": "cerv-democracy-2025",
    "ERASMUS": "erasmus-ka2-ukraine",
    "MSCA": "msca4ukraine",
}

# Program prefixes recognised in call identifiers
KNOWN_PROGRAMS: List[str] = [
    "HORIZON", "CERV", "ERASMUS", "CREATIVE", "DAAD", "FACILITY", "MSCA",
]


# Create singleton instance
settings = Settings()
