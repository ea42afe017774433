"""Letterbox settings and configuration.

This module defines the configuration options for the Letterbox layer.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Letterbox settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Path namespace shared by every document this layer writes
    app_name: str = Field(default="letterbox", alias="LETTERBOX_APP_NAME")

    # Document format passed to the replica on every write
    doc_format: str = Field(default="es.4", alias="LETTERBOX_DOC_FORMAT")

    # Upper bound on draft-id collision probing
    draft_id_max_attempts: int = Field(default=1000, ge=1, alias="LETTERBOX_DRAFT_ID_MAX_ATTEMPTS")

    # When enabled, read markers only ever move forward
    monotonic_read_markers: bool = Field(
        default=False,
        alias="LETTERBOX_MONOTONIC_READ_MARKERS",
    )

    # Share address used by the in-memory replica when none is given
    replica_share: str = Field(default="+letterbox.a1", alias="LETTERBOX_REPLICA_SHARE")

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def path_root(self) -> str:
        """Return the leading path component shared by every letterbox document.

        Returns:
            The namespace prefix, e.g. ``/letterbox``
        """
        return f"/{self.app_name}"


settings = Settings()
