"""
OpenPanel SDK Configuration
===========================

Client options as a frozen Pydantic model, with environment fallbacks
loaded through Pydantic Settings (``OPENPANEL_CLIENT_ID`` and friends).
"""

from typing import Any, Callable, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_API_URL = "https://api.openpanel.dev"


class OpenPanelSettings(BaseSettings):
    """Options that can come from the environment."""

    model_config = SettingsConfigDict(
        env_prefix="OPENPANEL_",
        extra="ignore",
    )

    CLIENT_ID: Optional[str] = None
    CLIENT_SECRET: Optional[str] = None
    API_URL: Optional[str] = None
    DISABLED: Optional[bool] = None
    WAIT_FOR_PROFILE: Optional[bool] = None


class OpenPanelOptions(BaseModel):
    """
    Client configuration.

    Example:
        options = OpenPanelOptions(client_id="...", wait_for_profile=True)

        # or read OPENPANEL_* variables, keeping explicit values
        options = OpenPanelOptions.from_env(disabled=True)
    """

    model_config = ConfigDict(frozen=True)

    client_id: str = Field(min_length=1)
    client_secret: Optional[str] = None
    api_url: str = DEFAULT_API_URL
    wait_for_profile: bool = False
    # Called with each event; returning False drops it.
    filter: Optional[Callable[[Any], bool]] = None
    disabled: bool = False
    automatic_tracking: bool = False

    max_retries: int = Field(default=3, ge=0)
    initial_retry_delay: float = Field(default=0.5, ge=0)
    timeout: Optional[float] = Field(default=None, gt=0)
    user_agent: Optional[str] = None

    @classmethod
    def from_env(cls, **overrides: Any) -> "OpenPanelOptions":
        """Build options from ``OPENPANEL_*`` variables; keyword arguments win."""
        settings = OpenPanelSettings()
        values = {
            key.lower(): value
            for key, value in settings.model_dump().items()
            if value is not None
        }
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)
