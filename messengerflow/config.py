"""Application settings loaded from environment variables."""

import os

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _env_file() -> str | None:
    if os.getenv("PYTEST_CURRENT_TEST"):
        return None
    return ".env"


class Settings(BaseSettings):
    """MessengerFlow configuration. All values come from environment variables."""

    # Page credentials
    page_access_token: str = Field(default="")
    verify_token: str = Field(default="")
    app_secret: str = Field(default="")

    # Webhook
    webhook_path: str = Field(default="/webhook")
    webhook_port: int = Field(default=3000)

    # Graph API
    graph_api_url: str = Field(default="https://graph.facebook.com")
    graph_api_version: str = Field(default="v17.0")
    profile_fields: str = Field(
        default="first_name,last_name,profile_pic,locale,timezone,gender"
    )
    request_timeout: float = Field(default=10.0)

    # Logging
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(env_file=_env_file(), env_file_encoding="utf-8")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        if os.getenv("PYTEST_CURRENT_TEST"):
            return (init_settings,)
        return (init_settings, env_settings, dotenv_settings, file_secret_settings)

    def get_profile_fields(self) -> list[str]:
        """Parse PROFILE_FIELDS into a list of field names."""
        if not self.profile_fields.strip():
            return []
        return [name.strip() for name in self.profile_fields.split(",") if name.strip()]


settings = Settings()
