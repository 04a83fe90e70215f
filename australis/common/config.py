from dataclasses import dataclass
from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_APP_NAME = "australis-service"

_REQUIRED_SETTINGS: tuple[tuple[str, str], ...] = (
    ("communications_function_url", "AUSTRALIS_COMMUNICATIONS_FUNCTION_URL"),
    ("communications_function_key", "AUSTRALIS_COMMUNICATIONS_FUNCTION_KEY"),
)


@dataclass(frozen=True, slots=True)
class CommunicationsEndpoint:
    """Where the email-delivery function lives and how to authorise against it."""

    url: str
    key: str | None = None


class ServiceSettings(BaseSettings):
    """Settings shared by the Australis FastAPI services."""

    app_name: str = Field(default=DEFAULT_APP_NAME)
    environment: Literal["development", "staging", "production"] = Field(default="development")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(default="INFO")
    enable_metrics: bool = Field(default=True)
    enable_tracing: bool = Field(default=False)
    enable_debug_routes: bool = Field(default=False)
    tracing_endpoint: str | None = Field(default=None)
    tracing_protocol: Literal["http/protobuf", "grpc"] = Field(default="http/protobuf")
    tracing_insecure: bool = Field(default=True)
    tracing_sample_rate: float = Field(default=1.0, ge=0.0, le=1.0)
    communications_function_url: str = Field(default="")
    communications_function_key: str | None = Field(default=None)
    communications_timeout_seconds: float | None = Field(default=None, gt=0.0)
    notification_recipient: str | None = Field(default=None)
    geoservices_function_url: str | None = Field(default=None)
    geoservices_function_key: str | None = Field(default=None)
    geoservices_timeout_seconds: float = Field(default=30.0, gt=0.0)
    recaptcha_site_key: str | None = Field(default=None)
    challenge_bypass: bool = Field(default=False)
    dispatch_retry_base_delay_seconds: float = Field(default=2.0, ge=0.0)
    dispatch_max_retries: int = Field(default=3, ge=0)
    dispatch_max_in_flight: int = Field(default=100, ge=1)
    dispatch_shutdown_grace_seconds: float = Field(default=20.0, ge=0.0)

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local"), env_prefix="AUSTRALIS_", extra="ignore"
    )

    def communications_endpoint(self) -> CommunicationsEndpoint:
        return CommunicationsEndpoint(
            url=(self.communications_function_url or "").strip(),
            key=self.communications_function_key or None,
        )

    def missing_required_settings(self) -> list[str]:
        """Return the environment variable names of required settings left unset."""

        return [env_name for field_name, env_name in _REQUIRED_SETTINGS if not getattr(self, field_name)]

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


@lru_cache
def get_settings() -> ServiceSettings:
    """Return cached service settings."""

    return ServiceSettings()
