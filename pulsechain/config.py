from typing import Optional

from pydantic import Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)


class Settings(BaseSettings):
    # TCP text server port (ADDR in .env)
    addr: int = Field(9000, ge=0, le=65535)
    host: str = "0.0.0.0"
    # HTTP router only starts when a port is given
    http_addr: Optional[int] = Field(None, ge=0, le=65535)
    # Seconds between full-chain broadcasts to each socket client
    broadcast_interval: float = Field(30.0, gt=0)
    # Pending chain updates buffered per socket client (drop-oldest)
    feed_size: int = Field(8, ge=1)
    log_level: str = "INFO"
    # Fixed genesis timestamp so several processes share one genesis hash
    genesis_timestamp: Optional[str] = None

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type["Settings"],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Explicit arguments win, then the environment, then .env
        return (init_settings, env_settings, dotenv_settings, file_secret_settings)


def get_package_version() -> str:
    """
    Returns the installed pulsechain version, or 0.0.0 when running from a checkout.
    """
    from importlib.metadata import PackageNotFoundError, version

    try:
        return version("pulsechain")
    except PackageNotFoundError:
        return "0.0.0"
