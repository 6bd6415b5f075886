import logging

from functools import lru_cache
from enum import Enum

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


logger = logging.getLogger(__name__)


class Algs(str, Enum):
    HS256 = "HS256"
    HS384 = "HS384"
    HS512 = "HS512"
    RS256 = "RS256"
    RS384 = "RS384"
    RS512 = "RS512"
    ES256 = "ES256"
    ES384 = "ES384"
    ES512 = "ES512"


class LogLevel(str, Enum):
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class Settings(BaseSettings):
    secret_key: str
    db_url: str = "sqlite:///./passkeys.db"

    token_algorithm: Algs = Algs.HS256
    token_expire_minutes: int = Field(gt=0, default=1360)
    cookie_name: str = "access_token"

    # Relying party
    rp_id: str = Field(default="localhost", min_length=1, description="Relying Party ID (domain)")
    rp_name: str = Field(default="Expo Passkey", min_length=1, description="Relying Party display name")
    origins: list[str] = Field(
        default_factory=list,
        description="Allowed origins, including android:apk-key-hash:<hash> entries",
    )
    challenge_ttl_seconds: int = Field(gt=0, default=300)

    # Rate limiting (windows in seconds)
    rate_limit_enabled: bool = True
    rate_limit_register_window: int = Field(gt=0, default=300)
    rate_limit_register_max: int = Field(gt=0, default=3)
    rate_limit_authenticate_window: int = Field(gt=0, default=60)
    rate_limit_authenticate_max: int = Field(gt=0, default=5)
    rate_limit_global_window: int = Field(gt=0, default=60)
    rate_limit_global_max: int = Field(gt=0, default=30)

    # Inactive credential cleanup
    cleanup_inactive_days: int = 30
    cleanup_disable_interval: bool = False
    cleanup_interval_hours: int = Field(gt=0, default=24)

    # Accept authenticators that always report a zero signature counter
    allow_zero_counter: bool = True

    log_level: LogLevel = LogLevel.INFO

    model_config = SettingsConfigDict(env_prefix='passkey_')

    @model_validator(mode="after")
    def default_origins(self) -> "Settings":
        if not self.origins:
            self.origins = [f"https://{self.rp_id}"]
        return self


@lru_cache()
def get_settings():
    return Settings()
