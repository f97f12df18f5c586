import secrets
import warnings
from dataclasses import dataclass, field
from typing import Annotated, Any, Literal

from pydantic import (
    AnyUrl,
    BeforeValidator,
    HttpUrl,
    computed_field,
    model_validator,
)
from pydantic_core import MultiHostUrl
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing_extensions import Self


def parse_cors(v: Any) -> list[str] | str:
    if isinstance(v, str) and not v.startswith("["):
        return [i.strip() for i in v.split(",") if i.strip()]
    elif isinstance(v, list | str):
        return v
    raise ValueError(v)


@dataclass(frozen=True)
class DbdirectOptions:
    """Structured allowlist options, resolved once from Settings and passed down."""

    feature_flag: str = "dbdirect"
    firewall_backend: str = "memory"
    # Opaque to the core; handed to the firewall backend as-is.
    firewall_config: dict[str, Any] = field(default_factory=dict)
    firewall_timeout_seconds: float = 10.0
    ipv4_min_prefix_length: int = 24
    ipv6_min_prefix_length: int = 64
    rule_lock_enabled: bool = True
    rule_lock_timeout_seconds: float = 30.0


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Use top level .env file (one level above ./backend/)
        env_file="../.env",
        env_ignore_empty=True,
        extra="ignore",
    )
    API_V1_STR: str = "/api/v1"
    SECRET_KEY: str = secrets.token_urlsafe(32)
    # 60 minutes * 24 hours * 8 days = 8 days
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 8
    ENVIRONMENT: Literal["local", "staging", "production"] = "local"

    BACKEND_CORS_ORIGINS: Annotated[
        list[AnyUrl] | str, BeforeValidator(parse_cors)
    ] = []

    @computed_field  # type: ignore[prop-decorator]
    @property
    def all_cors_origins(self) -> list[str]:
        return [str(origin).rstrip("/") for origin in self.BACKEND_CORS_ORIGINS]

    PROJECT_NAME: str = "dbdirect"
    SENTRY_DSN: HttpUrl | None = None

    POSTGRES_SERVER: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DB: str = ""
    # Full SQLAlchemy URL; overrides the POSTGRES_* fields (e.g. sqlite:///./dev.db).
    DATABASE_URL: str | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def SQLALCHEMY_DATABASE_URI(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return str(
            MultiHostUrl.build(
                scheme="postgresql+psycopg",
                username=self.POSTGRES_USER,
                password=self.POSTGRES_PASSWORD,
                host=self.POSTGRES_SERVER,
                port=self.POSTGRES_PORT,
                path=self.POSTGRES_DB,
            )
        )

    # Redis: per-rule locks. When disabled or unreachable, locks are in-process.
    CACHE_ENABLED: bool = False
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: str | None = None

    @property
    def redis_url(self) -> str:
        auth = f":{self.REDIS_PASSWORD}@" if self.REDIS_PASSWORD else ""
        return f"redis://{auth}{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    FIRST_SUPERUSER: str = "admin"
    FIRST_SUPERUSER_EMAIL: str = "admin@example.com"
    FIRST_SUPERUSER_PASSWORD: str = "changethis"

    # Direct database access allowlist
    DBDIRECT_FEATURE_FLAG: str = "dbdirect"
    DBDIRECT_FIREWALL_BACKEND: str = "memory"
    DBDIRECT_FIREWALL_CONFIG: dict[str, Any] = {}
    DBDIRECT_FIREWALL_TIMEOUT_SECONDS: float = 10.0
    DBDIRECT_IPV4_MIN_PREFIX_LENGTH: int = 24
    DBDIRECT_IPV6_MIN_PREFIX_LENGTH: int = 64
    DBDIRECT_RULE_LOCK_ENABLED: bool = True
    DBDIRECT_RULE_LOCK_TIMEOUT_SECONDS: float = 30.0

    @property
    def dbdirect(self) -> DbdirectOptions:
        return DbdirectOptions(
            feature_flag=self.DBDIRECT_FEATURE_FLAG,
            firewall_backend=self.DBDIRECT_FIREWALL_BACKEND,
            firewall_config=self.DBDIRECT_FIREWALL_CONFIG,
            firewall_timeout_seconds=self.DBDIRECT_FIREWALL_TIMEOUT_SECONDS,
            ipv4_min_prefix_length=self.DBDIRECT_IPV4_MIN_PREFIX_LENGTH,
            ipv6_min_prefix_length=self.DBDIRECT_IPV6_MIN_PREFIX_LENGTH,
            rule_lock_enabled=self.DBDIRECT_RULE_LOCK_ENABLED,
            rule_lock_timeout_seconds=self.DBDIRECT_RULE_LOCK_TIMEOUT_SECONDS,
        )

    def _check_default_secret(self, var_name: str, value: str | None) -> None:
        if value == "changethis":
            message = (
                f'The value of {var_name} is "changethis", '
                "for security, please change it, at least for deployments."
            )
            if self.ENVIRONMENT == "local":
                warnings.warn(message, stacklevel=1)
            else:
                raise ValueError(message)

    @model_validator(mode="after")
    def _enforce_non_default_secrets(self) -> Self:
        self._check_default_secret("SECRET_KEY", self.SECRET_KEY)
        self._check_default_secret("FIRST_SUPERUSER_PASSWORD", self.FIRST_SUPERUSER_PASSWORD)
        return self

    @model_validator(mode="after")
    def _check_prefix_lengths(self) -> Self:
        if not 0 <= self.DBDIRECT_IPV4_MIN_PREFIX_LENGTH <= 32:
            raise ValueError("DBDIRECT_IPV4_MIN_PREFIX_LENGTH must be between 0 and 32")
        if not 0 <= self.DBDIRECT_IPV6_MIN_PREFIX_LENGTH <= 128:
            raise ValueError("DBDIRECT_IPV6_MIN_PREFIX_LENGTH must be between 0 and 128")
        return self


settings = Settings()  # type: ignore
