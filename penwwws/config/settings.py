from enum import Enum
from typing import Optional
from urllib.parse import quote_plus

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseConfig(BaseSettings):
    """Database configuration"""

    host: str = "localhost"
    port: int = 5432
    username: str = "postgres"
    password: SecretStr = Field(default=SecretStr("postgres"))
    database: str = "penwwws"
    schema_name: Optional[str] = None
    serverless: bool = Field(
        default=True,
        description="If true, disable connection pooling so serverless DBs can pause.",
    )

    @property
    def url(self) -> str:
        """Get database URL"""
        username = quote_plus(self.username)
        password = quote_plus(self.password.get_secret_value())
        return (
            "postgresql+asyncpg://"
            f"{username}:{password}"
            f"@{self.host}:{self.port}/{self.database}"
        )

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        env_file=".env",
        secrets_dir=".secrets",
        case_sensitive=False,
        extra="ignore",
    )


class S3Config(BaseSettings):
    """S3 configuration for uploaded documents"""

    access_key: Optional[str] = None
    secret_key: Optional[str] = None
    region: str = "us-east-1"
    bucket_name: str = "penwwws-documents"
    public_base_url: Optional[str] = Field(
        default=None,
        description="CDN base URL placed in front of object keys, if any.",
    )
    max_upload_bytes: int = Field(default=10 * 1024 * 1024, ge=1)

    model_config = SettingsConfigDict(
        env_prefix="S3_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class MailConfig(BaseSettings):
    """SMTP configuration for transactional emails."""

    host: Optional[str] = None
    port: int = 587
    username: Optional[str] = None
    password: SecretStr | None = None
    sender: Optional[str] = None
    use_tls: bool = True
    use_ssl: bool = False

    def is_configured(self) -> bool:
        return bool(self.host and self.sender)

    model_config = SettingsConfigDict(
        env_prefix="MAIL_",
        env_file=".env",
        secrets_dir=".secrets",
        case_sensitive=False,
        extra="ignore",
    )


class SecurityConfig(BaseSettings):
    """JWT and application security configuration."""

    jwt_secret_key: SecretStr = Field(
        default=SecretStr("change-me"),
        validation_alias="JWT_SECRET",
    )
    jwt_algorithm: str = Field(default="HS256", validation_alias="JWT_ALGORITHM")
    access_token_expires_minutes: int = Field(
        default=60 * 24 * 30,
        validation_alias="JWT_EXPIRATION_MINUTES",
        ge=1,
    )
    device_token_expires_minutes: int = Field(
        default=60 * 24 * 30,
        validation_alias="DEVICE_JWT_EXPIRATION_MINUTES",
        ge=1,
    )
    activation_token_hours: int = Field(
        default=72,
        validation_alias="ACTIVATION_TOKEN_HOURS",
        ge=1,
    )
    reset_token_hours: int = Field(
        default=24,
        validation_alias="RESET_TOKEN_HOURS",
        ge=1,
    )

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class CyclePolicy(str, Enum):
    """What to do when a re-parent would make a group its own ancestor."""

    DETACH = "detach"
    REJECT = "reject"


class GroupConfig(BaseSettings):
    """Group hierarchy behaviour."""

    cycle_policy: CyclePolicy = CyclePolicy.DETACH

    model_config = SettingsConfigDict(
        env_prefix="GROUPS_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class Settings(BaseSettings):
    """Application settings"""

    app_name: str = "Penwwws Backend"
    app_version: str = "1.0.0"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 5555
    log_file: str = "logs/app.log"
    frontend_url: str = "http://localhost:3000"
    persist_request_logs: bool = False

    # Database
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)

    # S3
    s3: S3Config = Field(default_factory=S3Config)

    # Mail
    mail: MailConfig = Field(default_factory=MailConfig)

    # Security
    security: SecurityConfig = Field(default_factory=SecurityConfig)

    # Groups
    groups: GroupConfig = Field(default_factory=GroupConfig)

    # CORS
    cors_origins: list[str] = ["*"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = ["*"]
    cors_allow_headers: list[str] = ["*"]
    cors_expose_headers: list[str] = ["Authorization"]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


# Global settings instance
settings = Settings()
